"""
Conflict Schema Definitions

Data classes for detected conflicts and the resolutions proposed for them.
All of them live for one analysis pass only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from dephealth.schemas.suggestion import RiskLevel


class ConflictType(str, Enum):
    VERSION_RANGE = "version_range"
    PEER_DEPENDENCY = "peer_dependency"
    TRANSITIVE = "transitive"


class ConflictSeverity(str, Enum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ResolutionStrategy(str, Enum):
    UPDATE_TO_COMPATIBLE = "update_to_compatible"
    DOWNGRADE_TO_COMPATIBLE = "downgrade_to_compatible"
    ADD_PEER_DEPENDENCY = "add_peer_dependency"
    REMOVE_CONFLICTING = "remove_conflicting"


class ChangeType(str, Enum):
    UPDATE = "update"
    DOWNGRADE = "downgrade"
    INSTALL = "install"
    REMOVE = "remove"


NOT_INSTALLED = "not-installed"
REMOVED = "removed"
UNKNOWN_VERSION = "unknown"


@dataclass
class ConflictingPackage:
    """One side of a conflict: a package and the requirement placed on it."""

    name: str
    version: str
    required_by: str = "unknown"
    conflicts_with: List[str] = field(default_factory=list)
    requirement: Optional[str] = None  # declared version or range


@dataclass
class Conflict:
    type: ConflictType
    packages: List[ConflictingPackage]
    description: str
    severity: ConflictSeverity

    @property
    def package_names(self) -> List[str]:
        names: List[str] = []
        for pkg in self.packages:
            if pkg.name not in names:
                names.append(pkg.name)
        return names


@dataclass
class PackageChange:
    package_name: str
    from_version: str
    to_version: str
    change_type: ChangeType


@dataclass
class RiskAssessment:
    level: RiskLevel
    factors: List[str] = field(default_factory=list)
    mitigations: List[str] = field(default_factory=list)


@dataclass
class Resolution:
    strategy: ResolutionStrategy
    changes: List[PackageChange]
    explanation: str
    risk_assessment: RiskAssessment

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "changes": [
                {
                    "package_name": c.package_name,
                    "from_version": c.from_version,
                    "to_version": c.to_version,
                    "change_type": c.change_type.value,
                }
                for c in self.changes
            ],
            "explanation": self.explanation,
            "risk_assessment": {
                "level": self.risk_assessment.level.value,
                "factors": list(self.risk_assessment.factors),
                "mitigations": list(self.risk_assessment.mitigations),
            },
        }


@dataclass
class ResolutionReport:
    """Outcome of applying several resolutions together."""

    applied: List[Resolution] = field(default_factory=list)
    failed: List[Resolution] = field(default_factory=list)
    compatibility_issues: List[str] = field(default_factory=list)


@dataclass
class UnresolvableConflicts:
    """Conflicts that need a human, with one explanation and option list each."""

    unresolvable: List[Conflict] = field(default_factory=list)
    explanations: List[str] = field(default_factory=list)
    manual_options: List[List[str]] = field(default_factory=list)


@dataclass
class ResolutionPlan:
    """Detected conflicts with their resolutions, application report and leftovers."""

    conflicts: List[Conflict] = field(default_factory=list)
    resolutions: List[Resolution] = field(default_factory=list)
    report: ResolutionReport = field(default_factory=ResolutionReport)
    unresolvable: UnresolvableConflicts = field(default_factory=UnresolvableConflicts)
