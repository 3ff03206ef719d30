"""
Suggestion Schema Definitions

Data classes for the suggestion engine output structures.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FixType(str, Enum):
    """Kinds of fix suggestions."""

    INSTALL_MISSING = "install_missing"
    UPDATE_OUTDATED = "update_outdated"
    RESOLVE_CONFLICT = "resolve_conflict"
    REGENERATE_LOCKFILE = "regenerate_lockfile"


class RiskLevel(str, Enum):
    """Risk of applying a change."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ActionType(str, Enum):
    INSTALL = "install"
    UPDATE = "update"
    REMOVE = "remove"
    REGENERATE_LOCKFILE = "regenerate-lockfile"


@dataclass
class FixAction:
    """One concrete package manager step."""

    type: ActionType
    package_name: Optional[str] = None
    version: Optional[str] = None
    command: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "package_name": self.package_name,
            "version": self.version,
            "command": self.command,
        }


@dataclass
class FixSuggestion:
    """A ranked remediation suggestion."""

    type: FixType
    description: str
    risk: RiskLevel
    estimated_impact: str
    actions: List[FixAction] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "description": self.description,
            "risk": self.risk.value,
            "actions": [a.to_dict() for a in self.actions],
            "estimated_impact": self.estimated_impact,
        }
