"""
Scan Schema Definitions

Data classes shared between scanners, the scanner registry and the analysis
orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from dephealth.models.issue import DependencyIssue, SecurityIssue

if TYPE_CHECKING:
    from dephealth.services.adapters.base import PackageManagerAdapter
    from dephealth.services.registry_client import RegistryClient


class PackageManagerVariant(str, Enum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


@dataclass
class Manifest:
    """Parsed project manifest (package.json style)."""

    name: str
    version: str
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    peer_dependencies: Dict[str, str] = field(default_factory=dict)
    optional_dependencies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_package_json(cls, data: Dict[str, Any]) -> "Manifest":
        return cls(
            name=data.get("name", "unknown"),
            version=data.get("version", "0.0.0"),
            dependencies=dict(data.get("dependencies") or {}),
            dev_dependencies=dict(data.get("devDependencies") or {}),
            peer_dependencies=dict(data.get("peerDependencies") or {}),
            optional_dependencies=dict(data.get("optionalDependencies") or {}),
        )

    def declared(self, include_dev: bool = True) -> Dict[str, str]:
        """All declared requirements, later sections overriding earlier ones."""
        merged: Dict[str, str] = {}
        merged.update(self.optional_dependencies)
        merged.update(self.peer_dependencies)
        if include_dev:
            merged.update(self.dev_dependencies)
        merged.update(self.dependencies)
        return merged


@dataclass
class Lockfile:
    variant: PackageManagerVariant
    path: str
    parsed_content: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InstalledPackage:
    name: str
    version: str
    path: str
    is_valid: bool = True
    # from the package's own package.json
    peer_dependencies: Dict[str, str] = field(default_factory=dict)
    optional_peers: List[str] = field(default_factory=list)


@dataclass
class ScanContext:
    """Everything a scanner may inspect. Built once per analysis run."""

    project_path: str
    manifest: Manifest
    lockfile: Optional[Lockfile]
    installed_packages: List[InstalledPackage]
    package_manager: "PackageManagerAdapter"
    include_dev: bool = True
    registry: Optional["RegistryClient"] = None

    def installed(self, package_name: str) -> Optional[InstalledPackage]:
        for pkg in self.installed_packages:
            if pkg.name == package_name:
                return pkg
        return None


@dataclass
class ScanResult:
    """
    Output of one scanner.

    issues and security_issues may hold model instances or raw dicts; the
    aggregator validates both.
    """

    producer: str
    issues: List[Any] = field(default_factory=list)
    security_issues: List[Any] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ProjectInfo:
    name: str
    version: str
    path: str
    package_manager: PackageManagerVariant


@dataclass
class AnalysisResult:
    health_score: int
    issues: List[DependencyIssue]
    security_vulnerabilities: List[SecurityIssue]
    package_manager: PackageManagerVariant
    project: ProjectInfo
    scanner_errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "health_score": self.health_score,
            "issues": [i.model_dump() for i in self.issues],
            "security_vulnerabilities": [
                v.model_dump() for v in self.security_vulnerabilities
            ],
            "package_manager": self.package_manager.value,
            "project": {
                "name": self.project.name,
                "version": self.project.version,
                "path": self.project.path,
            },
            "scanner_errors": dict(self.scanner_errors),
        }
