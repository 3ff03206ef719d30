import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from dephealth.models.issue import DependencyIssue, IssueSeverity, IssueType
from dephealth.schemas.scan import InstalledPackage, ScanContext, ScanResult
from dephealth.services import versioning
from dephealth.services.recommendation.common import find_unified_version

from .base import Scanner

logger = logging.getLogger(__name__)


@dataclass
class PeerRequirement:
    required_by: str
    requirement: str
    optional: bool = False


def collect_peer_requirements(
    installed: List[InstalledPackage],
) -> Dict[str, List[PeerRequirement]]:
    """Peer name -> every installed package that declares it, in install order."""
    peers: Dict[str, List[PeerRequirement]] = {}
    for pkg in installed:
        for peer, requirement in pkg.peer_dependencies.items():
            peers.setdefault(peer, []).append(
                PeerRequirement(
                    required_by=pkg.name,
                    requirement=requirement,
                    optional=peer in pkg.optional_peers,
                )
            )
    return peers


def ranges_compatible(a: str, b: str) -> bool:
    """Unparseable ranges are never reported as incompatible."""
    if versioning.valid_range(a) is None or versioning.valid_range(b) is None:
        return True
    return find_unified_version([a, b]) is not None


class PeerConflictScanner(Scanner):
    """Peer dependencies of installed packages that are missing or out of range."""

    name = "peer_conflict"

    async def scan(self, context: ScanContext) -> ScanResult:
        declared = self._declared(context)
        issues: List[DependencyIssue] = []

        for peer, requirements in collect_peer_requirements(context.installed_packages).items():
            pkg = context.installed(peer)
            if pkg is None or not pkg.is_valid or not versioning.valid(pkg.version):
                missing = self._missing_peer(peer, requirements, declared)
                if missing is not None:
                    issues.append(missing)
                continue
            issues.extend(self._range_conflicts(peer, pkg.version, requirements, declared))

        logger.debug(f"Peer conflict scan found {len(issues)} issues")
        return ScanResult(producer=self.name, issues=issues)

    def _missing_peer(
        self,
        peer: str,
        requirements: List[PeerRequirement],
        declared: Dict[str, str],
    ) -> Optional[DependencyIssue]:
        """Severity grows with the number of packages that need the peer."""
        required = [r for r in requirements if not r.optional]
        if not required:
            return None

        if len(required) >= 3:
            severity = IssueSeverity.CRITICAL
        elif len(required) == 2:
            severity = IssueSeverity.HIGH
        else:
            severity = IssueSeverity.MEDIUM

        requirers = [r.required_by for r in required]
        ranges = list(dict.fromkeys(r.requirement for r in required))
        return DependencyIssue(
            type=IssueType.PEER_CONFLICT,
            package_name=peer,
            expected_version=ranges[0],
            severity=severity,
            description=(
                f"Peer dependency '{peer}' is required by {', '.join(requirers)} "
                f"but not installed. Required versions: {', '.join(ranges)}. "
                f"Install the peer dependency to resolve this conflict."
            ),
            fixable=True,
            required_by=", ".join(requirers),
            transitive=not any(name in declared for name in requirers),
        )

    def _range_conflicts(
        self,
        peer: str,
        installed_version: str,
        requirements: List[PeerRequirement],
        declared: Dict[str, str],
    ) -> List[DependencyIssue]:
        issues = []
        for req in requirements:
            incompatible = [
                other
                for other in requirements
                if other.required_by != req.required_by
                and not ranges_compatible(req.requirement, other.requirement)
            ]
            conflicts_with = list(dict.fromkeys(o.required_by for o in incompatible))
            transitive = req.required_by not in declared

            if versioning.valid_range(req.requirement) is not None and not versioning.satisfies(
                installed_version, req.requirement
            ):
                optional = " (optional)" if req.optional else ""
                issues.append(
                    DependencyIssue(
                        type=IssueType.PEER_CONFLICT,
                        package_name=peer,
                        current_version=installed_version,
                        expected_version=req.requirement,
                        severity=IssueSeverity.MEDIUM if req.optional else IssueSeverity.HIGH,
                        description=(
                            f"Peer dependency '{peer}@{installed_version}' does not satisfy "
                            f"the range '{req.requirement}' required by "
                            f"'{req.required_by}'{optional}. "
                            f"Consider updating '{peer}' to a compatible version."
                        ),
                        fixable=True,
                        required_by=req.required_by,
                        conflicts_with=conflicts_with,
                        transitive=transitive,
                    )
                )
            elif incompatible:
                other = incompatible[0]
                both_optional = req.optional and all(o.optional for o in incompatible)
                issues.append(
                    DependencyIssue(
                        type=IssueType.PEER_CONFLICT,
                        package_name=peer,
                        current_version=installed_version,
                        expected_version=req.requirement,
                        severity=IssueSeverity.MEDIUM if both_optional else IssueSeverity.HIGH,
                        description=(
                            f"Incompatible peer dependency ranges for '{peer}': "
                            f"'{req.required_by}' requires '{req.requirement}' but "
                            f"'{other.required_by}' requires '{other.requirement}'. "
                            f"These ranges have no compatible versions."
                        ),
                        fixable=False,
                        required_by=req.required_by,
                        conflicts_with=conflicts_with,
                        transitive=transitive,
                    )
                )
        return issues
