"""
Conflict detection.

Groups already-surfaced issues by package and classifies co-occurring issues
into conflict records. This is a grouping pass over scanner output; it never
rebuilds the install graph.
"""

import logging
from typing import Dict, Iterable, List

from dephealth.core.constants import (
    CONFLICT_SEVERITY_ORDER,
    TRANSITIVE_MARKERS,
    get_severity_value,
)
from dephealth.models.issue import DependencyIssue, IssueSeverity, IssueType
from dephealth.schemas.conflict import (
    UNKNOWN_VERSION,
    Conflict,
    ConflictingPackage,
    ConflictSeverity,
    ConflictType,
)

logger = logging.getLogger(__name__)

VERSION_CONFLICT_TYPES = (IssueType.VERSION_MISMATCH, IssueType.PEER_CONFLICT)


def group_by_package(issues: Iterable[DependencyIssue]) -> Dict[str, List[DependencyIssue]]:
    grouped: Dict[str, List[DependencyIssue]] = {}
    for issue in issues:
        grouped.setdefault(issue.package_name, []).append(issue)
    return grouped


def is_transitive(issue: DependencyIssue) -> bool:
    if issue.transitive:
        return True
    description = issue.description.lower()
    return any(marker in description for marker in TRANSITIVE_MARKERS)


def conflict_severity(issues: List[DependencyIssue]) -> ConflictSeverity:
    """Critical issue => Critical, High issue => Error, otherwise Warning."""
    if any(issue.severity == IssueSeverity.CRITICAL for issue in issues):
        return ConflictSeverity.CRITICAL
    if any(issue.severity == IssueSeverity.HIGH for issue in issues):
        return ConflictSeverity.ERROR
    return ConflictSeverity.WARNING


def to_conflicting_package(issue: DependencyIssue) -> ConflictingPackage:
    return ConflictingPackage(
        name=issue.package_name,
        version=issue.current_version or UNKNOWN_VERSION,
        required_by=issue.required_by or "unknown",
        conflicts_with=list(issue.conflicts_with),
        requirement=issue.expected_version,
    )


def _build(
    conflict_type: ConflictType, issues: List[DependencyIssue], description: str
) -> Conflict:
    return Conflict(
        type=conflict_type,
        packages=[to_conflicting_package(issue) for issue in issues],
        description=description,
        severity=conflict_severity(issues),
    )


def detect_conflicts(issues: Iterable[DependencyIssue]) -> List[Conflict]:
    """
    Classify aggregated issues into conflicts.

    - two or more version-mismatch / peer-conflict issues on one package
      give a version-range conflict
    - any peer-conflict issue gives a peer-dependency conflict
    - more than one transitive issue on one package gives a transitive conflict

    Returns:
        Conflicts sorted most severe first
    """
    issues = list(issues)
    grouped = group_by_package(issues)
    conflicts: List[Conflict] = []

    for package_name, package_issues in grouped.items():
        version_issues = [i for i in package_issues if i.type in VERSION_CONFLICT_TYPES]
        if len(version_issues) > 1:
            conflicts.append(
                _build(
                    ConflictType.VERSION_RANGE,
                    version_issues,
                    f"Version range conflict for {package_name}: "
                    f"multiple incompatible version requirements",
                )
            )

    for package_name, package_issues in grouped.items():
        peer_issues = [i for i in package_issues if i.type == IssueType.PEER_CONFLICT]
        if peer_issues:
            conflicts.append(
                _build(
                    ConflictType.PEER_DEPENDENCY,
                    peer_issues,
                    f"Peer dependency conflict for {package_name}: "
                    f"incompatible peer requirements",
                )
            )

    transitive_groups = group_by_package(i for i in issues if is_transitive(i))
    for package_name, package_issues in transitive_groups.items():
        if len(package_issues) > 1:
            conflicts.append(
                _build(
                    ConflictType.TRANSITIVE,
                    package_issues,
                    f"Transitive dependency conflict for {package_name}: "
                    f"multiple version requirements through dependency chain",
                )
            )

    conflicts.sort(
        key=lambda c: -get_severity_value(c.severity, CONFLICT_SEVERITY_ORDER)
    )
    logger.debug(f"Detected {len(conflicts)} conflicts across {len(grouped)} packages")
    return conflicts
