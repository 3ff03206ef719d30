from typing import Dict, List

from dephealth.core.constants import PEER_AUDIT_THRESHOLD
from dephealth.models.issue import DependencyIssue, IssueType
from dephealth.schemas.conflict import RiskAssessment
from dephealth.schemas.scan import PackageManagerVariant
from dephealth.schemas.suggestion import (
    ActionType,
    FixAction,
    FixSuggestion,
    FixType,
    RiskLevel,
)
from dephealth.services import versioning
from dephealth.services.adapters.base import (
    install_command,
    override_command,
    update_command,
)
from dephealth.services.recommendation.common import (
    assess_version_change,
    find_compatible_versions,
    find_unified_version,
    widened_range,
)

OVERRIDE_FIELD: Dict[PackageManagerVariant, str] = {
    PackageManagerVariant.NPM: "npm overrides",
    PackageManagerVariant.YARN: "Yarn resolutions",
    PackageManagerVariant.PNPM: "pnpm overrides",
}


def compatible_version_impact(assessment: RiskAssessment, version: str) -> str:
    base = f"Updates to version {version}"
    if not assessment.factors:
        return f"{base} - minimal impact expected"
    factors = ", ".join(assessment.factors[:2])
    mitigation = assessment.mitigations[0] if assessment.mitigations else "thorough testing recommended"
    return f"{base} - {factors}. {mitigation}"


def analyze_peer_conflict(
    issue: DependencyIssue, variant: PackageManagerVariant
) -> List[FixSuggestion]:
    """
    Suggestions for one peer-conflict record.

    A record without an installed version is a missing peer. A record with
    both an installed version and a requirement is a version clash: offer
    every compatible candidate, newest first, or overrides when none exists.
    """
    name = issue.package_name
    suggestions: List[FixSuggestion] = []

    if not issue.current_version:
        suggestions.append(
            FixSuggestion(
                type=FixType.INSTALL_MISSING,
                description=f"Install missing peer dependency {name}",
                risk=RiskLevel.MEDIUM,
                actions=[
                    FixAction(
                        type=ActionType.INSTALL,
                        package_name=name,
                        version=issue.expected_version,
                        command=install_command(variant, name, issue.expected_version),
                    )
                ],
                estimated_impact=(
                    "Medium risk - peer dependency installation may affect other packages"
                ),
            )
        )
        return suggestions

    if not issue.expected_version:
        return suggestions

    current, expected = issue.current_version, issue.expected_version
    compatible = find_compatible_versions(current, expected)
    for version in compatible:
        assessment = assess_version_change(current, version)
        suggestions.append(
            FixSuggestion(
                type=FixType.RESOLVE_CONFLICT,
                description=f"Update {name} to compatible version {version}",
                risk=assessment.level,
                actions=[
                    FixAction(
                        type=ActionType.UPDATE,
                        package_name=name,
                        version=version,
                        command=update_command(variant, name, version),
                    )
                ],
                estimated_impact=compatible_version_impact(assessment, version),
            )
        )

    if not compatible:
        suggestions.append(
            FixSuggestion(
                type=FixType.RESOLVE_CONFLICT,
                description=f"Use package manager resolution override for {name}",
                risk=RiskLevel.HIGH,
                actions=[
                    FixAction(
                        type=ActionType.UPDATE,
                        package_name=name,
                        version=expected,
                        command=override_command(variant, name, expected),
                    )
                ],
                estimated_impact=(
                    "High risk - forces version resolution, may cause runtime issues"
                ),
            )
        )
        suggestions.append(
            FixSuggestion(
                type=FixType.RESOLVE_CONFLICT,
                description=f"Consider alternative packages that don't conflict with {name}",
                risk=RiskLevel.MEDIUM,
                actions=[],
                estimated_impact=(
                    "Requires manual research - may need to replace conflicting dependencies"
                ),
            )
        )

    if not versioning.satisfies(current, expected):
        widened = widened_range(current, expected)
        if widened:
            suggestions.append(
                FixSuggestion(
                    type=FixType.RESOLVE_CONFLICT,
                    description=f"Widen peer dependency range to {widened} for {name}",
                    risk=RiskLevel.MEDIUM,
                    actions=[],
                    estimated_impact=(
                        "Requires updating the declaring package's peerDependencies - "
                        "coordinate with package maintainer"
                    ),
                )
            )

    return suggestions


def analyze_peer_groups(
    issues: List[DependencyIssue], variant: PackageManagerVariant
) -> List[FixSuggestion]:
    """Package-level and ecosystem-level peer suggestions."""
    peer_issues = [i for i in issues if i.type == IssueType.PEER_CONFLICT]
    if not peer_issues:
        return []

    grouped: Dict[str, List[DependencyIssue]] = {}
    for issue in peer_issues:
        grouped.setdefault(issue.package_name, []).append(issue)

    suggestions: List[FixSuggestion] = []
    for package_name, records in grouped.items():
        if len(records) > 1:
            suggestions.extend(_unified_peer_fixes(package_name, records, variant))

    suggestions.extend(_ecosystem_strategies(peer_issues, variant))
    return suggestions


def _unified_peer_fixes(
    package_name: str, records: List[DependencyIssue], variant: PackageManagerVariant
) -> List[FixSuggestion]:
    requirements = [r.expected_version for r in records if r.expected_version]
    if not requirements:
        return []

    unified = find_unified_version(requirements)
    if unified:
        return [
            FixSuggestion(
                type=FixType.RESOLVE_CONFLICT,
                description=(
                    f"Install unified peer dependency {package_name}@{unified} "
                    f"to resolve all conflicts"
                ),
                risk=RiskLevel.MEDIUM,
                actions=[
                    FixAction(
                        type=ActionType.INSTALL,
                        package_name=package_name,
                        version=unified,
                        command=install_command(variant, package_name, unified),
                    )
                ],
                estimated_impact=(
                    f"Resolves {len(records)} peer dependency conflicts with single version"
                ),
            )
        ]

    suggestions: List[FixSuggestion] = []
    exact = versioning.sort_desc(requirements)
    if exact:
        newest = exact[0]
        suggestions.append(
            FixSuggestion(
                type=FixType.RESOLVE_CONFLICT,
                description=(
                    f"Install latest required version {package_name}@{newest} "
                    f"(may require dependency updates)"
                ),
                risk=RiskLevel.HIGH,
                actions=[
                    FixAction(
                        type=ActionType.INSTALL,
                        package_name=package_name,
                        version=newest,
                        command=install_command(variant, package_name, newest),
                    )
                ],
                estimated_impact=(
                    "High risk - may require updating other dependencies to maintain compatibility"
                ),
            )
        )
    suggestions.append(
        FixSuggestion(
            type=FixType.RESOLVE_CONFLICT,
            description=(
                f"Consider using workspace/monorepo peer dependency hoisting for {package_name}"
            ),
            risk=RiskLevel.MEDIUM,
            actions=[],
            estimated_impact="Architectural change - requires workspace configuration",
        )
    )
    suggestions.append(
        FixSuggestion(
            type=FixType.RESOLVE_CONFLICT,
            description=(
                "Consider dependency injection pattern to avoid peer dependency "
                f"conflicts with {package_name}"
            ),
            risk=RiskLevel.LOW,
            actions=[],
            estimated_impact="Code refactoring required - improves long-term maintainability",
        )
    )
    return suggestions


def _ecosystem_strategies(
    peer_issues: List[DependencyIssue], variant: PackageManagerVariant
) -> List[FixSuggestion]:
    suggestions: List[FixSuggestion] = []

    if len(peer_issues) > PEER_AUDIT_THRESHOLD:
        suggestions.append(
            FixSuggestion(
                type=FixType.RESOLVE_CONFLICT,
                description=(
                    f"Consider peer dependency audit - {len(peer_issues)} conflicts detected"
                ),
                risk=RiskLevel.MEDIUM,
                actions=[],
                estimated_impact=(
                    "Comprehensive review recommended - multiple peer dependency issues detected"
                ),
            )
        )

    names = []
    for issue in peer_issues:
        if issue.package_name not in names:
            names.append(issue.package_name)
    mechanism = OVERRIDE_FIELD[PackageManagerVariant(variant)]
    suggestions.append(
        FixSuggestion(
            type=FixType.RESOLVE_CONFLICT,
            description=(
                f"Consider using {mechanism} to resolve peer dependency conflicts "
                f"for {', '.join(names)}"
            ),
            risk=RiskLevel.HIGH,
            actions=[],
            estimated_impact="Forces dependency resolution - may cause runtime issues",
        )
    )
    return suggestions
