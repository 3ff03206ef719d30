from typing import Dict, List

from dephealth.core.constants import MAX_INTERMEDIATE_STEPS, MINOR_DELTA_MEDIUM
from dephealth.models.issue import DependencyIssue
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
    remove_command,
    update_command,
)
from dephealth.services.recommendation.common import (
    assess_version_change,
    estimate_breaking_change_risk,
)

UPGRADE_IMPACT: Dict[RiskLevel, str] = {
    RiskLevel.LOW: "Low risk upgrade - backward compatible changes expected",
    RiskLevel.MEDIUM: "Medium risk upgrade - new features added, test thoroughly",
    RiskLevel.HIGH: "High risk upgrade - potential breaking changes, review documentation",
    RiskLevel.CRITICAL: "Critical risk upgrade - major changes expected, extensive testing required",
}


def _update_action(
    package_name: str, version: str, variant: PackageManagerVariant
) -> FixAction:
    return FixAction(
        type=ActionType.UPDATE,
        package_name=package_name,
        version=version,
        command=update_command(variant, package_name, version),
    )


def calculate_safe_update_paths(current_version: str, latest_version: str) -> List[Dict[str, str]]:
    """Next patch, next minor and the latest major, each with its impact sentence."""
    current = versioning.parse(current_version)
    latest = versioning.parse(latest_version)
    if current is None or latest is None:
        return [
            {
                "target_version": latest_version,
                "strategy": "direct update",
                "impact": "Unknown impact - manual review recommended",
            }
        ]

    paths: List[Dict[str, str]] = []

    next_patch = versioning.inc(current_version, "patch")
    if next_patch and versioning.parse(next_patch) <= latest:
        paths.append(
            {
                "target_version": next_patch,
                "strategy": "patch update",
                "impact": "Low risk - bug fixes only",
            }
        )

    next_minor = versioning.inc(current_version, "minor")
    if next_minor and versioning.parse(next_minor) <= latest:
        paths.append(
            {
                "target_version": next_minor,
                "strategy": "minor update",
                "impact": "Moderate risk - new features, backward compatible",
            }
        )

    if latest.major > current.major:
        paths.append(
            {
                "target_version": latest_version,
                "strategy": "major update",
                "impact": "High risk - breaking changes possible",
            }
        )

    if not paths:
        paths.append(
            {
                "target_version": latest_version,
                "strategy": "direct update",
                "impact": "Review required - version gap analysis needed",
            }
        )
    return paths


def analyze_outdated(
    issue: DependencyIssue, variant: PackageManagerVariant
) -> List[FixSuggestion]:
    if not issue.current_version or not issue.latest_version:
        return []

    suggestions = []
    for path in calculate_safe_update_paths(issue.current_version, issue.latest_version):
        target = path["target_version"]
        suggestions.append(
            FixSuggestion(
                type=FixType.UPDATE_OUTDATED,
                description=(
                    f"Update {issue.package_name} from {issue.current_version} "
                    f"to {target} ({path['strategy']})"
                ),
                risk=estimate_breaking_change_risk(issue.current_version, target),
                actions=[_update_action(issue.package_name, target, variant)],
                estimated_impact=path["impact"],
            )
        )
    return suggestions


def analyze_missing(
    issue: DependencyIssue, variant: PackageManagerVariant
) -> List[FixSuggestion]:
    return [
        FixSuggestion(
            type=FixType.INSTALL_MISSING,
            description=f"Install missing package {issue.package_name}",
            risk=RiskLevel.LOW,
            actions=[
                FixAction(
                    type=ActionType.INSTALL,
                    package_name=issue.package_name,
                    version=issue.expected_version,
                    command=install_command(
                        variant, issue.package_name, issue.expected_version
                    ),
                )
            ],
            estimated_impact="Low risk - installing declared dependency",
        )
    ]


def upgrade_impact(assessment: RiskAssessment) -> str:
    description = UPGRADE_IMPACT[assessment.level]
    if assessment.factors:
        description += f". {assessment.factors[0]}"
    return description


def downgrade_impact(current_version: str, target_version: str) -> str:
    current = versioning.parse(current_version)
    target = versioning.parse(target_version)
    if current is None or target is None:
        return "Version downgrade - functionality may be reduced"
    if current.major > target.major:
        return "Major version downgrade - features may be removed, compatibility issues possible"
    if current.minor > target.minor:
        return "Minor version downgrade - some features may not be available"
    return "Patch version downgrade - bug fixes may be reverted"


def find_intermediate_versions(current_version: str, target_version: str) -> List[str]:
    """Stepping stones for a large jump: intermediate majors, or a mid minor."""
    current = versioning.parse(current_version)
    target = versioning.parse(target_version)
    if current is None or target is None:
        return []

    steps: List[str] = []
    major_diff = target.major - current.major
    if major_diff > 1:
        for i in range(1, major_diff):
            steps.append(f"{current.major + i}.0.0")
    elif major_diff == 0:
        minor_diff = target.minor - current.minor
        if minor_diff > MINOR_DELTA_MEDIUM:
            steps.append(f"{current.major}.{current.minor + minor_diff // 2}.0")
    return steps[:MAX_INTERMEDIATE_STEPS]


def _should_upgrade(current_version: str, expected_version: str) -> bool:
    current = versioning.parse(current_version)
    expected = versioning.parse(expected_version)
    if current is None or expected is None:
        return True
    return expected > current


def analyze_version_mismatch(
    issue: DependencyIssue, variant: PackageManagerVariant
) -> List[FixSuggestion]:
    if not issue.current_version or not issue.expected_version:
        return []

    name = issue.package_name
    current, expected = issue.current_version, issue.expected_version
    suggestions: List[FixSuggestion] = []

    if _should_upgrade(current, expected):
        assessment = assess_version_change(current, expected)
        suggestions.append(
            FixSuggestion(
                type=FixType.UPDATE_OUTDATED,
                description=f"Upgrade {name} from {current} to {expected}",
                risk=assessment.level,
                actions=[_update_action(name, expected, variant)],
                estimated_impact=upgrade_impact(assessment),
            )
        )

        if assessment.level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            for step in find_intermediate_versions(current, expected):
                step_assessment = assess_version_change(current, step)
                suggestions.append(
                    FixSuggestion(
                        type=FixType.UPDATE_OUTDATED,
                        description=(
                            f"Intermediate upgrade: {name} to {step} (step-by-step approach)"
                        ),
                        risk=step_assessment.level,
                        actions=[_update_action(name, step, variant)],
                        estimated_impact=(
                            "Intermediate step to reduce upgrade risk - "
                            f"{upgrade_impact(step_assessment)}"
                        ),
                    )
                )
    else:
        suggestions.append(
            FixSuggestion(
                type=FixType.RESOLVE_CONFLICT,
                description=f"Downgrade {name} from {current} to {expected}",
                risk=RiskLevel.MEDIUM,
                actions=[_update_action(name, expected, variant)],
                estimated_impact=downgrade_impact(current, expected),
            )
        )

    suggestions.append(
        FixSuggestion(
            type=FixType.RESOLVE_CONFLICT,
            description=f"Update manifest to match installed version {current} of {name}",
            risk=RiskLevel.LOW,
            actions=[],
            estimated_impact="Low risk - aligns the manifest with the currently working version",
        )
    )
    return suggestions


def analyze_broken(
    issue: DependencyIssue, variant: PackageManagerVariant
) -> List[FixSuggestion]:
    return [
        FixSuggestion(
            type=FixType.REGENERATE_LOCKFILE,
            description=f"Reinstall broken package {issue.package_name}",
            risk=RiskLevel.MEDIUM,
            actions=[
                FixAction(
                    type=ActionType.REMOVE,
                    package_name=issue.package_name,
                    command=remove_command(variant, issue.package_name),
                ),
                FixAction(
                    type=ActionType.INSTALL,
                    package_name=issue.package_name,
                    version=issue.expected_version,
                    command=install_command(
                        variant, issue.package_name, issue.expected_version
                    ),
                ),
            ],
            estimated_impact="Reinstalls package to fix corruption - low risk of data loss",
        )
    ]
