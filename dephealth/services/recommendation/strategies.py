"""
Project-wide version strategy and maintenance suggestions.

Only produced when the project has outdated or mismatched dependencies.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from dephealth.core.constants import (
    AUTOMATION_ISSUE_THRESHOLD,
    BATCH_MINOR_UPDATE_THRESHOLD,
    HIGH_RISK_CONCENTRATION_THRESHOLD,
    PHASED_MAJOR_UPDATE_THRESHOLD,
    PINNING_OUTDATED_THRESHOLD,
)
from dephealth.models.issue import DependencyIssue, IssueType
from dephealth.schemas.suggestion import FixSuggestion, FixType, RiskLevel
from dephealth.services import versioning
from dephealth.services.recommendation.common import estimate_breaking_change_risk


@dataclass
class VersionStrategyProfile:
    major_updates: int = 0
    minor_updates: int = 0
    patch_updates: int = 0
    downgrades: int = 0
    risk_distribution: Dict[str, int] = field(
        default_factory=lambda: {level.value: 0 for level in RiskLevel}
    )


def _target(issue: DependencyIssue):
    if issue.type == IssueType.OUTDATED:
        return issue.latest_version or issue.expected_version
    return issue.expected_version


def profile_version_issues(issues: List[DependencyIssue]) -> VersionStrategyProfile:
    profile = VersionStrategyProfile()
    for issue in issues:
        target = _target(issue)
        current = versioning.parse(issue.current_version)
        expected = versioning.parse(target)
        if current is None or expected is None:
            continue

        risk = estimate_breaking_change_risk(issue.current_version, target)
        profile.risk_distribution[risk.value] += 1

        if expected > current:
            if expected.major > current.major:
                profile.major_updates += 1
            elif expected.minor > current.minor:
                profile.minor_updates += 1
            else:
                profile.patch_updates += 1
        elif expected < current:
            profile.downgrades += 1
    return profile


def analyze_version_strategy(issues: List[DependencyIssue]) -> List[FixSuggestion]:
    version_issues = [
        i for i in issues if i.type in (IssueType.OUTDATED, IssueType.VERSION_MISMATCH)
    ]
    if not version_issues:
        return []

    profile = profile_version_issues(version_issues)
    suggestions: List[FixSuggestion] = []

    if profile.major_updates > PHASED_MAJOR_UPDATE_THRESHOLD:
        suggestions.append(
            FixSuggestion(
                type=FixType.UPDATE_OUTDATED,
                description=(
                    f"Phased update strategy recommended - "
                    f"{profile.major_updates} major updates needed"
                ),
                risk=RiskLevel.MEDIUM,
                estimated_impact=(
                    "Reduces risk by updating dependencies in phases rather than all at once"
                ),
            )
        )

    if profile.minor_updates > BATCH_MINOR_UPDATE_THRESHOLD:
        suggestions.append(
            FixSuggestion(
                type=FixType.UPDATE_OUTDATED,
                description=(
                    f"Batch minor updates - {profile.minor_updates} minor updates available"
                ),
                risk=RiskLevel.LOW,
                estimated_impact="Low risk batch update - can be done together for efficiency",
            )
        )

    high_risk = (
        profile.risk_distribution[RiskLevel.HIGH.value]
        + profile.risk_distribution[RiskLevel.CRITICAL.value]
    )
    if high_risk > HIGH_RISK_CONCENTRATION_THRESHOLD:
        suggestions.append(
            FixSuggestion(
                type=FixType.UPDATE_OUTDATED,
                description="High-risk updates detected - consider staging environment testing",
                risk=RiskLevel.HIGH,
                estimated_impact=(
                    "Multiple high-risk updates require careful testing and rollback planning"
                ),
            )
        )

    if profile.downgrades > 0:
        plural = "s" if profile.downgrades > 1 else ""
        suggestions.append(
            FixSuggestion(
                type=FixType.RESOLVE_CONFLICT,
                description=(
                    f"Investigate {profile.downgrades} package downgrade{plural} - "
                    f"may indicate dependency conflicts"
                ),
                risk=RiskLevel.MEDIUM,
                estimated_impact=(
                    "Downgrades may indicate ecosystem compatibility issues requiring investigation"
                ),
            )
        )

    suggestions.extend(analyze_maintenance(version_issues))
    return suggestions


def analyze_maintenance(version_issues: List[DependencyIssue]) -> List[FixSuggestion]:
    suggestions: List[FixSuggestion] = []

    if len(version_issues) > AUTOMATION_ISSUE_THRESHOLD:
        suggestions.append(
            FixSuggestion(
                type=FixType.UPDATE_OUTDATED,
                description="Consider automated dependency management tools (Dependabot, Renovate)",
                risk=RiskLevel.LOW,
                estimated_impact=(
                    "Automates routine updates and reduces manual maintenance overhead"
                ),
            )
        )

    outdated = [i for i in version_issues if i.type == IssueType.OUTDATED]
    if len(outdated) > PINNING_OUTDATED_THRESHOLD:
        suggestions.append(
            FixSuggestion(
                type=FixType.RESOLVE_CONFLICT,
                description="Consider version pinning strategy for critical dependencies",
                risk=RiskLevel.LOW,
                estimated_impact="Improves stability by controlling when updates are applied",
            )
        )

    suggestions.append(
        FixSuggestion(
            type=FixType.UPDATE_OUTDATED,
            description="Establish regular dependency audit schedule",
            risk=RiskLevel.LOW,
            estimated_impact="Proactive maintenance keeps upgrade gaps small and limits technical debt",
        )
    )
    return suggestions
