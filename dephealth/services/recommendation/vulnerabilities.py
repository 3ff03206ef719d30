from typing import List

from dephealth.models.issue import SecurityIssue, SecuritySeverity
from dephealth.schemas.scan import PackageManagerVariant
from dephealth.schemas.suggestion import (
    ActionType,
    FixAction,
    FixSuggestion,
    FixType,
    RiskLevel,
)
from dephealth.services.adapters.base import update_command
from dephealth.services.recommendation.common import security_risk


def analyze_vulnerability(
    vulnerability: SecurityIssue, variant: PackageManagerVariant
) -> List[FixSuggestion]:
    """
    One suggestion per vulnerability.

    With a patched version: an update whose risk is the advisory severity.
    Without one: an advisory with no actions.
    """
    name = vulnerability.package_name
    title = vulnerability.vulnerability.title

    if vulnerability.fixed_in:
        return [
            FixSuggestion(
                type=FixType.UPDATE_OUTDATED,
                description=(
                    f"Update {name} to {vulnerability.fixed_in} to fix security vulnerability"
                ),
                risk=security_risk(vulnerability.severity),
                actions=[
                    FixAction(
                        type=ActionType.UPDATE,
                        package_name=name,
                        version=vulnerability.fixed_in,
                        command=update_command(variant, name, vulnerability.fixed_in),
                    )
                ],
                estimated_impact=f"Fixes security vulnerability: {title}",
            )
        ]

    risk = (
        RiskLevel.CRITICAL
        if vulnerability.severity == SecuritySeverity.CRITICAL
        else RiskLevel.HIGH
    )
    return [
        FixSuggestion(
            type=FixType.RESOLVE_CONFLICT,
            description=f"Security vulnerability in {name} - no patch available",
            risk=risk,
            actions=[],
            estimated_impact=(
                f"Security vulnerability: {title}. Consider finding alternative "
                f"packages or implementing workarounds."
            ),
        )
    ]
