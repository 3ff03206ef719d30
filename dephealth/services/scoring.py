"""
Health scoring.

Pure functions that turn the aggregated issue and vulnerability sets into a
single 0-100 score using weighted, severity-scaled deductions.
"""

import math
from dataclasses import dataclass
from typing import Iterable

from dephealth.core.constants import (
    HEALTH_SCORE_MAX,
    HEALTH_SCORE_MIN,
    HEALTH_SCORE_WEIGHTS,
    ISSUE_SEVERITY_MULTIPLIERS,
    SECURITY_SEVERITY_MULTIPLIERS,
    VERSION_MISMATCH_WEIGHT,
)
from dephealth.models.issue import DependencyIssue, IssueType, SecurityIssue


@dataclass
class HealthScoreFactors:
    outdated: float = 0.0
    missing: float = 0.0
    peer_conflicts: float = 0.0
    broken: float = 0.0
    security: float = 0.0


def categorize_issues(
    issues: Iterable[DependencyIssue], security_issues: Iterable[SecurityIssue]
) -> HealthScoreFactors:
    """
    Sum severity multipliers per factor.

    Version mismatches count into ``outdated`` at half weight. Issues of type
    security are scored through the vulnerability list only.
    """
    factors = HealthScoreFactors()

    for issue in issues:
        multiplier = ISSUE_SEVERITY_MULTIPLIERS.get(issue.severity, 1)
        if issue.type == IssueType.OUTDATED:
            factors.outdated += multiplier
        elif issue.type == IssueType.VERSION_MISMATCH:
            factors.outdated += multiplier * VERSION_MISMATCH_WEIGHT
        elif issue.type == IssueType.MISSING:
            factors.missing += multiplier
        elif issue.type == IssueType.PEER_CONFLICT:
            factors.peer_conflicts += multiplier
        elif issue.type == IssueType.BROKEN:
            factors.broken += multiplier

    for vulnerability in security_issues:
        factors.security += SECURITY_SEVERITY_MULTIPLIERS.get(vulnerability.severity, 1)

    return factors


def compute_health_score(
    issues: Iterable[DependencyIssue], security_issues: Iterable[SecurityIssue]
) -> int:
    """
    Compute the project health score.

    Args:
        issues: Aggregated dependency issues
        security_issues: Aggregated security vulnerabilities

    Returns:
        Integer between 0 and 100; exactly 100 when there is nothing to report
    """
    factors = categorize_issues(issues, security_issues)

    deduction = (
        factors.security * HEALTH_SCORE_WEIGHTS["security"]
        + factors.missing * HEALTH_SCORE_WEIGHTS["missing"]
        + factors.peer_conflicts * HEALTH_SCORE_WEIGHTS["peer_conflicts"]
        + factors.outdated * HEALTH_SCORE_WEIGHTS["outdated"]
        + factors.broken * HEALTH_SCORE_WEIGHTS["broken"]
    )
    score = HEALTH_SCORE_MAX - deduction
    score = max(HEALTH_SCORE_MIN, min(HEALTH_SCORE_MAX, score))
    # half-up rounding
    return int(math.floor(score + 0.5))
