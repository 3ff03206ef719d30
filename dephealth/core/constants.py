"""
Shared Constants

Centralized constants used by the aggregator, the scorer, the conflict
resolver and the suggestion engine.
"""

from typing import Dict, List, Optional, Tuple

# Severity order for sorting (higher value = more severe)
ISSUE_SEVERITY_ORDER: Dict[str, int] = {
    "critical": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}

SECURITY_SEVERITY_ORDER: Dict[str, int] = {
    "critical": 4,
    "high": 3,
    "moderate": 2,
    "low": 1,
}

CONFLICT_SEVERITY_ORDER: Dict[str, int] = {
    "critical": 3,
    "error": 2,
    "warning": 1,
}

# Risk order (lower value = safer)
RISK_ORDER: Dict[str, int] = {
    "low": 0,
    "medium": 1,
    "high": 2,
    "critical": 3,
}

RISK_LEVELS: List[str] = ["low", "medium", "high", "critical"]


def get_severity_value(severity: Optional[str], order: Dict[str, int]) -> int:
    """Get numeric value for severity. Higher = more severe."""
    if not severity:
        return 0
    return order.get(severity.lower(), 0)


def get_risk_value(risk: Optional[str]) -> int:
    """Get numeric value for a risk level. Unknown risk counts as critical."""
    if not risk:
        return RISK_ORDER["critical"]
    return RISK_ORDER.get(risk.lower(), RISK_ORDER["critical"])


# =============================================================================
# Health Score
# =============================================================================

ISSUE_SEVERITY_MULTIPLIERS: Dict[str, float] = {
    "critical": 20,
    "high": 10,
    "medium": 5,
    "low": 2,
}

SECURITY_SEVERITY_MULTIPLIERS: Dict[str, float] = {
    "critical": 50,
    "high": 25,
    "moderate": 10,
    "low": 5,
}

# Version mismatches count into the outdated factor at this fraction
VERSION_MISMATCH_WEIGHT: float = 0.5

HEALTH_SCORE_WEIGHTS: Dict[str, float] = {
    "security": 0.4,
    "missing": 0.15,
    "peer_conflicts": 0.15,
    "outdated": 0.2,
    "broken": 0.1,
}

HEALTH_SCORE_MAX: int = 100
HEALTH_SCORE_MIN: int = 0


# =============================================================================
# Conflict Resolution
# =============================================================================

# Safer strategies first
STRATEGY_ORDER: Dict[str, int] = {
    "update_to_compatible": 0,
    "add_peer_dependency": 1,
    "downgrade_to_compatible": 2,
    "remove_conflicting": 3,
}

# More than this many changes escalates risk
RESOLUTION_CHANGE_THRESHOLD: int = 3

# Sampled candidates per range when searching a compatible version
COMPATIBLE_SAMPLE_PATCHES: int = 5
COMPATIBLE_SAMPLE_MINORS: int = 5

TRANSITIVE_MARKERS: List[str] = ["transitive", "indirect"]

STANDARD_MITIGATIONS: List[str] = [
    "Create a backup before applying",
    "Run the full test suite after applying",
]


# =============================================================================
# Suggestion Ranking
# =============================================================================

FIX_TYPE_PRIORITY: Dict[str, int] = {
    "install_missing": 0,
    "resolve_conflict": 1,
    "update_outdated": 2,
    "regenerate_lockfile": 3,
}

SECURITY_KEYWORDS: List[str] = [
    "security",
    "vulnerability",
    "cve",
    "exploit",
    "malicious",
]

BLOCKING_KEYWORDS: List[str] = ["missing", "broken", "corrupted", "failed", "error"]

IMPACT_SCORE_PER_ACTION: int = 10

# Substring weights, lower total sorts earlier
IMPACT_DESCRIPTION_WEIGHTS: Dict[str, int] = {
    "manual": 50,
    "review": 30,
    "intermediate": 20,
    "step-by-step": 15,
}

IMPACT_TEXT_WEIGHTS: Dict[str, int] = {
    "Low risk": -20,
    "backward compatible": -15,
    "bug fixes": -10,
    "breaking changes": 40,
    "extensive testing": 30,
    "may cause runtime issues": 50,
}

# Breaking-change estimator thresholds
MAJOR_DELTA_CRITICAL: int = 2
MINOR_DELTA_MEDIUM: int = 5

MAX_INTERMEDIATE_STEPS: int = 2

# Supplementary strategy thresholds
PHASED_MAJOR_UPDATE_THRESHOLD: int = 3
BATCH_MINOR_UPDATE_THRESHOLD: int = 5
HIGH_RISK_CONCENTRATION_THRESHOLD: int = 2
AUTOMATION_ISSUE_THRESHOLD: int = 10
PINNING_OUTDATED_THRESHOLD: int = 5
PEER_AUDIT_THRESHOLD: int = 3


# =============================================================================
# Security Scanner
# =============================================================================

# CVSS lower bounds per severity, checked in order
CVSS_SEVERITY_THRESHOLDS: List[Tuple[float, str]] = [
    (9.0, "critical"),
    (7.0, "high"),
    (4.0, "moderate"),
]

# Injection-class weaknesses escalate at or above this score
CRITICAL_CWES: List[str] = ["CWE-78", "CWE-79", "CWE-89", "CWE-94", "CWE-611"]
CRITICAL_CWE_MIN_CVSS: float = 6.0

# Widely depended-on packages escalate at or above this score
CRITICAL_PACKAGES: List[str] = [
    "express",
    "react",
    "vue",
    "angular",
    "lodash",
    "axios",
    "request",
    "webpack",
    "babel-core",
    "typescript",
    "eslint",
    "jest",
]
CRITICAL_PACKAGE_MIN_CVSS: float = 5.0

# Unpatched advisories at or above this score escalate high to critical
UNPATCHED_ESCALATION_CVSS: float = 7.0
