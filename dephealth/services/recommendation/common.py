import re
from typing import List, Optional

from dephealth.core.constants import (
    BLOCKING_KEYWORDS,
    COMPATIBLE_SAMPLE_MINORS,
    COMPATIBLE_SAMPLE_PATCHES,
    FIX_TYPE_PRIORITY,
    IMPACT_DESCRIPTION_WEIGHTS,
    IMPACT_SCORE_PER_ACTION,
    IMPACT_TEXT_WEIGHTS,
    MAJOR_DELTA_CRITICAL,
    MINOR_DELTA_MEDIUM,
    RISK_ORDER,
    SECURITY_KEYWORDS,
)
from dephealth.models.issue import SecuritySeverity
from dephealth.schemas.conflict import RiskAssessment
from dephealth.schemas.suggestion import FixSuggestion, FixType, RiskLevel
from dephealth.services import versioning


# ── Breaking-change risk ─────────────────────────────────────────────


def estimate_breaking_change_risk(current_version: str, target_version: str) -> RiskLevel:
    """Estimate the risk of moving from one version to another from the semver deltas."""
    current = versioning.parse(current_version)
    target = versioning.parse(target_version)
    if current is None or target is None:
        return RiskLevel.HIGH

    major_diff = target.major - current.major
    minor_diff = target.minor - current.minor

    if major_diff > MAJOR_DELTA_CRITICAL:
        return RiskLevel.CRITICAL
    if major_diff > 0:
        return RiskLevel.HIGH
    if major_diff < 0 or (major_diff == 0 and minor_diff < 0):
        return RiskLevel.MEDIUM
    if minor_diff > 0:
        # pre-1.0 packages may break on minor bumps
        if current.major == 0:
            return RiskLevel.HIGH
        if minor_diff > MINOR_DELTA_MEDIUM:
            return RiskLevel.MEDIUM
    return RiskLevel.LOW


def assess_version_change(current_version: str, target_version: str) -> RiskAssessment:
    """Risk level plus the factors and mitigations behind it."""
    level = estimate_breaking_change_risk(current_version, target_version)
    factors: List[str] = []
    mitigations: List[str] = []

    current = versioning.parse(current_version)
    target = versioning.parse(target_version)
    if current is None or target is None:
        factors.append("Invalid semantic versioning detected")
        mitigations.append("Review package documentation for version compatibility")
        return RiskAssessment(level=level, factors=factors, mitigations=mitigations)

    major_diff = target.major - current.major
    minor_diff = target.minor - current.minor
    patch_diff = target.micro - current.micro

    if major_diff > 0:
        plural = "s" if major_diff > 1 else ""
        factors.append(f"Major version increase ({major_diff} version{plural})")
        factors.append("Potential breaking changes in API")
        mitigations.append("Review CHANGELOG.md or release notes")
        mitigations.append("Test thoroughly before deploying")
        mitigations.append("Consider updating in stages")
    if major_diff < 0:
        factors.append("Version downgrade requested")
        factors.append("May remove features or introduce bugs")
        mitigations.append("Verify all required features are available in target version")
    if current.major == 0 or target.major == 0:
        factors.append("Pre-1.0 package version involved")
        factors.append("Semantic versioning rules may not apply strictly")
        mitigations.append("Check package documentation for stability guarantees")
    if minor_diff > MINOR_DELTA_MEDIUM:
        factors.append("Large minor version jump")
        factors.append("Significant feature additions likely")
        mitigations.append("Review new features for potential conflicts")
    if patch_diff > 10:
        factors.append("Many patch versions skipped")
        mitigations.append("Review patch notes for any behavior changes")

    if factors:
        mitigations.append("Run full test suite after update")
        mitigations.append("Create backup before applying changes")

    return RiskAssessment(level=level, factors=factors, mitigations=mitigations)


def security_risk(severity: str) -> RiskLevel:
    """Security fixes carry the advisory severity, not the version delta."""
    mapping = {
        SecuritySeverity.CRITICAL.value: RiskLevel.CRITICAL,
        SecuritySeverity.HIGH.value: RiskLevel.HIGH,
        SecuritySeverity.MODERATE.value: RiskLevel.MEDIUM,
        SecuritySeverity.LOW.value: RiskLevel.LOW,
    }
    return mapping.get(str(severity).lower(), RiskLevel.HIGH)


# ── Compatible version search ────────────────────────────────────────


def sample_candidates(requirement: str) -> List[str]:
    """
    Best-effort candidate versions for a requirement.

    Exact versions are returned as-is. For ranges: the minimum satisfying
    version plus a few patch and minor increments that stay in range.
    """
    exact = versioning.valid(requirement)
    if exact:
        return [exact]

    lowest = versioning.min_version(requirement)
    if lowest is None:
        return []

    candidates = [lowest]
    current = lowest
    for _ in range(COMPATIBLE_SAMPLE_PATCHES):
        current = versioning.inc(current, "patch")
        if versioning.satisfies(current, requirement):
            candidates.append(current)
    current = lowest
    for _ in range(COMPATIBLE_SAMPLE_MINORS):
        current = versioning.inc(current, "minor")
        if versioning.satisfies(current, requirement):
            candidates.append(current)
    return versioning.sort_desc(candidates)


def find_unified_version(requirements: List[str]) -> Optional[str]:
    """Highest sampled version satisfying every requirement, or None."""
    requirements = [r for r in requirements if r]
    if not requirements:
        return None

    pool: List[str] = []
    for requirement in requirements:
        pool.extend(sample_candidates(requirement))

    matching = [
        v for v in pool if all(versioning.satisfies(v, r) for r in requirements)
    ]
    ordered = versioning.sort_desc(matching)
    return ordered[0] if ordered else None


def find_compromise_version(requirements: List[str]) -> Optional[str]:
    """Highest of the per-requirement minimum versions."""
    minimums = [versioning.min_version(r) for r in requirements if r]
    ordered = versioning.sort_desc(v for v in minimums if v)
    return ordered[0] if ordered else None


def find_compatible_versions(current_version: str, expected_version: str) -> List[str]:
    """
    Candidate versions satisfying both the installed version (or range) and
    the expected requirement, newest first.

    When the two do not intersect, fall back to the higher minimum and the
    major release after it.
    """
    current_range = versioning.valid_range(current_version)
    expected_range = versioning.valid_range(expected_version)

    if current_range is None or expected_range is None:
        fallback: List[str] = []
        if versioning.valid(expected_version):
            fallback.append(expected_version)
        if versioning.valid(current_version) and current_version != expected_version:
            fallback.append(current_version)
        return versioning.sort_desc(fallback)

    pool: List[str] = []
    for value in (current_version, expected_version):
        if versioning.valid(value):
            pool.append(value)
        pool.extend(sample_candidates(value))

    compatible = [
        v for v in pool if current_range.contains(v) and expected_range.contains(v)
    ]
    if compatible:
        return versioning.sort_desc(compatible)

    compromise = find_compromise_version([current_version, expected_version])
    if compromise is None:
        return []
    closest = [compromise]
    next_major = versioning.inc(compromise, "major")
    if next_major:
        closest.append(next_major)
    return versioning.sort_desc(closest)


def widened_range(current_version: str, expected_version: str) -> Optional[str]:
    """A range accepting both the installed and the expected version."""
    current = versioning.min_version(current_version)
    expected = versioning.min_version(expected_version)
    if current is None or expected is None:
        return None

    lower, higher = sorted([current, expected], key=versioning.parse)
    if versioning.major(lower) == versioning.major(higher):
        return f"^{lower}"
    return f">={lower} <{versioning.major(higher) + 1}.0.0"


# ── Ranking ──────────────────────────────────────────────────────────


def is_security_fix(suggestion: FixSuggestion) -> bool:
    text = f"{suggestion.description} {suggestion.estimated_impact}".lower()
    return any(keyword in text for keyword in SECURITY_KEYWORDS)


def is_blocking(suggestion: FixSuggestion) -> bool:
    if suggestion.type == FixType.INSTALL_MISSING:
        return True
    description = suggestion.description.lower()
    return any(keyword in description for keyword in BLOCKING_KEYWORDS)


def calculate_impact_score(suggestion: FixSuggestion) -> int:
    """Lower score = simpler and safer, sorts earlier."""
    score = len(suggestion.actions) * IMPACT_SCORE_PER_ACTION
    for needle, weight in IMPACT_DESCRIPTION_WEIGHTS.items():
        if needle in suggestion.description:
            score += weight
    for needle, weight in IMPACT_TEXT_WEIGHTS.items():
        if needle in suggestion.estimated_impact:
            score += weight
    return max(0, score)


def _sort_key(suggestion: FixSuggestion) -> tuple:
    security = is_security_fix(suggestion)
    risk = RISK_ORDER[suggestion.risk.value]
    return (
        0 if security else 1,
        -risk if security else 0,
        0 if is_blocking(suggestion) else 1,
        0 if security else risk,
        FIX_TYPE_PRIORITY[suggestion.type.value],
        calculate_impact_score(suggestion),
    )


def prioritize_suggestions(suggestions: List[FixSuggestion]) -> List[FixSuggestion]:
    """
    Order suggestions: security first (most severe first), then blocking
    fixes, then ascending risk, fix type priority and impact score. Stable.
    """
    return sorted(suggestions, key=_sort_key)


def normalize_description(description: str) -> str:
    return re.sub(r"\s+", " ", description.lower()).strip()


def deduplicate_suggestions(suggestions: List[FixSuggestion]) -> List[FixSuggestion]:
    """Drop suggestions sharing type and normalized description; first one wins."""
    seen = set()
    unique: List[FixSuggestion] = []
    for suggestion in suggestions:
        key = f"{suggestion.type.value}:{normalize_description(suggestion.description)}"
        if key in seen:
            continue
        seen.add(key)
        unique.append(suggestion)
    return unique
