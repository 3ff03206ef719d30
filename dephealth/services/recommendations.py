"""
Suggestion Engine for Dependency Issues

Turns aggregated dependency issues and security vulnerabilities into a
deduplicated, ranked list of fix suggestions.
"""

import logging
from typing import Callable, Dict, List, Optional

from dephealth.core.metrics import suggestions_generated_total
from dephealth.models.issue import DependencyIssue, IssueType, SecurityIssue
from dephealth.schemas.scan import PackageManagerVariant
from dephealth.schemas.suggestion import FixSuggestion
from dephealth.services.recommendation.common import (
    deduplicate_suggestions,
    prioritize_suggestions,
)
from dephealth.services.recommendation.dependencies import (
    analyze_broken,
    analyze_missing,
    analyze_outdated,
    analyze_version_mismatch,
)
from dephealth.services.recommendation.peers import (
    analyze_peer_conflict,
    analyze_peer_groups,
)
from dephealth.services.recommendation.strategies import analyze_version_strategy
from dephealth.services.recommendation.vulnerabilities import analyze_vulnerability

logger = logging.getLogger(__name__)

IssueGenerator = Callable[[DependencyIssue, PackageManagerVariant], List[FixSuggestion]]

# Security issue records are covered through the vulnerability list
ISSUE_GENERATORS: Dict[str, Optional[IssueGenerator]] = {
    IssueType.OUTDATED.value: analyze_outdated,
    IssueType.MISSING.value: analyze_missing,
    IssueType.PEER_CONFLICT.value: analyze_peer_conflict,
    IssueType.VERSION_MISMATCH.value: analyze_version_mismatch,
    IssueType.BROKEN.value: analyze_broken,
    IssueType.SECURITY.value: None,
}


class SuggestionEngine:
    """
    Generates fix suggestions for:
    - Outdated packages (safe update paths)
    - Missing and broken installs
    - Peer dependency conflicts (per record and per package)
    - Version mismatches (upgrade/downgrade with stepping stones)
    - Security vulnerabilities
    - Project-wide version strategy and maintenance
    """

    def __init__(self, package_manager: PackageManagerVariant = PackageManagerVariant.NPM):
        self.package_manager = PackageManagerVariant(package_manager)

    def generate_suggestions(
        self,
        issues: List[DependencyIssue],
        vulnerabilities: List[SecurityIssue],
        package_manager: Optional[PackageManagerVariant] = None,
    ) -> List[FixSuggestion]:
        """
        Generate ranked suggestions.

        Args:
            issues: Aggregated dependency issues
            vulnerabilities: Aggregated security vulnerabilities
            package_manager: Overrides the variant used to build commands

        Returns:
            Deduplicated suggestions in final priority order
        """
        variant = PackageManagerVariant(package_manager or self.package_manager)
        suggestions: List[FixSuggestion] = []

        # 1. Per-issue generators
        for issue in issues:
            generator = ISSUE_GENERATORS[IssueType(issue.type).value]
            if generator is not None:
                suggestions.extend(generator(issue, variant))

        # 2. Vulnerabilities
        for vulnerability in vulnerabilities:
            suggestions.extend(analyze_vulnerability(vulnerability, variant))

        # 3. Package-level and ecosystem-level peer strategies
        suggestions.extend(analyze_peer_groups(issues, variant))

        # 4. Version strategy and maintenance
        suggestions.extend(analyze_version_strategy(issues))

        unique = deduplicate_suggestions(suggestions)
        if len(unique) < len(suggestions):
            logger.debug(
                f"Dropped {len(suggestions) - len(unique)} duplicate suggestions"
            )

        ordered = prioritize_suggestions(unique)
        for suggestion in ordered:
            suggestions_generated_total.labels(type=suggestion.type.value).inc()

        logger.info(
            f"Generated {len(ordered)} suggestions for {len(issues)} issues "
            f"and {len(vulnerabilities)} vulnerabilities"
        )
        return ordered
