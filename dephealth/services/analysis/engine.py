import fnmatch
import logging
import time
from typing import List, Optional

from dephealth.core.cache import PackageMetadataCache
from dephealth.core.config import settings
from dephealth.core.metrics import (
    analysis_duration_seconds,
    analysis_health_score,
    analysis_runs_total,
)
from dephealth.models.issue import DependencyIssue, SecurityIssue
from dephealth.schemas.conflict import ResolutionPlan
from dephealth.schemas.scan import AnalysisResult, ProjectInfo, ScanContext
from dephealth.schemas.suggestion import FixSuggestion
from dephealth.services.aggregator import ResultAggregator
from dephealth.services.analysis.registry import ScannerRegistry, default_registry
from dephealth.services.conflict_detector import detect_conflicts
from dephealth.services.conflict_resolver import ConflictResolver
from dephealth.services.recommendations import SuggestionEngine
from dephealth.services.registry_client import RegistryClient
from dephealth.services.scoring import compute_health_score

logger = logging.getLogger(__name__)


def filter_excluded_issues(
    issues: List[DependencyIssue], patterns: List[str]
) -> List[DependencyIssue]:
    if not patterns:
        return issues
    return [
        issue
        for issue in issues
        if not any(fnmatch.fnmatchcase(issue.package_name, p) for p in patterns)
    ]


def filter_allowed_vulnerabilities(
    vulnerabilities: List[SecurityIssue], allowed: List[str]
) -> List[SecurityIssue]:
    if not allowed:
        return vulnerabilities
    allowed_ids = set(allowed)
    return [v for v in vulnerabilities if v.vulnerability.id not in allowed_ids]


class DependencyAnalyzer:
    """
    Runs one analysis pass: scanners, aggregation, filtering and scoring.

    Every call to analyze works on fresh per-run state; only the scanner
    registry is reused.
    """

    def __init__(
        self,
        registry: Optional[ScannerRegistry] = None,
        exclude_packages: Optional[List[str]] = None,
        allowed_vulnerabilities: Optional[List[str]] = None,
    ):
        self.registry = registry if registry is not None else default_registry()
        self.exclude_packages = (
            settings.EXCLUDE_PACKAGES if exclude_packages is None else exclude_packages
        )
        self.allowed_vulnerabilities = (
            settings.ALLOWED_VULNERABILITIES
            if allowed_vulnerabilities is None
            else allowed_vulnerabilities
        )

    async def analyze(self, context: ScanContext) -> AnalysisResult:
        start_time = time.time()
        if context.registry is None:
            context.registry = RegistryClient(cache=PackageMetadataCache())

        try:
            results = await self.registry.run_all(context)
        except Exception:
            analysis_runs_total.labels(status="error").inc()
            raise

        issues, vulnerabilities = ResultAggregator().aggregate(results)

        kept_issues = filter_excluded_issues(issues, self.exclude_packages)
        kept_vulnerabilities = filter_allowed_vulnerabilities(
            vulnerabilities, self.allowed_vulnerabilities
        )
        if len(kept_issues) < len(issues) or len(kept_vulnerabilities) < len(vulnerabilities):
            logger.info(
                f"Filtered {len(issues) - len(kept_issues)} excluded issues and "
                f"{len(vulnerabilities) - len(kept_vulnerabilities)} allowed vulnerabilities"
            )

        score = compute_health_score(kept_issues, kept_vulnerabilities)
        variant = context.package_manager.get_variant()

        result = AnalysisResult(
            health_score=score,
            issues=kept_issues,
            security_vulnerabilities=kept_vulnerabilities,
            package_manager=variant,
            project=ProjectInfo(
                name=context.manifest.name,
                version=context.manifest.version,
                path=context.project_path,
                package_manager=variant,
            ),
            scanner_errors={r.producer: r.error for r in results if r.error},
        )

        duration = time.time() - start_time
        analysis_duration_seconds.observe(duration)
        analysis_health_score.observe(score)
        analysis_runs_total.labels(status="success").inc()
        logger.info(
            f"Analysis of {result.project.name} finished in {duration:.2f}s: "
            f"score {score}, {len(kept_issues)} issues, "
            f"{len(kept_vulnerabilities)} vulnerabilities"
        )
        return result

    def suggest_fixes(self, result: AnalysisResult) -> List[FixSuggestion]:
        engine = SuggestionEngine(result.package_manager)
        return engine.generate_suggestions(result.issues, result.security_vulnerabilities)

    def plan_resolutions(
        self, result: AnalysisResult, context: Optional[ScanContext] = None
    ) -> ResolutionPlan:
        """Detect conflicts, resolve each one, apply them together and explain the rest."""
        resolver = ConflictResolver(context)
        conflicts = detect_conflicts(result.issues)
        resolutions = [resolver.resolve_conflict(c) for c in conflicts]
        return ResolutionPlan(
            conflicts=conflicts,
            resolutions=resolutions,
            report=resolver.apply_resolutions(resolutions),
            unresolvable=resolver.handle_unresolvable_conflicts(conflicts),
        )
