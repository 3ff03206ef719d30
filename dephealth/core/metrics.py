"""
Prometheus Metrics Collection for Dependency Health

Counters and histograms for analysis runs, aggregation, registry lookups and
fix application. Metrics live in the default registry and are process-wide;
everything else in a run is per-run state.
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from prometheus_client import Counter, Histogram, Info

# =============================================================================
# Application Info Metrics
# =============================================================================

try:
    APP_VERSION = get_version("dephealth")
except PackageNotFoundError:
    APP_VERSION = "unknown"

app_info = Info("dephealth_app", "Application information")
app_info.info(
    {
        "version": APP_VERSION,
        "app_name": "Dependency Health",
    }
)

# =============================================================================
# Analysis Metrics
# =============================================================================

analysis_runs_total = Counter(
    "dephealth_analysis_runs_total",
    "Total analysis runs",
    ["status"],  # success, error
)

analysis_duration_seconds = Histogram(
    "dephealth_analysis_duration_seconds",
    "Duration of a full analysis run",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

analysis_scanner_errors_total = Counter(
    "dephealth_analysis_scanner_errors_total",
    "Scanners that raised instead of returning a result",
    ["scanner"],
)

analysis_health_score = Histogram(
    "dephealth_analysis_health_score",
    "Distribution of computed health scores",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

# =============================================================================
# Aggregation Metrics
# =============================================================================

aggregation_issues_total = Counter(
    "dephealth_aggregation_issues_total",
    "Accepted dependency issues by type",
    ["type"],
)

aggregation_vulnerabilities_total = Counter(
    "dephealth_aggregation_vulnerabilities_total",
    "Accepted security vulnerabilities by severity",
    ["severity"],
)

aggregation_rejected_records_total = Counter(
    "dephealth_aggregation_rejected_records_total",
    "Records rejected by structural validation",
    ["kind"],  # result, issue, vulnerability
)

aggregation_duplicates_total = Counter(
    "dephealth_aggregation_duplicates_total",
    "Records dropped as duplicates",
    ["kind"],  # issue, vulnerability
)

# =============================================================================
# Suggestion Metrics
# =============================================================================

suggestions_generated_total = Counter(
    "dephealth_suggestions_generated_total",
    "Suggestions emitted after deduplication",
    ["type"],
)

# =============================================================================
# External API Metrics
# =============================================================================

external_api_requests_total = Counter(
    "dephealth_external_api_requests_total",
    "Total external API requests",
    ["service"],
)

external_api_errors_total = Counter(
    "dephealth_external_api_errors_total",
    "Total external API errors",
    ["service"],
)

external_api_duration_seconds = Histogram(
    "dephealth_external_api_duration_seconds",
    "External API request duration",
    ["service"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

cache_hits_total = Counter(
    "dephealth_cache_hits_total",
    "Package metadata cache hits",
)

cache_misses_total = Counter(
    "dephealth_cache_misses_total",
    "Package metadata cache misses",
)

# =============================================================================
# Fix Application Metrics
# =============================================================================

fixes_total = Counter(
    "dephealth_fixes_total",
    "Fixes by final state",
    ["state"],  # applied, failed, pending
)

fix_runs_aborted_total = Counter(
    "dephealth_fix_runs_aborted_total",
    "Fix runs aborted after a critical failure",
)
