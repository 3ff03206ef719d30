from dephealth.services.analysis.context import build_context, load_manifest
from dephealth.services.analysis.engine import (
    DependencyAnalyzer,
    filter_allowed_vulnerabilities,
    filter_excluded_issues,
)
from dephealth.services.analysis.registry import ScannerRegistry, default_registry

__all__ = [
    # Context
    "build_context",
    "load_manifest",
    # Engine
    "DependencyAnalyzer",
    "filter_allowed_vulnerabilities",
    "filter_excluded_issues",
    # Registry
    "ScannerRegistry",
    "default_registry",
]
