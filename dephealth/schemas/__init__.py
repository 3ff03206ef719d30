"""
Schema Exports

Centralized export of the dataclasses used across the package.
"""

# Conflict schemas
from dephealth.schemas.conflict import (
    ChangeType,
    Conflict,
    ConflictingPackage,
    ConflictSeverity,
    ConflictType,
    PackageChange,
    Resolution,
    ResolutionPlan,
    ResolutionReport,
    ResolutionStrategy,
    RiskAssessment,
    UnresolvableConflicts,
)

# Scan schemas
from dephealth.schemas.scan import (
    AnalysisResult,
    InstalledPackage,
    Lockfile,
    Manifest,
    PackageManagerVariant,
    ProjectInfo,
    ScanContext,
    ScanResult,
)

# Suggestion schemas
from dephealth.schemas.suggestion import (
    ActionType,
    FixAction,
    FixSuggestion,
    FixType,
    RiskLevel,
)

__all__ = [
    "ActionType",
    "AnalysisResult",
    "ChangeType",
    "Conflict",
    "ConflictingPackage",
    "ConflictSeverity",
    "ConflictType",
    "FixAction",
    "FixSuggestion",
    "FixType",
    "InstalledPackage",
    "Lockfile",
    "Manifest",
    "PackageChange",
    "PackageManagerVariant",
    "ProjectInfo",
    "Resolution",
    "ResolutionPlan",
    "ResolutionReport",
    "ResolutionStrategy",
    "RiskAssessment",
    "RiskLevel",
    "ScanContext",
    "ScanResult",
    "UnresolvableConflicts",
]
