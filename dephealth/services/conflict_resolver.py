"""
Conflict Resolver

Plans risk-assessed package changes for detected conflicts, validates them,
applies several plans together without contradicting pins, and explains the
conflicts that need manual work.

Compatible versions come from sampling candidates per requirement, not from a
full constraint solve.
"""

import logging
from typing import Dict, List, Optional, Tuple

from dephealth.core.constants import (
    RESOLUTION_CHANGE_THRESHOLD,
    RISK_LEVELS,
    RISK_ORDER,
    STANDARD_MITIGATIONS,
    STRATEGY_ORDER,
)
from dephealth.schemas.conflict import (
    NOT_INSTALLED,
    REMOVED,
    ChangeType,
    Conflict,
    ConflictingPackage,
    ConflictSeverity,
    ConflictType,
    PackageChange,
    Resolution,
    ResolutionReport,
    ResolutionStrategy,
    RiskAssessment,
    UnresolvableConflicts,
)
from dephealth.schemas.scan import ScanContext
from dephealth.schemas.suggestion import RiskLevel
from dephealth.services import versioning
from dephealth.services.recommendation.common import (
    find_compromise_version,
    find_unified_version,
)

logger = logging.getLogger(__name__)

STRATEGY_TEXT: Dict[str, str] = {
    ResolutionStrategy.UPDATE_TO_COMPATIBLE.value: "Update packages to compatible versions",
    ResolutionStrategy.DOWNGRADE_TO_COMPATIBLE.value: "Downgrade packages to compatible versions",
    ResolutionStrategy.ADD_PEER_DEPENDENCY.value: "Add missing peer dependency",
    ResolutionStrategy.REMOVE_CONFLICTING.value: "Remove conflicting package",
}

MANUAL_OPTIONS: Dict[str, List[str]] = {
    ConflictType.PEER_DEPENDENCY.value: [
        "Install the required peer dependency manually",
        "Update packages to versions with compatible peer requirements",
        "Use npm overrides or yarn resolutions to force a specific version",
    ],
    ConflictType.VERSION_RANGE.value: [
        "Update all conflicting packages to their latest compatible versions",
        "Downgrade packages to a common compatible version",
        "Consider using a different package that provides similar functionality",
    ],
    ConflictType.TRANSITIVE.value: [
        "Update direct dependencies to resolve transitive conflicts",
        "Use package manager overrides to force specific transitive versions",
        "Consider switching to a different package manager (npm/yarn/pnpm)",
    ],
}

GENERAL_MANUAL_OPTIONS: List[str] = [
    "Review package documentation for compatibility information",
    "Check package issue trackers for known compatibility problems",
    "Consider contributing to package compatibility improvements",
]


def escalate(level: RiskLevel) -> RiskLevel:
    index = min(RISK_LEVELS.index(level.value) + 1, len(RISK_LEVELS) - 1)
    return RiskLevel(RISK_LEVELS[index])


def has_duplicate_packages(changes: List[PackageChange]) -> bool:
    """Two changes to one package are treated as a circular dependency signal."""
    names = [c.package_name for c in changes]
    return len(names) != len(set(names))


def count_major_changes(resolution: Resolution) -> int:
    return sum(
        1
        for c in resolution.changes
        if c.change_type != ChangeType.REMOVE
        and versioning.crosses_major(c.from_version, c.to_version)
    )


class ConflictResolver:
    """
    Resolves conflicts with a fixed strategy table:
    - peer dependency -> add the peer when it is missing, otherwise update
      or downgrade the installed peer
    - version range -> update, else downgrade, else remove
    - transitive -> update to compatible
    """

    def __init__(self, context: Optional[ScanContext] = None):
        self.context = context

    # ── Resolution planning ──────────────────────────────────────────

    def resolve_conflict(self, conflict: Conflict) -> Resolution:
        target, unreachable = self._find_target(conflict)
        strategy = self._choose_strategy(conflict, target)
        changes = self._plan_changes(conflict, strategy, target)
        risk = self._assess_risk(conflict, changes, unreachable)

        return Resolution(
            strategy=strategy,
            changes=changes,
            explanation=self._explain(conflict, strategy, changes),
            risk_assessment=risk,
        )

    def _current_version(self, package: ConflictingPackage) -> Optional[str]:
        current = versioning.valid(package.version)
        if current:
            return current
        if self.context is not None:
            installed = self.context.installed(package.name)
            if installed is not None and installed.is_valid:
                return versioning.valid(installed.version)
        return None

    def _installed_versions(self, conflict: Conflict) -> Dict[str, List[str]]:
        """Distinct known installed versions per package name, in conflict order."""
        versions: Dict[str, List[str]] = {}
        for package in conflict.packages:
            known = versions.setdefault(package.name, [])
            current = self._current_version(package)
            if current and current not in known:
                known.append(current)
        return versions

    def _all_installed(self, conflict: Conflict) -> List[str]:
        return [v for known in self._installed_versions(conflict).values() for v in known]

    def _find_target(self, conflict: Conflict) -> Tuple[Optional[str], bool]:
        """
        Version every requirement accepts.

        Returns:
            (target, unreachable) where unreachable marks a compromise target
            that does not satisfy every requirement
        """
        requirements = [p.requirement for p in conflict.packages if p.requirement]
        if not requirements:
            ordered = versioning.sort_desc(self._all_installed(conflict))
            return (ordered[0] if ordered else None), False

        unified = find_unified_version(requirements)
        if unified:
            return unified, False

        compromise = find_compromise_version(requirements)
        logger.debug(
            f"No version satisfies {requirements} for {conflict.package_names}, "
            f"falling back to {compromise}"
        )
        return compromise, compromise is not None

    def _choose_strategy(
        self, conflict: Conflict, target: Optional[str]
    ) -> ResolutionStrategy:
        if conflict.type == ConflictType.PEER_DEPENDENCY:
            installed = self._installed_versions(conflict)
            if target is None or not all(installed.values()):
                return ResolutionStrategy.ADD_PEER_DEPENDENCY
        elif conflict.type == ConflictType.TRANSITIVE:
            return ResolutionStrategy.UPDATE_TO_COMPATIBLE
        elif target is None:
            return ResolutionStrategy.REMOVE_CONFLICTING

        known = self._all_installed(conflict)
        if known and all(versioning.gt(v, target) for v in known):
            return ResolutionStrategy.DOWNGRADE_TO_COMPATIBLE
        return ResolutionStrategy.UPDATE_TO_COMPATIBLE

    def _plan_changes(
        self,
        conflict: Conflict,
        strategy: ResolutionStrategy,
        target: Optional[str],
    ) -> List[PackageChange]:
        """
        One change per package name. When installs of a package sit on both
        sides of the target, the change is an update from the oldest install.
        """
        if not conflict.packages:
            return []

        if strategy == ResolutionStrategy.REMOVE_CONFLICTING:
            # first package with the most listed conflicts
            victim = max(conflict.packages, key=lambda p: len(p.conflicts_with))
            return [
                PackageChange(
                    package_name=victim.name,
                    from_version=victim.version,
                    to_version=REMOVED,
                    change_type=ChangeType.REMOVE,
                )
            ]

        if target is None:
            return []

        changes: List[PackageChange] = []
        for name, known in self._installed_versions(conflict).items():
            if not known:
                changes.append(
                    PackageChange(
                        package_name=name,
                        from_version=NOT_INSTALLED,
                        to_version=target,
                        change_type=ChangeType.INSTALL,
                    )
                )
                continue

            older = versioning.sort_desc(v for v in known if versioning.lt(v, target))
            newer = versioning.sort_desc(v for v in known if versioning.gt(v, target))
            if older:
                changes.append(
                    PackageChange(
                        package_name=name,
                        from_version=older[-1],
                        to_version=target,
                        change_type=ChangeType.UPDATE,
                    )
                )
            elif newer:
                changes.append(
                    PackageChange(
                        package_name=name,
                        from_version=newer[0],
                        to_version=target,
                        change_type=ChangeType.DOWNGRADE,
                    )
                )
        return changes

    def _assess_risk(
        self, conflict: Conflict, changes: List[PackageChange], unreachable: bool
    ) -> RiskAssessment:
        level = RiskLevel.LOW
        factors: List[str] = []
        mitigations: List[str] = []

        if conflict.severity == ConflictSeverity.CRITICAL:
            level = escalate(level)
            factors.append("Critical conflict requires immediate attention")

        if len(changes) > RESOLUTION_CHANGE_THRESHOLD:
            level = escalate(level)
            factors.append(f"Multiple packages affected ({len(changes)} changes)")

        if any(c.change_type == ChangeType.REMOVE for c in changes):
            level = escalate(level)
            factors.append("Package removal may break functionality")
            mitigations.append("Test thoroughly after removal")

        if any(c.change_type == ChangeType.DOWNGRADE for c in changes):
            level = escalate(level)
            factors.append("Version downgrades may remove features")
            mitigations.append("Review changelog for breaking changes")

        if any(
            c.change_type != ChangeType.REMOVE
            and versioning.crosses_major(c.from_version, c.to_version)
            for c in changes
        ):
            level = escalate(level)
            factors.append("Major version changes may introduce breaking changes")
            mitigations.append("Review migration guides and test extensively")

        if unreachable:
            level = escalate(level)
            factors.append(
                "No version satisfies every requirement; using the highest minimum version"
            )

        if level != RiskLevel.LOW:
            mitigations.extend(STANDARD_MITIGATIONS)

        return RiskAssessment(level=level, factors=factors, mitigations=mitigations)

    def _explain(
        self,
        conflict: Conflict,
        strategy: ResolutionStrategy,
        changes: List[PackageChange],
    ) -> str:
        lines = [
            f"Resolving {conflict.type.value} conflict for "
            f"{', '.join(conflict.package_names)}:",
            "",
            f"Strategy: {STRATEGY_TEXT[strategy.value]}",
            "",
            "Changes to be made:",
        ]
        for change in changes:
            if change.change_type == ChangeType.UPDATE:
                lines.append(
                    f"- Update {change.package_name} from {change.from_version} "
                    f"to {change.to_version}"
                )
            elif change.change_type == ChangeType.DOWNGRADE:
                lines.append(
                    f"- Downgrade {change.package_name} from {change.from_version} "
                    f"to {change.to_version}"
                )
            elif change.change_type == ChangeType.INSTALL:
                lines.append(f"- Install {change.package_name} version {change.to_version}")
            else:
                lines.append(
                    f"- Remove {change.package_name} (currently {change.from_version})"
                )
        if not changes:
            lines.append("- No changes required (conflict may be resolved by other means)")
        return "\n".join(lines)

    # ── Validation ───────────────────────────────────────────────────

    def validate_resolution(self, resolution: Resolution) -> bool:
        """Check a resolution without modifying it. Same input, same answer."""
        for change in resolution.changes:
            if change.change_type == ChangeType.REMOVE:
                continue
            if not versioning.valid(change.to_version):
                logger.debug(
                    f"Invalid target version {change.to_version!r} for {change.package_name}"
                )
                return False
            if not versioning.valid(change.from_version):
                continue
            if change.change_type == ChangeType.UPDATE and versioning.lt(
                change.to_version, change.from_version
            ):
                logger.debug(f"Update of {change.package_name} goes backwards")
                return False
            if change.change_type == ChangeType.DOWNGRADE and versioning.gt(
                change.to_version, change.from_version
            ):
                logger.debug(f"Downgrade of {change.package_name} goes forwards")
                return False

        if has_duplicate_packages(resolution.changes):
            logger.debug("Resolution changes one package twice")
            return False

        risk = resolution.risk_assessment
        if risk.level == RiskLevel.CRITICAL and not risk.mitigations:
            logger.debug("Critical resolution without mitigations")
            return False
        return True

    # ── Applying several resolutions ─────────────────────────────────

    def order_resolutions(self, resolutions: List[Resolution]) -> List[Resolution]:
        """Least risky, fewest major jumps, safest strategy, fewest changes first."""
        return sorted(
            resolutions,
            key=lambda r: (
                RISK_ORDER[r.risk_assessment.level.value],
                count_major_changes(r),
                STRATEGY_ORDER[r.strategy.value],
                len(r.changes),
            ),
        )

    def apply_resolutions(self, resolutions: List[Resolution]) -> ResolutionReport:
        report = ResolutionReport()
        pinned: Dict[str, str] = {}

        for resolution in self.order_resolutions(resolutions):
            if not self.validate_resolution(resolution):
                report.failed.append(resolution)
                report.compatibility_issues.append(
                    f"Resolution ({resolution.strategy.value}) failed validation"
                )
                continue

            clash = self._find_pin_clash(resolution, pinned)
            if clash:
                report.failed.append(resolution)
                report.compatibility_issues.append(clash)
                continue

            for change in resolution.changes:
                if change.change_type == ChangeType.REMOVE:
                    pinned.pop(change.package_name, None)
                else:
                    pinned[change.package_name] = change.to_version
            report.applied.append(resolution)

        logger.info(
            f"Applied {len(report.applied)} of {len(resolutions)} resolutions, "
            f"{len(report.failed)} rejected"
        )
        return report

    @staticmethod
    def _find_pin_clash(resolution: Resolution, pinned: Dict[str, str]) -> Optional[str]:
        for change in resolution.changes:
            if change.change_type == ChangeType.REMOVE:
                continue
            current = pinned.get(change.package_name)
            if current is None or current == change.to_version:
                continue
            parsed_pin = versioning.parse(current)
            parsed_target = versioning.parse(change.to_version)
            if (
                parsed_pin is None
                or parsed_target is None
                or parsed_pin.major != parsed_target.major
            ):
                return (
                    f"Incompatible versions for {change.package_name}: "
                    f"{current} vs {change.to_version}"
                )
        return None

    # ── Unresolvable conflicts ───────────────────────────────────────

    def handle_unresolvable_conflicts(self, conflicts: List[Conflict]) -> UnresolvableConflicts:
        result = UnresolvableConflicts()
        for conflict in conflicts:
            resolution = self.resolve_conflict(conflict)
            valid = self.validate_resolution(resolution)
            if valid and resolution.risk_assessment.level != RiskLevel.CRITICAL:
                continue
            result.unresolvable.append(conflict)
            result.explanations.append(self._explain_unresolvable(conflict, resolution))
            result.manual_options.append(self.manual_resolution_options(conflict))

        if result.unresolvable:
            logger.warning(
                f"{len(result.unresolvable)} conflicts need manual resolution"
            )
        return result

    def _explain_unresolvable(self, conflict: Conflict, resolution: Resolution) -> str:
        packages = ", ".join(f"{p.name}@{p.version}" for p in conflict.packages)
        lines = [
            f"Cannot automatically resolve {conflict.type.value} conflict for packages: "
            f"{packages}",
            "",
            "Reasons:",
        ]
        risk = resolution.risk_assessment
        if risk.level == RiskLevel.CRITICAL:
            lines.append("- Resolution would introduce critical breaking changes")
            lines.append(f"- Risk factors: {', '.join(risk.factors)}")
        if not resolution.changes:
            lines.append("- No viable version changes could be identified")

        requirements = [p.requirement for p in conflict.packages if p.requirement]
        if len(requirements) > 1 and find_unified_version(requirements) is None:
            lines.append("- Package version requirements are fundamentally incompatible")
        if has_duplicate_packages(resolution.changes):
            lines.append("- Resolution would create circular dependencies")
        return "\n".join(lines)

    @staticmethod
    def manual_resolution_options(conflict: Conflict) -> List[str]:
        return MANUAL_OPTIONS[conflict.type.value] + GENERAL_MANUAL_OPTIONS
