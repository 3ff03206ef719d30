"""
Fix application

Applies fix suggestions through a package manager adapter, one fix at a time.
Each fix moves Pending -> Applying -> Applied | Failed. A failed Critical-risk
fix stops the run and triggers the backup restore exactly once.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from dephealth.core.config import settings
from dephealth.core.constants import get_risk_value
from dephealth.core.metrics import fix_runs_aborted_total, fixes_total
from dephealth.schemas.suggestion import ActionType, FixAction, FixSuggestion, RiskLevel
from dephealth.services.adapters.base import AdapterError, PackageManagerAdapter
from dephealth.services.recommendation.common import is_security_fix

logger = logging.getLogger(__name__)

RestoreBackup = Callable[[], Awaitable[None]]


class FixState(str, Enum):
    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass
class FixOutcome:
    suggestion: FixSuggestion
    state: FixState = FixState.PENDING
    error: Optional[str] = None


@dataclass
class FixReport:
    outcomes: List[FixOutcome] = field(default_factory=list)
    aborted: bool = False
    backup_restored: bool = False
    errors: List[str] = field(default_factory=list)

    def _in_state(self, state: FixState) -> List[FixSuggestion]:
        return [o.suggestion for o in self.outcomes if o.state == state]

    @property
    def applied(self) -> List[FixSuggestion]:
        return self._in_state(FixState.APPLIED)

    @property
    def failed(self) -> List[FixSuggestion]:
        return self._in_state(FixState.FAILED)

    @property
    def pending(self) -> List[FixSuggestion]:
        return self._in_state(FixState.PENDING)

    @property
    def success(self) -> bool:
        return bool(self.applied) and not self.aborted


class FixApplier:
    def __init__(
        self,
        adapter: PackageManagerAdapter,
        restore_backup: Optional[RestoreBackup] = None,
        max_risk: Optional[str] = None,
    ):
        self.adapter = adapter
        self.restore_backup = restore_backup
        self.max_risk = RiskLevel(
            (max_risk or settings.AUTOFIX_MAX_RISK_LEVEL).lower()
        )

    def is_fixable(self, suggestion: FixSuggestion) -> bool:
        """
        A suggestion is applied automatically only if it has concrete actions,
        every package action names its package, and its risk is within
        max_risk. Security fixes are always eligible.
        """
        if not suggestion.actions:
            return False
        for action in suggestion.actions:
            if action.type != ActionType.REGENERATE_LOCKFILE and not action.package_name:
                return False
        if is_security_fix(suggestion):
            return True
        return get_risk_value(suggestion.risk.value) <= get_risk_value(self.max_risk.value)

    def get_fixable(self, suggestions: List[FixSuggestion]) -> List[FixSuggestion]:
        return [s for s in suggestions if self.is_fixable(s)]

    async def _run_action(self, action: FixAction) -> None:
        if action.type == ActionType.INSTALL:
            await self.adapter.install_package(action.package_name, action.version)
        elif action.type == ActionType.UPDATE:
            if not action.version:
                raise ValueError(f"Update of {action.package_name} needs a version")
            await self.adapter.update_package(action.package_name, action.version)
        elif action.type == ActionType.REMOVE:
            await self.adapter.remove_package(action.package_name)
        elif action.type == ActionType.REGENERATE_LOCKFILE:
            await self.adapter.regenerate_lockfile()
        else:
            raise ValueError(f"Unknown fix action type: {action.type}")

    async def apply_single(self, suggestion: FixSuggestion) -> Optional[str]:
        """Run every action of one suggestion in order. Returns the error, or None."""
        for action in suggestion.actions:
            try:
                await self._run_action(action)
            except AdapterError as e:
                logger.error(
                    f"Fix '{suggestion.description}' failed: {e} "
                    f"(command={e.command}, exit_code={e.exit_code})"
                )
                return str(e)
            except ValueError as e:
                logger.error(f"Fix '{suggestion.description}' is malformed: {e}")
                return str(e)
        return None

    async def apply(self, suggestions: List[FixSuggestion]) -> FixReport:
        report = FixReport(outcomes=[FixOutcome(suggestion=s) for s in suggestions])

        for outcome in report.outcomes:
            outcome.state = FixState.APPLYING
            error = await self.apply_single(outcome.suggestion)
            if error is None:
                outcome.state = FixState.APPLIED
                continue

            outcome.state = FixState.FAILED
            outcome.error = error
            report.errors.append(
                f"Failed to apply fix \"{outcome.suggestion.description}\": {error}"
            )

            if outcome.suggestion.risk == RiskLevel.CRITICAL:
                report.aborted = True
                fix_runs_aborted_total.inc()
                await self._restore(report)
                break

        for outcome in report.outcomes:
            fixes_total.labels(state=outcome.state.value).inc()

        logger.info(
            f"Fix run finished: {len(report.applied)} applied, {len(report.failed)} failed, "
            f"{len(report.pending)} pending{' (aborted)' if report.aborted else ''}"
        )
        return report

    async def _restore(self, report: FixReport) -> None:
        if self.restore_backup is None:
            logger.warning("Critical fix failure but no backup restore is configured")
            return
        try:
            await self.restore_backup()
        except Exception as e:
            logger.error(f"Failed to restore backup: {e}")
            report.errors.append(f"Failed to restore backup: {e}")
            return
        report.backup_restored = True
        report.errors.append("Backup restored due to critical error")
