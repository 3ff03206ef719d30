import asyncio
import logging
from typing import Optional

from dephealth.models.issue import DependencyIssue, IssueSeverity, IssueType
from dephealth.schemas.scan import ScanContext, ScanResult
from dephealth.services import versioning

from .base import Scanner

logger = logging.getLogger(__name__)

_ESCALATE = {
    IssueSeverity.LOW: IssueSeverity.MEDIUM,
    IssueSeverity.MEDIUM: IssueSeverity.HIGH,
    IssueSeverity.HIGH: IssueSeverity.CRITICAL,
    IssueSeverity.CRITICAL: IssueSeverity.CRITICAL,
}


class OutdatedScanner(Scanner):
    """Installed packages behind the registry's latest version."""

    name = "outdated"

    async def scan(self, context: ScanContext) -> ScanResult:
        if context.registry is None:
            logger.warning("No registry client in scan context, skipping outdated scan")
            return ScanResult(producer=self.name)

        declared = self._declared(context)
        tasks = [
            self._check_package(context, name, requirement)
            for name, requirement in declared.items()
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        issues = []
        for result in results:
            if isinstance(result, Exception):
                logger.debug(f"Outdated check failed: {result}")
            elif result is not None:
                issues.append(result)
        return ScanResult(producer=self.name, issues=issues)

    async def _check_package(
        self, context: ScanContext, package_name: str, declared: str
    ) -> Optional[DependencyIssue]:
        pkg = context.installed(package_name)
        if pkg is None or not versioning.valid(pkg.version):
            return None

        latest = await context.registry.get_latest_version(package_name)
        if not latest or not versioning.valid(latest):
            return None
        if not versioning.lt(pkg.version, latest):
            return None

        major_diff, minor_diff, _ = versioning.deltas(pkg.version, latest)
        if major_diff > 0:
            severity = IssueSeverity.HIGH
            description = (
                f"Major update available: {pkg.version} -> {latest}. "
                f"May contain breaking changes."
            )
        elif minor_diff > 0:
            severity = IssueSeverity.MEDIUM
            description = (
                f"Minor update available: {pkg.version} -> {latest}. New features added."
            )
        else:
            severity = IssueSeverity.LOW
            description = (
                f"Patch update available: {pkg.version} -> {latest}. "
                f"Bug fixes and improvements."
            )

        if versioning.satisfies(latest, declared):
            description += " Can be updated by running package manager install."
        else:
            description += " Requires updating version range in package.json."
            severity = _ESCALATE[severity]

        return DependencyIssue(
            type=IssueType.OUTDATED,
            package_name=package_name,
            current_version=pkg.version,
            expected_version=declared,
            latest_version=latest,
            severity=severity,
            description=description,
            fixable=True,
        )
