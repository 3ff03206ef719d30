import logging

from dephealth.models.issue import DependencyIssue, IssueSeverity, IssueType
from dephealth.schemas.scan import ScanContext, ScanResult

from .base import Scanner

logger = logging.getLogger(__name__)


class MissingScanner(Scanner):
    """Declared packages with no installed copy."""

    name = "missing"

    def _severity(self, context: ScanContext, package_name: str) -> IssueSeverity:
        manifest = context.manifest
        if package_name in manifest.dependencies:
            return IssueSeverity.CRITICAL
        if package_name in manifest.peer_dependencies or package_name in manifest.dev_dependencies:
            return IssueSeverity.HIGH
        if package_name in manifest.optional_dependencies:
            return IssueSeverity.LOW
        return IssueSeverity.MEDIUM

    async def scan(self, context: ScanContext) -> ScanResult:
        issues = []
        for package_name, declared in self._declared(context).items():
            if context.installed(package_name) is not None:
                continue
            issues.append(
                DependencyIssue(
                    type=IssueType.MISSING,
                    package_name=package_name,
                    expected_version=declared,
                    severity=self._severity(context, package_name),
                    description=(
                        f"Package {package_name}@{declared} is declared but not installed"
                    ),
                    fixable=True,
                )
            )
        logger.debug(f"Missing scan found {len(issues)} issues")
        return ScanResult(producer=self.name, issues=issues)
