from dephealth.models.issue import DependencyIssue, IssueSeverity, IssueType
from dephealth.services import versioning
from dephealth.schemas.scan import ScanContext, ScanResult

from .base import Scanner


class BrokenScanner(Scanner):
    """Installed packages whose install is corrupt or unreadable."""

    name = "broken"

    async def scan(self, context: ScanContext) -> ScanResult:
        declared = self._declared(context)
        issues = []
        for pkg in context.installed_packages:
            if pkg.name not in declared:
                continue
            if pkg.is_valid and versioning.valid(pkg.version):
                continue
            reason = (
                "package metadata is corrupted"
                if not pkg.is_valid
                else f"installed version {pkg.version!r} is not a valid version"
            )
            issues.append(
                DependencyIssue(
                    type=IssueType.BROKEN,
                    package_name=pkg.name,
                    current_version=pkg.version or None,
                    expected_version=declared[pkg.name],
                    severity=IssueSeverity.HIGH,
                    description=f"Broken install of {pkg.name} at {pkg.path}: {reason}",
                    fixable=True,
                )
            )
        return ScanResult(producer=self.name, issues=issues)
