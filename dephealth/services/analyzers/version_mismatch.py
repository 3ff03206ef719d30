from dephealth.models.issue import DependencyIssue, IssueSeverity, IssueType
from dephealth.schemas.scan import ScanContext, ScanResult
from dephealth.services import versioning

from .base import Scanner


class VersionMismatchScanner(Scanner):
    """Installed versions outside the declared range."""

    name = "version_mismatch"

    def _severity(self, installed: str, declared: str) -> IssueSeverity:
        floor = versioning.min_version(declared)
        if floor is None:
            return IssueSeverity.MEDIUM
        if versioning.major(installed) != versioning.major(floor):
            return IssueSeverity.HIGH
        if versioning.minor(installed) != versioning.minor(floor):
            return IssueSeverity.MEDIUM
        return IssueSeverity.LOW

    async def scan(self, context: ScanContext) -> ScanResult:
        issues = []
        for package_name, declared in self._declared(context).items():
            pkg = context.installed(package_name)
            if pkg is None or not pkg.is_valid or not versioning.valid(pkg.version):
                continue
            if versioning.valid_range(declared) is None:
                # git urls, file: and workspace: specifiers
                continue
            if versioning.satisfies(pkg.version, declared):
                continue
            issues.append(
                DependencyIssue(
                    type=IssueType.VERSION_MISMATCH,
                    package_name=package_name,
                    current_version=pkg.version,
                    expected_version=declared,
                    severity=self._severity(pkg.version, declared),
                    description=(
                        f"Installed {package_name}@{pkg.version} does not satisfy "
                        f"declared range {declared}"
                    ),
                    fixable=True,
                )
            )
        return ScanResult(producer=self.name, issues=issues)
