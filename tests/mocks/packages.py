"""Reusable issue, vulnerability and adapter factories."""

from typing import List, Optional

from dephealth.models.issue import (
    DependencyIssue,
    IssueSeverity,
    IssueType,
    SecurityIssue,
    SecuritySeverity,
    VulnerabilityInfo,
)
from dephealth.schemas.scan import (
    InstalledPackage,
    Lockfile,
    Manifest,
    PackageManagerVariant,
    ScanContext,
)
from dephealth.services.adapters.base import AdapterError, PackageManagerAdapter


def make_issue(
    type=IssueType.OUTDATED,
    package_name="pkg",
    current_version="1.0.0",
    expected_version="^1.0.0",
    latest_version=None,
    severity=IssueSeverity.MEDIUM,
    description=None,
    fixable=True,
    **kwargs,
):
    """Create a DependencyIssue with sensible defaults."""
    return DependencyIssue(
        type=type,
        package_name=package_name,
        current_version=current_version,
        expected_version=expected_version,
        latest_version=latest_version,
        severity=severity,
        description=description or f"{IssueType(type).value} issue for {package_name}",
        fixable=fixable,
        **kwargs,
    )


def make_vuln(
    package_name="pkg",
    version="1.0.0",
    vuln_id="GHSA-0000-0000-0000",
    title="Prototype pollution",
    severity=SecuritySeverity.HIGH,
    fixed_in="1.0.1",
    cvss=7.5,
):
    """Create a SecurityIssue with sensible defaults."""
    return SecurityIssue(
        package_name=package_name,
        version=version,
        vulnerability=VulnerabilityInfo(
            id=vuln_id,
            title=title,
            description=f"{title} in {package_name}",
            cvss=cvss,
            cwe=["CWE-1321"],
            references=[f"https://github.com/advisories/{vuln_id}"],
        ),
        severity=severity,
        fixed_in=fixed_in,
        patch_available=fixed_in is not None,
    )


def raw_issue(**overrides):
    """Issue as a plain dict, the way a scanner may emit it."""
    data = {
        "type": "outdated",
        "package_name": "pkg",
        "current_version": "1.0.0",
        "expected_version": "^1.0.0",
        "latest_version": "1.2.0",
        "severity": "medium",
        "description": "Minor update available",
        "fixable": True,
    }
    data.update(overrides)
    return data


class FakeAdapter(PackageManagerAdapter):
    """Records every mutating call; fails the calls listed in ``failures``."""

    variant = PackageManagerVariant.NPM

    def __init__(
        self,
        project_path: str,
        installed: Optional[List[InstalledPackage]] = None,
        failures: Optional[dict] = None,
    ):
        super().__init__(project_path)
        self.installed = installed or []
        self.failures = failures or {}
        self.calls: List[tuple] = []

    def _record(self, *call):
        self.calls.append(call)
        error = self.failures.get(call[1] if len(call) > 1 else call[0])
        if error:
            raise AdapterError(error, command=" ".join(str(c) for c in call), exit_code=1)

    async def read_lockfile(self):
        return Lockfile(variant=self.variant, path=f"{self.project_path}/package-lock.json")

    async def get_installed_packages(self):
        return list(self.installed)

    async def install_package(self, package_name, version=None):
        self._record("install", package_name, version)

    async def update_package(self, package_name, version):
        self._record("update", package_name, version)

    async def remove_package(self, package_name):
        self._record("remove", package_name)

    async def regenerate_lockfile(self):
        self._record("regenerate-lockfile")


def make_context(adapter=None, manifest=None, installed=None, registry=None):
    """ScanContext for a project with react, lodash and a dev dependency."""
    manifest = manifest or Manifest(
        name="demo-app",
        version="1.0.0",
        dependencies={"react": "^17.0.0", "lodash": "^4.17.21"},
        dev_dependencies={"jest": "^29.0.0"},
    )
    if installed is None:
        installed = [
            InstalledPackage(name="react", version="17.0.2", path="node_modules/react"),
            InstalledPackage(name="lodash", version="4.17.21", path="node_modules/lodash"),
            InstalledPackage(name="jest", version="29.7.0", path="node_modules/jest"),
        ]
    adapter = adapter or FakeAdapter("/tmp/project", installed=installed)
    return ScanContext(
        project_path="/tmp/project",
        manifest=manifest,
        lockfile=None,
        installed_packages=installed,
        package_manager=adapter,
        registry=registry,
    )


class FakeRegistry:
    """Registry client stand-in answering from dicts."""

    def __init__(self, latest=None, failures=(), advisories=None, versions=None):
        self.latest = latest or {}
        self.failures = set(failures)
        self.advisories = advisories or {}
        self.versions = versions or {}
        self.lookups: List[str] = []
        self.advisory_queries: List[dict] = []

    async def get_latest_version(self, package_name):
        self.lookups.append(package_name)
        if package_name in self.failures:
            raise RuntimeError(f"lookup of {package_name} exploded")
        return self.latest.get(package_name)

    async def get_versions(self, package_name):
        return list(self.versions.get(package_name, []))

    async def get_advisories(self, packages):
        self.advisory_queries.append(dict(packages))
        return {name: self.advisories[name] for name in packages if name in self.advisories}
