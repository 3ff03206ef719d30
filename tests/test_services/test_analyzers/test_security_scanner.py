"""Tests for the security scanner."""

import asyncio
import json

import httpx

from dephealth.models.issue import SecuritySeverity
from dephealth.schemas.scan import InstalledPackage
from dephealth.services.analyzers import SecurityScanner
from dephealth.services.analyzers.security import (
    advisory_id,
    assess_severity,
    first_fixed_version,
    sort_vulnerabilities,
)
from dephealth.services.registry_client import RegistryClient
from tests.mocks.packages import FakeRegistry, make_context, make_vuln

ADVISORIES = {
    "lodash": [
        {
            "id": 1523,
            "url": "https://github.com/advisories/GHSA-p6mc-m468-83gw",
            "title": "Prototype Pollution in lodash",
            "severity": "high",
            "vulnerable_versions": "<4.17.19",
            "cwe": ["CWE-1321"],
            "cvss": {"score": 7.4},
        },
        {
            "id": 1673,
            "url": "https://github.com/advisories/GHSA-35jh-r3h4-6jhm",
            "title": "Command Injection in lodash",
            "severity": "high",
            "vulnerable_versions": "<4.17.21",
            "cwe": ["CWE-77"],
            "cvss": {"score": 7.2},
        },
    ]
}

LODASH = {
    "name": "lodash",
    "dist-tags": {"latest": "4.17.21"},
    "versions": {"4.17.19": {}, "4.17.20": {}, "4.17.21": {}, "5.0.0-alpha.1": {}},
}


def _installed(lodash="4.17.20"):
    return [
        InstalledPackage(name="react", version="17.0.2", path="node_modules/react"),
        InstalledPackage(name="lodash", version=lodash, path="node_modules/lodash"),
        InstalledPackage(name="jest", version="29.7.0", path="node_modules/jest"),
    ]


class TestSecurityScanner:
    def setup_method(self):
        self.bulk_queries = []

    def _handler(self, request):
        if request.method == "POST":
            self.bulk_queries.append(json.loads(request.content))
            return httpx.Response(200, json=ADVISORIES)
        if request.url.path == "/lodash":
            return httpx.Response(200, json=LODASH)
        return httpx.Response(404)

    def _scan(self, installed, handler=None):
        registry = RegistryClient(transport=httpx.MockTransport(handler or self._handler))
        context = make_context(installed=installed, registry=registry)
        return asyncio.run(SecurityScanner().scan(context))

    def test_affected_advisories_are_reported(self):
        result = self._scan(_installed())

        assert result.producer == "security"
        assert result.issues == []
        (vulnerability,) = result.security_issues
        assert vulnerability.package_name == "lodash"
        assert vulnerability.version == "4.17.20"
        assert vulnerability.vulnerability.id == "GHSA-35jh-r3h4-6jhm"
        assert vulnerability.vulnerability.title == "Command Injection in lodash"
        assert vulnerability.vulnerability.cvss == 7.2
        assert vulnerability.vulnerability.cwe == ["CWE-77"]
        assert vulnerability.vulnerability.references == [
            "https://github.com/advisories/GHSA-35jh-r3h4-6jhm"
        ]
        assert vulnerability.fixed_in == "4.17.21"
        assert vulnerability.patch_available is True
        assert vulnerability.severity == SecuritySeverity.HIGH

    def test_installed_versions_are_queried(self):
        self._scan(_installed())
        assert self.bulk_queries == [
            {"react": ["17.0.2"], "lodash": ["4.17.20"], "jest": ["29.7.0"]}
        ]

    def test_patched_install_is_clean(self):
        assert self._scan(_installed(lodash="4.17.21")).security_issues == []

    def test_failed_lookup_yields_nothing(self):
        result = self._scan(_installed(), handler=lambda request: httpx.Response(503))
        assert result.security_issues == []
        assert result.error is None

    def test_without_registry(self, context):
        result = asyncio.run(SecurityScanner().scan(context))
        assert result.security_issues == []

    def test_dev_dependencies_can_be_skipped(self):
        registry = FakeRegistry()
        context = make_context(installed=_installed(), registry=registry)
        context.include_dev = False
        asyncio.run(SecurityScanner().scan(context))
        assert registry.advisory_queries == [{"react": ["17.0.2"], "lodash": ["4.17.20"]}]

    def test_unpatched_high_advisory_escalates(self):
        registry = FakeRegistry(
            advisories={
                "react": [
                    {
                        "id": 99,
                        "title": "XSS in react",
                        "vulnerable_versions": ">=17.0.0",
                        "cvss": {"score": 8.1},
                    }
                ]
            },
            versions={"react": ["17.0.2", "17.0.1"]},
        )
        context = make_context(installed=_installed(), registry=registry)
        (vulnerability,) = asyncio.run(SecurityScanner().scan(context)).security_issues
        assert vulnerability.vulnerability.id == "99"
        assert vulnerability.fixed_in is None
        assert vulnerability.patch_available is False
        assert vulnerability.severity == SecuritySeverity.CRITICAL


class TestSeverity:
    def test_cvss_bands(self):
        assert assess_severity("left-pad", 9.8, [], True) == SecuritySeverity.CRITICAL
        assert assess_severity("left-pad", 7.5, [], True) == SecuritySeverity.HIGH
        assert assess_severity("left-pad", 4.0, [], True) == SecuritySeverity.MODERATE
        assert assess_severity("left-pad", 3.9, [], True) == SecuritySeverity.LOW

    def test_unpatched_high_becomes_critical(self):
        assert assess_severity("left-pad", 7.5, [], False) == SecuritySeverity.CRITICAL

    def test_injection_cwe_escalates(self):
        assert assess_severity("left-pad", 6.1, ["CWE-79"], True) == SecuritySeverity.HIGH
        assert assess_severity("left-pad", 5.9, ["CWE-79"], True) == SecuritySeverity.MODERATE

    def test_widely_used_package_escalates(self):
        assert assess_severity("lodash", 5.3, [], True) == SecuritySeverity.HIGH
        assert assess_severity("express", 3.0, [], True) == SecuritySeverity.LOW

    def test_advisory_rating_without_score(self):
        assert assess_severity("left-pad", 0.0, [], True, "critical") == SecuritySeverity.CRITICAL
        assert assess_severity("left-pad", 0.0, [], True, "info") == SecuritySeverity.LOW


class TestHelpers:
    def test_first_fixed_version_skips_prereleases(self):
        published = ["5.0.0-alpha.1", "4.17.21", "4.17.20", "4.17.19"]
        assert first_fixed_version("4.17.20", "<4.17.21", published) == "4.17.21"
        assert first_fixed_version("4.17.20", "<6.0.0", published) is None

    def test_advisory_id(self):
        assert advisory_id({"id": 1, "url": "https://github.com/advisories/GHSA-xxxx"}) == (
            "GHSA-xxxx"
        )
        assert advisory_id({"id": 1523, "url": "https://npmjs.com/advisories/1523"}) == "1523"
        assert advisory_id({"id": 7}) == "7"

    def test_sort_order(self):
        patched = make_vuln(vuln_id="A", severity=SecuritySeverity.HIGH, cvss=8.0)
        unpatched = make_vuln(
            vuln_id="B", severity=SecuritySeverity.HIGH, cvss=8.0, fixed_in=None
        )
        lower = make_vuln(vuln_id="C", severity=SecuritySeverity.HIGH, cvss=7.5)
        critical = make_vuln(vuln_id="D", severity=SecuritySeverity.CRITICAL, cvss=9.0)
        ordered = sort_vulnerabilities([lower, unpatched, patched, critical])
        assert [v.vulnerability.id for v in ordered] == ["D", "A", "B", "C"]
