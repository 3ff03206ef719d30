"""Tests for dephealth.services.aggregator."""

from dephealth.models.issue import IssueSeverity, IssueType, SecuritySeverity
from dephealth.schemas.scan import ScanResult
from dephealth.services.aggregator import ResultAggregator
from tests.mocks.packages import make_issue, make_vuln, raw_issue


class TestDeduplication:
    def setup_method(self):
        self.aggregator = ResultAggregator()

    def test_repeated_identity_key_within_one_result(self):
        issue = make_issue(package_name="lodash")
        issues, _ = self.aggregator.aggregate(
            [ScanResult(producer="outdated", issues=[issue, issue, issue])]
        )
        assert issues == [issue]

    def test_identical_issue_from_two_scanners(self):
        issue = make_issue(package_name="react", type=IssueType.PEER_CONFLICT)
        issues, _ = self.aggregator.aggregate(
            [
                ScanResult(producer="peer", issues=[issue]),
                ScanResult(producer="version_mismatch", issues=[issue]),
            ]
        )
        assert len(issues) == 1

    def test_first_occurrence_wins(self):
        first = make_issue(package_name="a", description="first")
        second = make_issue(package_name="a", description="second")
        issues, _ = self.aggregator.aggregate(
            [ScanResult(producer="x", issues=[first]), ScanResult(producer="y", issues=[second])]
        )
        assert issues[0].description == "first"

    def test_different_versions_are_different_issues(self):
        a = make_issue(current_version="1.0.0")
        b = make_issue(current_version="1.1.0")
        issues, _ = self.aggregator.aggregate([ScanResult(producer="x", issues=[a, b])])
        assert len(issues) == 2

    def test_vulnerabilities_deduplicated_by_advisory(self):
        vuln = make_vuln()
        other = make_vuln(vuln_id="GHSA-1111-1111-1111")
        _, vulns = self.aggregator.aggregate(
            [
                ScanResult(producer="security", security_issues=[vuln, other]),
                ScanResult(producer="audit", security_issues=[vuln]),
            ]
        )
        assert len(vulns) == 2


class TestMalformedInput:
    def setup_method(self):
        self.aggregator = ResultAggregator()

    def test_malformed_issue_is_skipped(self):
        good = raw_issue(package_name="good")
        bad = raw_issue(package_name="bad", severity="catastrophic")
        missing_field = raw_issue(package_name="incomplete")
        del missing_field["description"]
        issues, _ = self.aggregator.aggregate(
            [{"producer": "outdated", "issues": [good, bad, missing_field, "junk"]}]
        )
        assert [i.package_name for i in issues] == ["good"]

    def test_result_without_issue_list_is_discarded(self):
        vuln = make_vuln()
        issues, vulns = self.aggregator.aggregate(
            [
                {"producer": "broken", "issues": "oops", "security_issues": [vuln]},
                ScanResult(producer="missing", issues=[make_issue(package_name="ok")]),
            ]
        )
        assert [i.package_name for i in issues] == ["ok"]
        assert vulns == []

    def test_malformed_vulnerability_is_skipped(self):
        bad = make_vuln().model_dump()
        bad["vulnerability"]["cvss"] = 42
        _, vulns = self.aggregator.aggregate(
            [{"producer": "security", "issues": [], "security_issues": [bad, make_vuln()]}]
        )
        assert len(vulns) == 1

    def test_missing_security_issues_field(self):
        issues, vulns = self.aggregator.aggregate([{"producer": "x", "issues": [raw_issue()]}])
        assert len(issues) == 1
        assert vulns == []

    def test_camel_case_result_keys(self):
        vuln = make_vuln()
        issues, vulns = self.aggregator.aggregate(
            [{"producerKind": "security", "issues": [], "securityIssues": [vuln.model_dump()]}]
        )
        assert issues == []
        assert vulns == [vuln]

    def test_unknown_result_shape(self):
        assert self.aggregator.aggregate([42, None]) == ([], [])


class TestOrdering:
    def test_issues_sorted_by_severity_stable(self):
        low = make_issue(package_name="low", severity=IssueSeverity.LOW)
        high_a = make_issue(package_name="high-a", severity=IssueSeverity.HIGH)
        critical = make_issue(package_name="crit", severity=IssueSeverity.CRITICAL)
        high_b = make_issue(package_name="high-b", severity=IssueSeverity.HIGH)
        issues, _ = ResultAggregator().aggregate(
            [
                ScanResult(producer="first", issues=[low, high_a]),
                ScanResult(producer="second", issues=[critical, high_b]),
            ]
        )
        assert [i.package_name for i in issues] == ["crit", "high-a", "high-b", "low"]

    def test_vulnerabilities_sorted_by_severity(self):
        moderate = make_vuln(vuln_id="M", severity=SecuritySeverity.MODERATE)
        critical = make_vuln(vuln_id="C", severity=SecuritySeverity.CRITICAL)
        low = make_vuln(vuln_id="L", severity=SecuritySeverity.LOW)
        _, vulns = ResultAggregator().aggregate(
            [ScanResult(producer="security", security_issues=[moderate, low, critical])]
        )
        assert [v.vulnerability.id for v in vulns] == ["C", "M", "L"]


class TestState:
    def test_aggregate_starts_fresh(self):
        aggregator = ResultAggregator()
        aggregator.aggregate([ScanResult(producer="x", issues=[make_issue(package_name="a")])])
        issues, _ = aggregator.aggregate(
            [ScanResult(producer="x", issues=[make_issue(package_name="b")])]
        )
        assert [i.package_name for i in issues] == ["b"]

    def test_add_result_accumulates(self):
        aggregator = ResultAggregator()
        aggregator.add_result(ScanResult(producer="x", issues=[make_issue(package_name="a")]))
        aggregator.add_result(ScanResult(producer="y", issues=[make_issue(package_name="b")]))
        assert len(aggregator.get_issues()) == 2
