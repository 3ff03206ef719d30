import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from dephealth.core.constants import (
    ISSUE_SEVERITY_ORDER,
    SECURITY_SEVERITY_ORDER,
    get_severity_value,
)
from dephealth.core.metrics import (
    aggregation_duplicates_total,
    aggregation_issues_total,
    aggregation_rejected_records_total,
    aggregation_vulnerabilities_total,
)
from dephealth.models.issue import DependencyIssue, SecurityIssue
from dephealth.schemas.scan import ScanResult

logger = logging.getLogger(__name__)


class ResultAggregator:
    """
    Merges scanner outputs into one deduplicated, severity-sorted issue list
    and vulnerability list.

    Records are validated one by one; a malformed record is logged and
    skipped, never fatal. The first occurrence of an identity key wins.
    """

    def __init__(self):
        self.issues: Dict[str, DependencyIssue] = {}
        self.vulnerabilities: Dict[str, SecurityIssue] = {}

    def reset(self) -> None:
        self.issues = {}
        self.vulnerabilities = {}

    def aggregate(
        self, raw_results: Iterable[Any]
    ) -> Tuple[List[DependencyIssue], List[SecurityIssue]]:
        """Aggregate a full set of scanner results from scratch."""
        self.reset()
        for result in raw_results:
            self.add_result(result)
        issues = self.get_issues()
        vulnerabilities = self.get_vulnerabilities()
        logger.debug(
            f"Aggregation complete: {len(issues)} issues, "
            f"{len(vulnerabilities)} vulnerabilities"
        )
        return issues, vulnerabilities

    def add_result(self, result: Any) -> None:
        """Merge one scanner result into the aggregate."""
        producer, issues, security_issues = self._unpack(result)

        if not isinstance(issues, list):
            logger.warning(f"Invalid scan result from {producer} scanner, skipping")
            aggregation_rejected_records_total.labels(kind="result").inc()
            return

        logger.debug(f"Processing {len(issues)} issues from {producer} scanner")
        for raw in issues:
            issue = self._coerce(raw, DependencyIssue)
            if issue is None:
                logger.warning(f"Invalid dependency issue from {producer} scanner: {raw!r}")
                aggregation_rejected_records_total.labels(kind="issue").inc()
                continue
            key = issue.identity_key()
            if key in self.issues:
                logger.debug(f"Duplicate issue filtered: {key}")
                aggregation_duplicates_total.labels(kind="issue").inc()
                continue
            self.issues[key] = issue
            aggregation_issues_total.labels(type=issue.type).inc()

        if not isinstance(security_issues, list):
            return

        for raw in security_issues:
            vulnerability = self._coerce(raw, SecurityIssue)
            if vulnerability is None:
                logger.warning(
                    f"Invalid security vulnerability from {producer} scanner: {raw!r}"
                )
                aggregation_rejected_records_total.labels(kind="vulnerability").inc()
                continue
            key = vulnerability.identity_key()
            if key in self.vulnerabilities:
                logger.debug(f"Duplicate vulnerability filtered: {key}")
                aggregation_duplicates_total.labels(kind="vulnerability").inc()
                continue
            self.vulnerabilities[key] = vulnerability
            aggregation_vulnerabilities_total.labels(severity=vulnerability.severity).inc()

    def get_issues(self) -> List[DependencyIssue]:
        """Issues sorted most severe first, producer order kept among equals."""
        return sorted(
            self.issues.values(),
            key=lambda i: -get_severity_value(i.severity, ISSUE_SEVERITY_ORDER),
        )

    def get_vulnerabilities(self) -> List[SecurityIssue]:
        return sorted(
            self.vulnerabilities.values(),
            key=lambda v: -get_severity_value(v.severity, SECURITY_SEVERITY_ORDER),
        )

    @staticmethod
    def _unpack(result: Any) -> Tuple[str, Any, Any]:
        if isinstance(result, ScanResult):
            return result.producer, result.issues, result.security_issues
        if isinstance(result, Mapping):
            producer = result.get("producer") or result.get("producerKind") or "unknown"
            security_issues = result.get("security_issues")
            if security_issues is None:
                security_issues = result.get("securityIssues")
            return producer, result.get("issues"), security_issues
        return "unknown", None, None

    @staticmethod
    def _coerce(raw: Any, model):
        if isinstance(raw, model):
            return raw
        if not isinstance(raw, Mapping):
            return None
        try:
            return model.model_validate(dict(raw))
        except ValidationError:
            return None
