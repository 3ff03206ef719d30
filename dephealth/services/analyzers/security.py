"""
Security Scanner

Looks up published advisories for every installed declared package through
the registry's bulk advisory endpoint and scores them from CVSS, the weakness
class and how widely the package is used.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from dephealth.core.constants import (
    CRITICAL_CWE_MIN_CVSS,
    CRITICAL_CWES,
    CRITICAL_PACKAGE_MIN_CVSS,
    CRITICAL_PACKAGES,
    CVSS_SEVERITY_THRESHOLDS,
    SECURITY_SEVERITY_ORDER,
    UNPATCHED_ESCALATION_CVSS,
    get_severity_value,
)
from dephealth.models.issue import SecurityIssue, SecuritySeverity, VulnerabilityInfo
from dephealth.schemas.scan import ScanContext, ScanResult
from dephealth.services import versioning

from .base import Scanner

logger = logging.getLogger(__name__)

_ADVISORY_SEVERITY = {
    "info": SecuritySeverity.LOW,
    "low": SecuritySeverity.LOW,
    "moderate": SecuritySeverity.MODERATE,
    "medium": SecuritySeverity.MODERATE,
    "high": SecuritySeverity.HIGH,
    "critical": SecuritySeverity.CRITICAL,
}


def severity_from_cvss(cvss: float) -> SecuritySeverity:
    for floor, severity in CVSS_SEVERITY_THRESHOLDS:
        if cvss >= floor:
            return SecuritySeverity(severity)
    return SecuritySeverity.LOW


def assess_severity(
    package_name: str,
    cvss: float,
    cwes: List[str],
    patch_available: bool,
    advisory_severity: Optional[str] = None,
) -> SecuritySeverity:
    """
    Base severity from CVSS (or the advisory's own rating when it has no
    score), escalated for unpatched high findings, injection-class CWEs and
    widely used packages.
    """
    if cvss > 0 or advisory_severity is None:
        severity = severity_from_cvss(cvss)
    else:
        severity = _ADVISORY_SEVERITY.get(str(advisory_severity).lower(), SecuritySeverity.LOW)

    if (
        not patch_available
        and severity == SecuritySeverity.HIGH
        and cvss >= UNPATCHED_ESCALATION_CVSS
    ):
        severity = SecuritySeverity.CRITICAL

    if cvss >= CRITICAL_CWE_MIN_CVSS and any(cwe in CRITICAL_CWES for cwe in cwes):
        if severity == SecuritySeverity.MODERATE:
            severity = SecuritySeverity.HIGH
        elif severity == SecuritySeverity.HIGH:
            severity = SecuritySeverity.CRITICAL

    if cvss >= CRITICAL_PACKAGE_MIN_CVSS and package_name in CRITICAL_PACKAGES:
        if severity == SecuritySeverity.LOW:
            severity = SecuritySeverity.MODERATE
        elif severity == SecuritySeverity.MODERATE:
            severity = SecuritySeverity.HIGH

    return severity


def advisory_id(advisory: Dict[str, Any]) -> str:
    # GHSA id from the advisory url, else the numeric registry id
    url = advisory.get("url")
    if not isinstance(url, str):
        return str(advisory.get("id", "unknown"))
    tail = url.rstrip("/").rsplit("/", 1)[-1]
    if tail.startswith("GHSA-"):
        return tail
    return str(advisory.get("id", "unknown"))


def first_fixed_version(
    installed: str, vulnerable_range: str, published: List[str]
) -> Optional[str]:
    """Lowest stable published release above ``installed`` outside the vulnerable range."""
    for candidate in reversed(published):
        parsed = versioning.parse(candidate)
        if parsed is None or parsed.is_prerelease:
            continue
        if not versioning.gt(candidate, installed):
            continue
        if not versioning.satisfies(candidate, vulnerable_range):
            return candidate
    return None


def sort_vulnerabilities(vulnerabilities: List[SecurityIssue]) -> List[SecurityIssue]:
    """Most severe first, then highest CVSS, then patched before unpatched."""
    return sorted(
        vulnerabilities,
        key=lambda v: (
            -get_severity_value(v.severity, SECURITY_SEVERITY_ORDER),
            -v.vulnerability.cvss,
            not v.patch_available,
        ),
    )


class SecurityScanner(Scanner):
    """Known advisories affecting installed declared packages."""

    name = "security"

    async def scan(self, context: ScanContext) -> ScanResult:
        if context.registry is None:
            logger.warning("No registry client in scan context, skipping security scan")
            return ScanResult(producer=self.name)

        installed: Dict[str, str] = {}
        for package_name in self._declared(context):
            pkg = context.installed(package_name)
            if pkg is not None and pkg.is_valid and versioning.valid(pkg.version):
                installed[package_name] = pkg.version

        advisories = await context.registry.get_advisories(
            {name: [version] for name, version in installed.items()}
        )

        vulnerabilities: List[SecurityIssue] = []
        for package_name, package_advisories in advisories.items():
            version = installed.get(package_name)
            if version is None:
                continue
            for advisory in package_advisories:
                vulnerability = await self._to_security_issue(
                    context, package_name, version, advisory
                )
                if vulnerability is not None:
                    vulnerabilities.append(vulnerability)

        logger.debug(f"Security scan found {len(vulnerabilities)} vulnerabilities")
        return ScanResult(
            producer=self.name, security_issues=sort_vulnerabilities(vulnerabilities)
        )

    async def _to_security_issue(
        self,
        context: ScanContext,
        package_name: str,
        version: str,
        advisory: Dict[str, Any],
    ) -> Optional[SecurityIssue]:
        vulnerable = advisory.get("vulnerable_versions") or "*"
        if versioning.valid_range(vulnerable) is not None and not versioning.satisfies(
            version, vulnerable
        ):
            return None

        cvss_data = advisory.get("cvss") or {}
        try:
            cvss = float(cvss_data.get("score") or 0.0)
        except (TypeError, ValueError, AttributeError):
            cvss = 0.0
        cvss = min(max(cvss, 0.0), 10.0) if math.isfinite(cvss) else 0.0

        fixed_in = None
        if versioning.valid_range(vulnerable) is not None:
            published = await context.registry.get_versions(package_name)
            fixed_in = first_fixed_version(version, vulnerable, published)

        cwes = [str(c) for c in advisory.get("cwe") or []]
        url = advisory.get("url")
        references = [url] if isinstance(url, str) and url else []
        title = str(advisory.get("title") or f"Vulnerability in {package_name}")

        return SecurityIssue(
            package_name=package_name,
            version=version,
            vulnerability=VulnerabilityInfo(
                id=advisory_id(advisory),
                title=title,
                description=str(advisory.get("overview") or title),
                cvss=cvss,
                cwe=cwes,
                references=references,
            ),
            severity=assess_severity(
                package_name,
                cvss,
                cwes,
                fixed_in is not None,
                advisory.get("severity"),
            ),
            fixed_in=fixed_in,
            patch_available=fixed_in is not None,
        )
