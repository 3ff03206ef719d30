"""
Scanner Registry

Central registry for the scanners that feed one analysis run.
Provides lookup functions and concurrent execution of every registered scanner.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from dephealth.core.metrics import analysis_scanner_errors_total
from dephealth.schemas.scan import ScanContext, ScanResult
from dephealth.services.analyzers import (
    BrokenScanner,
    MissingScanner,
    OutdatedScanner,
    PeerConflictScanner,
    Scanner,
    SecurityScanner,
    VersionMismatchScanner,
)

logger = logging.getLogger(__name__)


class ScannerRegistry:
    def __init__(self):
        self._scanners: Dict[str, Scanner] = {}

    def register(self, scanner: Scanner) -> None:
        """
        Add a scanner.

        Raises:
            ValueError: A scanner with the same name is already registered
        """
        if scanner.name in self._scanners:
            raise ValueError(f"Scanner '{scanner.name}' is already registered")
        self._scanners[scanner.name] = scanner

    def unregister(self, name: str) -> bool:
        """Remove a scanner by name. Returns False if it was not registered."""
        return self._scanners.pop(name, None) is not None

    def get(self, name: str) -> Optional[Scanner]:
        return self._scanners.get(name)

    def list(self) -> List[str]:
        return list(self._scanners.keys())

    def __len__(self) -> int:
        return len(self._scanners)

    async def run_all(self, context: ScanContext) -> List[ScanResult]:
        """
        Run every scanner concurrently.

        A scanner that raises contributes an empty result carrying the error
        string; the other scanners are unaffected.
        """
        scanners = list(self._scanners.values())
        outcomes = await asyncio.gather(
            *(scanner.scan(context) for scanner in scanners), return_exceptions=True
        )

        results: List[ScanResult] = []
        for scanner, outcome in zip(scanners, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Scanner {scanner.name} failed: {outcome}")
                analysis_scanner_errors_total.labels(scanner=scanner.name).inc()
                results.append(ScanResult(producer=scanner.name, error=str(outcome)))
            else:
                results.append(outcome)
        return results


def default_registry() -> ScannerRegistry:
    """Registry with the built-in scanners."""
    registry = ScannerRegistry()
    for scanner in (
        MissingScanner(),
        BrokenScanner(),
        VersionMismatchScanner(),
        OutdatedScanner(),
        PeerConflictScanner(),
        SecurityScanner(),
    ):
        registry.register(scanner)
    return registry
