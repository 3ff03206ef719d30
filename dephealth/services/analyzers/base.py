from abc import ABC, abstractmethod
from typing import Dict

from dephealth.schemas.scan import ScanContext, ScanResult


class Scanner(ABC):
    name: str

    @abstractmethod
    async def scan(self, context: ScanContext) -> ScanResult:
        pass

    def _declared(self, context: ScanContext) -> Dict[str, str]:
        """Declared requirements the scan should look at, honoring include_dev."""
        return context.manifest.declared(include_dev=context.include_dev)
