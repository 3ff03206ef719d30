import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from dephealth.core.cache import PackageMetadataCache
from dephealth.core.config import settings
from dephealth.core.http_utils import fetch_json, post_json
from dephealth.services import versioning

logger = logging.getLogger(__name__)


class RegistryClient:
    """
    Package registry lookups for one analysis run.

    Every lookup is a single attempt with a bounded timeout. Failures are
    logged and cached as None so the run carries on without update
    information for that package.
    """

    service_name = "npm registry"

    def __init__(
        self,
        cache: Optional[PackageMetadataCache] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache if cache is not None else PackageMetadataCache()
        self.base_url = (base_url or settings.REGISTRY_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REGISTRY_TIMEOUT_SECONDS
        self.transport = transport

    def package_url(self, package_name: str) -> str:
        # "@scope/name" -> "@scope%2Fname"
        return f"{self.base_url}/{quote(package_name, safe='@')}"

    async def _fetch(self, package_name: str) -> Optional[Dict[str, Any]]:
        data = await fetch_json(
            self.package_url(package_name),
            headers={"Accept": "application/json"},
            timeout=self.timeout,
            service_name=self.service_name,
            transport=self.transport,
        )
        if data is not None and not isinstance(data, dict):
            logger.warning(f"Unexpected registry payload for {package_name}")
            return None
        return data

    async def get_package_metadata(self, package_name: str) -> Optional[Dict[str, Any]]:
        return await self.cache.get_or_fetch(
            package_name, lambda: self._fetch(package_name)
        )

    async def get_latest_version(self, package_name: str) -> Optional[str]:
        metadata = await self.get_package_metadata(package_name)
        if not metadata:
            return None
        latest = metadata.get("dist-tags", {}).get("latest")
        if latest:
            return latest
        # registries without dist-tags: highest published version
        versions = versioning.sort_desc(metadata.get("versions", {}) or {})
        return versions[0] if versions else None

    async def get_versions(self, package_name: str) -> List[str]:
        """Published versions, newest first."""
        metadata = await self.get_package_metadata(package_name)
        if not metadata:
            return []
        return versioning.sort_desc(metadata.get("versions", {}) or {})

    @property
    def advisories_url(self) -> str:
        return f"{self.base_url}/-/npm/v1/security/advisories/bulk"

    async def get_advisories(
        self, packages: Dict[str, List[str]]
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Bulk advisory lookup.

        Args:
            packages: Package name -> installed versions

        Returns:
            Package name -> advisory dicts, empty when the lookup failed
        """
        if not packages:
            return {}
        data = await post_json(
            self.advisories_url,
            packages,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
            service_name="npm advisories",
            transport=self.transport,
        )
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Unexpected advisory payload, ignoring")
            return {}
        return {
            name: [a for a in advisories if isinstance(a, dict)]
            for name, advisories in data.items()
            if isinstance(advisories, list)
        }
