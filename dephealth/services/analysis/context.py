import json
import logging
import os
from typing import Optional

from dephealth.core.config import settings
from dephealth.schemas.scan import Manifest, ScanContext
from dephealth.services.adapters.base import PackageManagerAdapter

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"


def load_manifest(project_path: str) -> Manifest:
    """
    Read the project manifest.

    Raises:
        FileNotFoundError: The project has no manifest
        ValueError: The manifest is not a JSON object
    """
    path = os.path.join(project_path, MANIFEST_FILE)
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return Manifest.from_package_json(data)


async def build_context(
    project_path: str,
    adapter: PackageManagerAdapter,
    manifest: Optional[Manifest] = None,
    include_dev: Optional[bool] = None,
) -> ScanContext:
    """
    Build the scan context for one run. Failures here are fatal for the run.
    """
    if not os.path.isdir(project_path):
        raise FileNotFoundError(f"Project path does not exist: {project_path}")

    if manifest is None:
        manifest = load_manifest(project_path)
    lockfile = await adapter.read_lockfile()
    installed = await adapter.get_installed_packages()

    logger.info(
        f"Scan context for {manifest.name}: {len(installed)} installed packages, "
        f"lockfile {'found' if lockfile else 'missing'}"
    )
    return ScanContext(
        project_path=project_path,
        manifest=manifest,
        lockfile=lockfile,
        installed_packages=installed,
        package_manager=adapter,
        include_dev=settings.INCLUDE_DEV if include_dev is None else include_dev,
    )
