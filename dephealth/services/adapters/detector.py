import logging
import os
from typing import Dict, List, Optional, Tuple, Type

from dephealth.schemas.scan import PackageManagerVariant

from .base import PackageManagerAdapter
from .npm import NodeModulesAdapter, NpmAdapter, PnpmAdapter, YarnAdapter, read_json_file

logger = logging.getLogger(__name__)

# First match wins
LOCKFILES: List[Tuple[str, PackageManagerVariant]] = [
    ("pnpm-lock.yaml", PackageManagerVariant.PNPM),
    ("yarn.lock", PackageManagerVariant.YARN),
    ("package-lock.json", PackageManagerVariant.NPM),
]

CONFIG_FILES: List[Tuple[str, PackageManagerVariant]] = [
    ("pnpm-workspace.yaml", PackageManagerVariant.PNPM),
    (".yarnrc.yml", PackageManagerVariant.YARN),
    (".yarnrc", PackageManagerVariant.YARN),
    (".npmrc", PackageManagerVariant.NPM),
]

ADAPTERS: Dict[PackageManagerVariant, Type[NodeModulesAdapter]] = {
    PackageManagerVariant.NPM: NpmAdapter,
    PackageManagerVariant.YARN: YarnAdapter,
    PackageManagerVariant.PNPM: PnpmAdapter,
}


def _from_manifest(project_path: str) -> Optional[PackageManagerVariant]:
    data = read_json_file(os.path.join(project_path, "package.json"))
    if data is None:
        return None

    # "packageManager": "pnpm@8.6.0"
    declared = data.get("packageManager")
    if isinstance(declared, str):
        name = declared.split("@", 1)[0].strip().lower()
        try:
            return PackageManagerVariant(name)
        except ValueError:
            logger.debug(f"Unknown packageManager field {declared!r}")

    if data.get("workspaces") and "pnpm" not in data:
        return PackageManagerVariant.YARN
    return None


def detect_package_manager(project_path: str) -> PackageManagerVariant:
    """
    Package manager a project uses: lockfile, then config file, then the
    manifest's packageManager or workspaces fields. Defaults to npm.
    """
    for filename, variant in LOCKFILES + CONFIG_FILES:
        if os.path.isfile(os.path.join(project_path, filename)):
            logger.debug(f"Detected {variant.value} from {filename}")
            return variant

    variant = _from_manifest(project_path)
    if variant is not None:
        return variant
    return PackageManagerVariant.NPM


def create_adapter(
    project_path: str, variant: Optional[PackageManagerVariant] = None
) -> PackageManagerAdapter:
    if variant is None:
        variant = detect_package_manager(project_path)
    return ADAPTERS[PackageManagerVariant(variant)](project_path)
