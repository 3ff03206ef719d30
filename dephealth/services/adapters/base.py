from abc import ABC, abstractmethod
from typing import List, Optional

from dephealth.schemas.scan import InstalledPackage, Lockfile, PackageManagerVariant


class AdapterError(Exception):
    """A package manager command failed."""

    def __init__(self, message: str, command: Optional[str] = None, exit_code: Optional[int] = None):
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code


_INSTALL = {
    PackageManagerVariant.NPM: "npm install",
    PackageManagerVariant.YARN: "yarn add",
    PackageManagerVariant.PNPM: "pnpm add",
}

_REMOVE = {
    PackageManagerVariant.NPM: "npm uninstall",
    PackageManagerVariant.YARN: "yarn remove",
    PackageManagerVariant.PNPM: "pnpm remove",
}

_REGENERATE = {
    PackageManagerVariant.NPM: "npm install --package-lock-only",
    PackageManagerVariant.YARN: "yarn install --force",
    PackageManagerVariant.PNPM: "pnpm install --lockfile-only",
}


def install_command(
    variant: PackageManagerVariant, package_name: str, version: Optional[str] = None
) -> str:
    spec = f"{package_name}@{version}" if version else package_name
    return f"{_INSTALL[PackageManagerVariant(variant)]} {spec}"


def update_command(variant: PackageManagerVariant, package_name: str, version: str) -> str:
    return install_command(variant, package_name, version)


def remove_command(variant: PackageManagerVariant, package_name: str) -> str:
    return f"{_REMOVE[PackageManagerVariant(variant)]} {package_name}"


def regenerate_command(variant: PackageManagerVariant) -> str:
    return _REGENERATE[PackageManagerVariant(variant)]


def override_command(variant: PackageManagerVariant, package_name: str, version: str) -> str:
    """Manifest edit that forces one version of a package."""
    variant = PackageManagerVariant(variant)
    if variant == PackageManagerVariant.YARN:
        return f'Add to package.json: "resolutions": {{ "{package_name}": "{version}" }}'
    if variant == PackageManagerVariant.PNPM:
        return (
            f'Add to package.json: "pnpm": {{ "overrides": '
            f'{{ "{package_name}": "{version}" }} }}'
        )
    return f'Add to package.json: "overrides": {{ "{package_name}": "{version}" }}'


class PackageManagerAdapter(ABC):
    """
    Reads and mutates a project through exactly one package manager variant.

    Mutating methods run a bounded child process and raise AdapterError on
    failure instead of crashing the caller.
    """

    variant: PackageManagerVariant

    def __init__(self, project_path: str):
        self.project_path = project_path

    def get_variant(self) -> PackageManagerVariant:
        return self.variant

    @abstractmethod
    async def read_lockfile(self) -> Optional[Lockfile]:
        pass

    @abstractmethod
    async def get_installed_packages(self) -> List[InstalledPackage]:
        pass

    @abstractmethod
    async def install_package(self, package_name: str, version: Optional[str] = None) -> None:
        pass

    @abstractmethod
    async def update_package(self, package_name: str, version: str) -> None:
        pass

    @abstractmethod
    async def remove_package(self, package_name: str) -> None:
        pass

    @abstractmethod
    async def regenerate_lockfile(self) -> None:
        pass

    def install_command(self, package_name: str, version: Optional[str] = None) -> str:
        return install_command(self.variant, package_name, version)

    def update_command(self, package_name: str, version: str) -> str:
        return update_command(self.variant, package_name, version)

    def remove_command(self, package_name: str) -> str:
        return remove_command(self.variant, package_name)

    def override_command(self, package_name: str, version: str) -> str:
        return override_command(self.variant, package_name, version)

    def regenerate_command(self) -> str:
        return regenerate_command(self.variant)
