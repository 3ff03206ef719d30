"""
Package manager adapters for node_modules based projects.

Installed packages are read from ``node_modules`` (scoped packages included).
Mutations shell out to the package manager binary with a bounded timeout.
"""

import asyncio
import json
import logging
import os
import shlex
import shutil
from typing import Any, Dict, List, Optional

from dephealth.schemas.scan import InstalledPackage, Lockfile, PackageManagerVariant

from .base import AdapterError, PackageManagerAdapter

logger = logging.getLogger(__name__)

NODE_MODULES = "node_modules"
UNKNOWN_VERSION = "unknown"


def read_json_file(path: str) -> Optional[Dict[str, Any]]:
    """Parsed JSON object, or None when the file is missing or not an object."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def read_installed_package(name: str, path: str) -> InstalledPackage:
    data = read_json_file(os.path.join(path, "package.json"))
    if data is None or not isinstance(data.get("version"), str):
        return InstalledPackage(name=name, version=UNKNOWN_VERSION, path=path, is_valid=False)

    peers = data.get("peerDependencies") or {}
    meta = data.get("peerDependenciesMeta") or {}
    if not isinstance(peers, dict):
        peers = {}
    if not isinstance(meta, dict):
        meta = {}
    return InstalledPackage(
        name=name,
        version=data["version"],
        path=path,
        peer_dependencies={k: v for k, v in peers.items() if isinstance(v, str)},
        optional_peers=[
            peer
            for peer, options in meta.items()
            if isinstance(options, dict) and options.get("optional") is True
        ],
    )


def scan_node_modules(project_path: str) -> List[InstalledPackage]:
    """Top-level installs, sorted by name. Hidden entries such as ``.bin`` are skipped."""
    root = os.path.join(project_path, NODE_MODULES)
    if not os.path.isdir(root):
        return []

    packages: List[InstalledPackage] = []
    for entry in sorted(os.listdir(root)):
        if entry.startswith("."):
            continue
        entry_path = os.path.join(root, entry)
        if not os.path.isdir(entry_path):
            continue
        if entry.startswith("@"):
            for scoped in sorted(os.listdir(entry_path)):
                scoped_path = os.path.join(entry_path, scoped)
                if os.path.isdir(scoped_path):
                    packages.append(read_installed_package(f"{entry}/{scoped}", scoped_path))
        else:
            packages.append(read_installed_package(entry, entry_path))
    return packages


class NodeModulesAdapter(PackageManagerAdapter):
    """Shared node_modules reading and command execution."""

    cli_command: str = ""
    lockfile_name: str = ""
    command_timeout: float = 60.0
    regenerate_timeout: float = 120.0

    @property
    def lockfile_path(self) -> str:
        return os.path.join(self.project_path, self.lockfile_name)

    def is_tool_available(self) -> bool:
        return shutil.which(self.cli_command) is not None

    async def read_lockfile(self) -> Optional[Lockfile]:
        if not os.path.isfile(self.lockfile_path):
            return None
        return Lockfile(
            variant=self.variant,
            path=self.lockfile_path,
            parsed_content=self._parse_lockfile(),
        )

    def _parse_lockfile(self) -> Dict[str, Any]:
        # text lockfiles are not parsed
        return {}

    async def get_installed_packages(self) -> List[InstalledPackage]:
        packages = await asyncio.to_thread(scan_node_modules, self.project_path)
        invalid = sum(1 for p in packages if not p.is_valid)
        if invalid:
            logger.warning(f"{invalid} installed packages have unreadable package.json")
        return packages

    async def install_package(self, package_name: str, version: Optional[str] = None) -> None:
        await self._run(self.install_command(package_name, version))

    async def update_package(self, package_name: str, version: str) -> None:
        await self._run(self.update_command(package_name, version))

    async def remove_package(self, package_name: str) -> None:
        await self._run(self.remove_command(package_name))

    async def regenerate_lockfile(self) -> None:
        if os.path.isfile(self.lockfile_path):
            os.remove(self.lockfile_path)
        await self._run(self.regenerate_command(), timeout=self.regenerate_timeout)

    async def _run(self, command: str, timeout: Optional[float] = None) -> str:
        """
        Run a package manager command in the project directory.

        Raises:
            AdapterError: The binary is missing, the command timed out or
                exited non-zero
        """
        timeout = timeout if timeout is not None else self.command_timeout
        if not self.is_tool_available():
            raise AdapterError(f"'{self.cli_command}' not found in PATH", command=command)

        logger.info(f"Running {command} in {self.project_path}")
        process = await asyncio.create_subprocess_exec(
            *shlex.split(command),
            cwd=self.project_path,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise AdapterError(f"Timed out after {timeout:.0f}s", command=command)

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip() or "command failed"
            logger.error(f"{command} failed: {message}")
            raise AdapterError(message, command=command, exit_code=process.returncode)
        return stdout.decode(errors="replace")


class NpmAdapter(NodeModulesAdapter):
    variant = PackageManagerVariant.NPM
    cli_command = "npm"
    lockfile_name = "package-lock.json"

    def _parse_lockfile(self) -> Dict[str, Any]:
        """
        Raises:
            AdapterError: package-lock.json is not a lockfile object
        """
        data = read_json_file(self.lockfile_path)
        if data is None or "lockfileVersion" not in data:
            raise AdapterError(f"Invalid lockfile: {self.lockfile_path}")
        return data


class YarnAdapter(NodeModulesAdapter):
    variant = PackageManagerVariant.YARN
    cli_command = "yarn"
    lockfile_name = "yarn.lock"


class PnpmAdapter(NodeModulesAdapter):
    variant = PackageManagerVariant.PNPM
    cli_command = "pnpm"
    lockfile_name = "pnpm-lock.yaml"
