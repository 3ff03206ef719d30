"""Tests for manifest loading and scan context construction."""

import asyncio
import json

import pytest

from dephealth.schemas.scan import InstalledPackage, PackageManagerVariant
from dephealth.services.analysis.context import build_context, load_manifest
from tests.mocks.packages import FakeAdapter

PACKAGE_JSON = {
    "name": "demo-app",
    "version": "2.1.0",
    "dependencies": {"react": "^17.0.0"},
    "devDependencies": {"jest": "^29.0.0"},
    "peerDependencies": {"react-dom": "^17.0.0"},
    "optionalDependencies": {"fsevents": "^2.3.0"},
}


def _write_manifest(path, data):
    (path / "package.json").write_text(json.dumps(data), encoding="utf-8")


class TestLoadManifest:
    def test_reads_every_section(self, tmp_path):
        _write_manifest(tmp_path, PACKAGE_JSON)
        manifest = load_manifest(str(tmp_path))

        assert manifest.name == "demo-app"
        assert manifest.version == "2.1.0"
        assert manifest.dependencies == {"react": "^17.0.0"}
        assert manifest.dev_dependencies == {"jest": "^29.0.0"}
        assert manifest.peer_dependencies == {"react-dom": "^17.0.0"}
        assert manifest.optional_dependencies == {"fsevents": "^2.3.0"}

    def test_defaults(self, tmp_path):
        _write_manifest(tmp_path, {})
        manifest = load_manifest(str(tmp_path))
        assert manifest.name == "unknown"
        assert manifest.version == "0.0.0"
        assert manifest.declared() == {}

    def test_declared_prefers_runtime_dependencies(self, tmp_path):
        data = dict(PACKAGE_JSON, devDependencies={"react": "^18.0.0"})
        _write_manifest(tmp_path, data)
        manifest = load_manifest(str(tmp_path))
        assert manifest.declared()["react"] == "^17.0.0"
        assert "jest" not in manifest.declared(include_dev=False)

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_manifest(str(tmp_path))

    def test_not_an_object(self, tmp_path):
        (tmp_path / "package.json").write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError, match="JSON object"):
            load_manifest(str(tmp_path))


class TestBuildContext:
    def test_collects_adapter_state(self, tmp_path):
        _write_manifest(tmp_path, PACKAGE_JSON)
        installed = [InstalledPackage(name="react", version="17.0.2", path="node_modules/react")]
        adapter = FakeAdapter(str(tmp_path), installed=installed)

        context = asyncio.run(build_context(str(tmp_path), adapter))

        assert context.project_path == str(tmp_path)
        assert context.manifest.name == "demo-app"
        assert context.installed_packages == installed
        assert context.installed("react").version == "17.0.2"
        assert context.installed("jest") is None
        assert context.lockfile.variant == PackageManagerVariant.NPM
        assert context.package_manager is adapter
        assert context.include_dev is True
        assert context.registry is None

    def test_explicit_manifest_and_include_dev(self, tmp_path):
        _write_manifest(tmp_path, {"name": "ignored"})
        adapter = FakeAdapter(str(tmp_path))
        manifest = load_manifest(str(tmp_path))
        manifest.name = "explicit"

        context = asyncio.run(
            build_context(str(tmp_path), adapter, manifest=manifest, include_dev=False)
        )
        assert context.manifest.name == "explicit"
        assert context.include_dev is False

    def test_missing_project_directory(self, tmp_path):
        adapter = FakeAdapter(str(tmp_path / "nope"))
        with pytest.raises(FileNotFoundError):
            asyncio.run(build_context(str(tmp_path / "nope"), adapter))

    def test_missing_manifest_is_fatal(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            asyncio.run(build_context(str(tmp_path), FakeAdapter(str(tmp_path))))
