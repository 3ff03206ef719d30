"""Tests for dephealth.services.registry_client."""

import asyncio

import httpx

from dephealth.core.cache import PackageMetadataCache
from dephealth.services.registry_client import RegistryClient

REACT = {
    "name": "react",
    "dist-tags": {"latest": "18.2.0", "next": "19.0.0-rc.1"},
    "versions": {"17.0.2": {}, "18.2.0": {}, "16.14.0": {}, "19.0.0-rc.1": {}},
}


def _client(handler, cache=None):
    return RegistryClient(cache=cache, transport=httpx.MockTransport(handler))


class TestRegistryClient:
    def setup_method(self):
        self.requests = []

    def _handler(self, payloads):
        def handler(request):
            self.requests.append(request)
            name = request.url.raw_path.decode().lstrip("/")
            if name in payloads:
                return httpx.Response(200, json=payloads[name])
            return httpx.Response(404, json={"error": "Not found"})

        return handler

    def test_defaults_from_settings(self):
        client = RegistryClient()
        assert client.base_url == "https://registry.test"
        assert client.timeout == 1.0

    def test_package_url(self):
        client = RegistryClient(base_url="https://registry.example/")
        assert client.package_url("react") == "https://registry.example/react"
        assert client.package_url("@babel/core") == "https://registry.example/@babel%2Fcore"

    def test_latest_version_from_dist_tags(self):
        client = _client(self._handler({"react": REACT}))
        assert asyncio.run(client.get_latest_version("react")) == "18.2.0"
        assert self.requests[0].headers["accept"] == "application/json"

    def test_latest_version_without_dist_tags(self):
        payload = {"versions": {"1.0.0": {}, "1.10.0": {}, "1.9.0": {}}}
        client = _client(self._handler({"left-pad": payload}))
        assert asyncio.run(client.get_latest_version("left-pad")) == "1.10.0"

    def test_versions_newest_first(self):
        client = _client(self._handler({"react": REACT}))
        versions = asyncio.run(client.get_versions("react"))
        assert versions == ["19.0.0-rc.1", "18.2.0", "17.0.2", "16.14.0"]

    def test_scoped_package_request_path(self):
        client = _client(self._handler({"@babel%2Fcore": {"dist-tags": {"latest": "7.24.0"}}}))
        assert asyncio.run(client.get_latest_version("@babel/core")) == "7.24.0"
        assert self.requests[0].url.raw_path == b"/@babel%2Fcore"

    def test_unknown_package_is_none_and_cached(self):
        cache = PackageMetadataCache()
        client = _client(self._handler({}), cache=cache)

        async def lookups():
            first = await client.get_latest_version("does-not-exist")
            second = await client.get_versions("does-not-exist")
            return first, second

        assert asyncio.run(lookups()) == (None, [])
        assert len(self.requests) == 1
        assert "does-not-exist" in cache

    def test_metadata_is_fetched_once_per_run(self):
        client = _client(self._handler({"react": REACT}))

        async def lookups():
            return await asyncio.gather(
                client.get_latest_version("react"),
                client.get_versions("react"),
                client.get_package_metadata("react"),
            )

        latest, versions, metadata = asyncio.run(lookups())
        assert latest == "18.2.0"
        assert versions[1] == "18.2.0"
        assert metadata["name"] == "react"
        assert len(self.requests) == 1

    def test_timeout_degrades_to_no_data(self):
        def handler(request):
            raise httpx.ReadTimeout("slow registry", request=request)

        client = _client(handler)
        assert asyncio.run(client.get_latest_version("react")) is None
        assert asyncio.run(client.get_versions("react")) == []

    def test_non_object_payload_is_ignored(self):
        client = _client(lambda request: httpx.Response(200, json=["not", "a", "document"]))
        assert asyncio.run(client.get_package_metadata("react")) is None


class TestAdvisories:
    def test_bulk_lookup_posts_installed_versions(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = request.content
            return httpx.Response(
                200,
                json={"lodash": [{"id": 1, "title": "Prototype pollution"}, "junk"]},
            )

        advisories = asyncio.run(_client(handler).get_advisories({"lodash": ["4.17.20"]}))

        assert seen["path"] == "/-/npm/v1/security/advisories/bulk"
        assert b"4.17.20" in seen["body"]
        assert advisories == {"lodash": [{"id": 1, "title": "Prototype pollution"}]}

    def test_failed_lookup_is_empty(self):
        client = _client(lambda request: httpx.Response(503))
        assert asyncio.run(client.get_advisories({"lodash": ["4.17.20"]})) == {}

    def test_nothing_to_look_up(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert asyncio.run(_client(handler).get_advisories({})) == {}
