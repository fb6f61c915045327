"""Tests for fetching the registry over HTTP."""

import json

import httpx
import pytest

from mexty.config import SyncConfig
from mexty.errors import FetchError, MalformedRegistryError
from mexty.registry.fetcher import RegistryFetcher

REGISTRY_BODY = {
    "registry": {
        "Widget": {
            "blockId": "65f1c0ffee0000000000abcd",
            "componentName": "Widget",
            "author": "alice",
            "title": "Widget",
            "description": "A widget",
            "tags": ["ui"],
            "lastUpdated": "2024-04-30T10:00:00.000Z",
        }
    },
    "authorRegistry": {
        "alice": {
            "Widget": {
                "blockId": "65f1c0ffee0000000000abcd",
                "componentName": "Widget",
                "author": "alice",
                "title": "Widget",
                "description": "A widget",
                "tags": ["ui"],
                "lastUpdated": "2024-04-30T10:00:00.000Z",
            }
        }
    },
    "meta": {
        "totalBlocks": 3,
        "totalComponents": 1,
        "totalAuthors": 1,
        "lastUpdated": "2024-04-30T10:00:00.000Z",
    },
}


def _fetcher(handler, **config) -> RegistryFetcher:
    config.setdefault("api_url", "https://api.example.test")
    return RegistryFetcher(SyncConfig(**config), transport=httpx.MockTransport(handler))


def test_fetch_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=REGISTRY_BODY)

    snapshot = _fetcher(handler).fetch()

    assert seen["url"] == "https://api.example.test/api/blocks/registry"
    assert seen["auth"] is None
    assert list(snapshot.registry) == ["Widget"]
    assert snapshot.registry["Widget"].author == "alice"
    assert list(snapshot.author_registry["alice"]) == ["Widget"]
    assert snapshot.meta.total_blocks == 3


def test_fetch_sends_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=REGISTRY_BODY)

    _fetcher(handler, token="secret-token").fetch()
    assert seen["auth"] == "Bearer secret-token"


def test_fetch_trailing_slash_in_api_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        return httpx.Response(200, json=REGISTRY_BODY)

    _fetcher(handler, api_url="https://api.example.test/").fetch()
    assert seen["path"] == "/api/blocks/registry"


def test_fetch_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "down"})

    with pytest.raises(FetchError) as exc:
        _fetcher(handler).fetch()
    assert exc.value.status_code == 503
    assert "503" in str(exc.value)


def test_fetch_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError) as exc:
        _fetcher(handler).fetch()
    assert exc.value.status_code is None
    assert "Could not reach registry" in str(exc.value)


def test_fetch_invalid_json():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>oops</html>")

    with pytest.raises(FetchError) as exc:
        _fetcher(handler).fetch()
    assert "not valid JSON" in str(exc.value)


def test_fetch_malformed_body():
    body = json.loads(json.dumps(REGISTRY_BODY))
    del body["registry"]["Widget"]["componentName"]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(FetchError) as exc:
        _fetcher(handler).fetch()
    assert isinstance(exc.value.__cause__, MalformedRegistryError)
    assert "registry.Widget" in str(exc.value)
