"""Tests for IndexNow submissions."""

import json

import httpx
import pytest

from bazaar.notify.indexnow import IndexNowClient


def _client(config, handler):
    settings = config.model_copy(update={
        "indexnow_enabled": True,
        "indexnow_key": "abc123",
        "indexnow_host": "bazaar.example.com",
        "public_site_url": "https://bazaar.example.com/",
    })
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return IndexNowClient(settings, client=http)


@pytest.mark.asyncio
async def test_submit_listing_payload(config):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(202)

    client = _client(config, handler)
    assert await client.submit_listing("p1") is True
    await client.close()

    payload = json.loads(requests[0].content)
    assert payload == {
        "host": "bazaar.example.com",
        "key": "abc123",
        "keyLocation": "https://bazaar.example.com/abc123.txt",
        "urlList": ["https://bazaar.example.com/product/p1"],
    }


@pytest.mark.asyncio
async def test_foreign_urls_are_dropped(config):
    client = _client(config, lambda request: httpx.Response(200))
    assert await client.submit(["https://elsewhere.example.org/product/1"]) is False


@pytest.mark.asyncio
async def test_failures_return_false(config):
    rejected = _client(config, lambda request: httpx.Response(422, text="bad key"))
    assert await rejected.submit_listing("p1") is False

    def boom(request):
        raise httpx.ConnectError("unreachable")

    unreachable = _client(config, boom)
    assert await unreachable.submit_listing("p1") is False


@pytest.mark.asyncio
async def test_disabled_without_key(config):
    client = IndexNowClient(config)
    assert client.enabled is False
    assert await client.submit_listing("p1") is False
