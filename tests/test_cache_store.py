"""Tests for the on-disk cache buckets."""

import pytest

from work_timesheet.gateway.cache_store import CacheStorage
from work_timesheet.gateway.messages import GatewayResponse

URL = "http://upstream.test/index.html"


@pytest.fixture
def caches(tmp_path):
    return CacheStorage(tmp_path / "caches")


@pytest.mark.asyncio
async def test_put_and_match(caches):
    bucket = await caches.open("static-v1.1")
    response = GatewayResponse(
        url=URL, status=200, headers=(("Content-Type", "text/html"),), body=b"<p>hi</p>"
    )

    await bucket.put(URL, response)

    assert await bucket.match(URL) == response
    assert await caches.match(URL) == response
    assert await bucket.match(URL + "?v=2") is None


@pytest.mark.asyncio
async def test_buckets_keep_creation_order(caches):
    await caches.open("b-second")
    await caches.open("a-first")
    await caches.open("b-second")
    assert await caches.keys() == ["b-second", "a-first"]
    assert await caches.has("a-first")


@pytest.mark.asyncio
async def test_delete_bucket(caches):
    bucket = await caches.open("old")
    await bucket.put(URL, GatewayResponse(url=URL, status=200, body=b"x"))

    assert await caches.delete("old") is True
    assert await caches.delete("old") is False
    assert await caches.keys() == []
    assert await caches.match(URL) is None


@pytest.mark.asyncio
async def test_index_survives_reopen(tmp_path, caches):
    await caches.open("static-v1.1")
    reopened = CacheStorage(tmp_path / "caches")
    assert await reopened.keys() == ["static-v1.1"]


@pytest.mark.asyncio
async def test_delete_single_entry(caches):
    bucket = await caches.open("static-v1.1")
    await bucket.put(URL, GatewayResponse(url=URL, status=200))
    assert await bucket.delete(URL) is True
    assert await bucket.keys() == []
