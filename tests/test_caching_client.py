import asyncio
import time

import httpx
import pytest

from conftest import ENTRYPOINT, json_response, satellite_json
from freedom_api import (
    CachingClient,
    ConfigurationError,
    ResponseError,
    ResponseStatusError,
    Shared,
)


def _satellite_handler(delay: float = 0.0):
    async def handler(request: httpx.Request) -> httpx.Response:
        if delay:
            await asyncio.sleep(delay)
        sat_id = int(request.url.path.rsplit("/", 1)[-1])
        return json_response(request, satellite_json(sat_id))

    return handler


def test_capacity_must_be_positive(make_client):
    with pytest.raises(ConfigurationError):
        CachingClient(make_client(_satellite_handler()), capacity=0)


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_fetch(make_client, requests):
    client = CachingClient(make_client(_satellite_handler(delay=0.01)))

    results = await asyncio.gather(*(client.get_satellite_by_id(710) for _ in range(50)))

    assert len(requests) == 1
    assert all(isinstance(r, Shared) for r in results)
    assert {r.name for r in results} == {"Sat 710"}
    assert client.stats["misses"] == 1
    assert client.stats["coalesced"] == 49


@pytest.mark.asyncio
async def test_cached_response_is_served_without_network(make_client, requests):
    client = CachingClient(make_client(_satellite_handler()))

    first = await client.get_satellite_by_id(1)
    second = await client.get_satellite_by_id(1)

    assert first == second
    assert len(requests) == 1
    assert client.stats["hits"] == 1
    assert ENTRYPOINT + "satellites/1" in client


@pytest.mark.asyncio
async def test_error_status_is_not_cached(make_client, requests):
    statuses = iter([500, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        payload = satellite_json(1) if status == 200 else {"error": "down"}
        return json_response(request, payload, status)

    client = CachingClient(make_client(handler))

    with pytest.raises(ResponseStatusError) as exc_info:
        await client.get_satellite_by_id(1)
    assert exc_info.value.status_code == 500
    assert len(client) == 0

    sat = await client.get_satellite_by_id(1)
    assert sat.name == "Sat 1"
    await client.get_satellite_by_id(1)
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_transport_failure_reaches_every_waiter_and_is_not_cached(make_client, requests):
    fail = True

    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.01)
        if fail:
            raise httpx.ConnectError("connection refused", request=request)
        return json_response(request, satellite_json(1))

    client = CachingClient(make_client(handler))

    results = await asyncio.gather(
        *(client.get_satellite_by_id(1) for _ in range(10)), return_exceptions=True
    )
    assert len(requests) == 1
    assert all(isinstance(r, ResponseError) for r in results)

    fail = False
    sat = await client.get_satellite_by_id(1)
    assert sat.name == "Sat 1"
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_invalidate_all_forces_refetch(make_client, requests):
    client = CachingClient(make_client(_satellite_handler()))

    await client.get_satellite_by_id(1)
    await client.get_satellite_by_id(2)
    assert len(client) == 2

    client.invalidate_all()
    assert len(client) == 0

    await client.get_satellite_by_id(1)
    assert len(requests) == 3


@pytest.mark.asyncio
async def test_invalidate_single_url(make_client, requests):
    client = CachingClient(make_client(_satellite_handler()))

    await client.get_satellite_by_id(1)
    await client.get_satellite_by_id(2)

    assert client.invalidate(ENTRYPOINT + "satellites/1") is True
    assert client.invalidate(ENTRYPOINT + "satellites/1") is False

    await client.get_satellite_by_id(1)
    await client.get_satellite_by_id(2)
    assert len(requests) == 3


@pytest.mark.asyncio
async def test_in_flight_fetch_is_not_stored_after_invalidate_all(make_client):
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return json_response(request, satellite_json(1))

    client = CachingClient(make_client(handler))

    pending = asyncio.ensure_future(client.get_satellite_by_id(1))
    await asyncio.sleep(0.01)
    client.invalidate_all()
    release.set()

    sat = await pending
    assert sat.name == "Sat 1"
    assert len(client) == 0


@pytest.mark.asyncio
async def test_least_recently_used_entry_is_evicted(make_client, requests):
    client = CachingClient(make_client(_satellite_handler()), capacity=2)

    await client.get_satellite_by_id(1)
    await client.get_satellite_by_id(2)
    await client.get_satellite_by_id(1)  # hit; 2 is now the oldest
    await client.get_satellite_by_id(3)  # evicts 2

    assert len(client) == 2
    assert client.stats["evictions"] == 1

    await client.get_satellite_by_id(1)
    assert len(requests) == 3
    await client.get_satellite_by_id(2)
    assert len(requests) == 4


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_fetch(make_client, requests):
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return json_response(request, satellite_json(1))

    client = CachingClient(make_client(handler))

    first = asyncio.ensure_future(client.get_satellite_by_id(1))
    second = asyncio.ensure_future(client.get_satellite_by_id(1))
    await asyncio.sleep(0.01)

    first.cancel()
    release.set()

    sat = await second
    assert sat.name == "Sat 1"
    with pytest.raises(asyncio.CancelledError):
        await first
    assert len(requests) == 1
    assert len(client) == 1


@pytest.mark.asyncio
async def test_post_and_delete_bypass_the_cache(make_client, requests):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "DELETE":
            return httpx.Response(204, request=request)
        return json_response(request, {"token": "abc"})

    client = CachingClient(make_client(handler))

    await client.delete_satellite(1)
    await client.delete_satellite(1)
    assert await client.new_token_by_satellite_id(2, 1) == "abc"
    assert await client.new_token_by_satellite_id(2, 1) == "abc"

    assert len(requests) == 4
    assert len(client) == 0


@pytest.mark.asyncio
async def test_caching_client_uses_inner_config(make_client, config):
    inner = make_client(_satellite_handler())
    async with CachingClient(inner) as client:
        assert client.config == config
        assert client.inner is inner


@pytest.mark.asyncio
async def test_paginated_stream_through_cache(make_client, requests):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("page") == "1":
            return json_response(request, {"items": [satellite_json(3)]})
        return json_response(
            request,
            {"items": [satellite_json(1), satellite_json(2)], "links": {"next": "satellites?page=1"}},
        )

    client = CachingClient(make_client(handler))

    first = await client.get_satellites().collect()
    second = await client.get_satellites().collect()

    assert len(requests) == 2
    assert all(isinstance(item, Shared) for item in first + second)
    assert [item.name for item in first] == ["Sat 1", "Sat 2", "Sat 3"]
    assert first == second
    assert client.stats["hits"] == 2


@pytest.mark.asyncio
async def test_cache_hit_is_not_slower_than_fetch(make_client, requests):
    client = CachingClient(make_client(_satellite_handler(delay=0.05)))

    started = time.perf_counter()
    await client.get_satellite_by_id(1)
    miss_duration = time.perf_counter() - started

    started = time.perf_counter()
    await client.get_satellite_by_id(1)
    hit_duration = time.perf_counter() - started

    assert len(requests) == 1
    assert hit_duration <= miss_duration
