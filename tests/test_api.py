import json
from datetime import datetime, timezone

import httpx
import pytest

from conftest import ENTRYPOINT, json_response, satellite_json, task_request_json
from freedom_api import (
    InvalidUriError,
    ResponseError,
    ResponseStatusError,
    TaskRequest,
    TaskStatus,
    TimeFormatError,
    TimeRange,
    ValidationError,
)
from freedom_api.api import error_on_non_success

START = datetime(2024, 3, 1, tzinfo=timezone.utc)
END = datetime(2024, 3, 2, tzinfo=timezone.utc)


def _ok(payload):
    return lambda request: json_response(request, payload)


def test_error_on_non_success():
    error_on_non_success(204, b"")
    with pytest.raises(ResponseStatusError) as exc_info:
        error_on_non_success(503, b"maintenance")
    assert exc_info.value == ResponseStatusError(503, "maintenance")


def test_path_to_url(make_client):
    client = make_client(_ok({}))
    assert str(client.path_to_url("satellites/5")) == ENTRYPOINT + "satellites/5"


def test_resolve_link(make_client):
    client = make_client(_ok({}))
    assert str(client.resolve_link("https://other.test/api/x")) == "https://other.test/api/x"
    assert str(client.resolve_link("/api/sites/3")) == ENTRYPOINT + "sites/3"
    with pytest.raises(InvalidUriError):
        client.resolve_link("")


@pytest.mark.asyncio
async def test_get_account_by_name_query(make_client, requests):
    client = make_client(_ok({"name": "ATLAS", "_links": {"self": {"href": ENTRYPOINT + "accounts/3"}}}))

    account = await client.get_account_by_name("ATLAS")

    assert account.name == "ATLAS"
    assert account.get_id() == 3
    assert requests[0].url.path == "/api/accounts/search/findOneByName"
    assert requests[0].url.params["name"] == "ATLAS"


@pytest.mark.asyncio
async def test_time_window_is_iso_formatted(make_client, requests):
    client = make_client(_ok([task_request_json(1)]))

    result = await client.get_requests_by_target_date_between(START, END)

    assert len(result) == 1
    assert isinstance(result[0], TaskRequest)
    params = requests[0].url.params
    assert requests[0].url.path == "/api/requests/search/findAllByTargetDateBetween"
    assert params["start"] == "2024-03-01T00:00:00Z"
    assert params["end"] == "2024-03-02T00:00:00Z"


@pytest.mark.asyncio
async def test_naive_datetimes_are_utc(make_client, requests):
    client = make_client(_ok({"_embedded": {"tasks": []}}))

    await client.get_tasks_by_pass_window(datetime(2024, 3, 1), datetime(2024, 3, 2))

    assert requests[0].url.params["start"] == "2024-03-01T00:00:00Z"


@pytest.mark.asyncio
async def test_time_range_unpacks_into_window(make_client, requests):
    client = make_client(_ok({"_embedded": {"tasks": []}}))

    await client.get_tasks_by_pass_window(*TimeRange(START, END))

    assert requests[0].url.params["end"] == "2024-03-02T00:00:00Z"


@pytest.mark.asyncio
async def test_invalid_time_is_rejected_before_any_request(make_client, requests):
    client = make_client(_ok({}))

    with pytest.raises(TimeFormatError):
        await client.get_requests_by_target_date_between("yesterday", END)
    with pytest.raises(TimeFormatError):
        client.get_tasks_by_pass_overlapping(START, 1234)
    assert requests == []


@pytest.mark.asyncio
async def test_embedded_list_endpoints(make_client, requests):
    client = make_client(_ok({"_embedded": {"taskRequests": [task_request_json(1), task_request_json(2)]}}))

    result = await client.get_requests_by_ids([1, 2])

    assert [r.get_id() for r in result] == [1, 2]
    assert requests[0].url.params["ids"] == "1,2"


@pytest.mark.asyncio
async def test_satellite_names_are_comma_joined(make_client, requests):
    client = make_client(_ok({"_embedded": {"taskRequests": []}}))

    await client.get_requests_by_configuration_and_satellite_names_and_target_date_between(
        ENTRYPOINT + "configurations/4", ["Sat A", "Sat B"], START, END
    )

    params = requests[0].url.params
    assert params["configuration"] == ENTRYPOINT + "configurations/4"
    assert params["satelliteNames"] == "Sat A,Sat B"


@pytest.mark.asyncio
async def test_status_query_is_validated(make_client, requests):
    client = make_client(_ok({"items": []}))

    with pytest.raises(ValidationError):
        client.get_requests_by_status("sleeping")

    await client.get_requests_by_status("scheduled").collect()
    assert requests[0].url.params["status"] == TaskStatus.SCHEDULED.value


@pytest.mark.asyncio
async def test_status_and_account_query_sends_account(make_client, requests):
    client = make_client(_ok({"items": []}))

    await client.get_requests_by_status_and_account_and_target_date_between(
        TaskStatus.COMPLETED, ENTRYPOINT + "accounts/3", START, END
    ).collect()

    params = requests[0].url.params
    assert params["status"] == "COMPLETED"
    assert params["account"] == ENTRYPOINT + "accounts/3"
    assert "satelliteNames" not in params


@pytest.mark.asyncio
async def test_type_query_is_validated(make_client, requests):
    client = make_client(_ok({"_embedded": {"taskRequests": []}}))

    with pytest.raises(ValidationError):
        await client.get_requests_by_type_and_target_date_between("whenever", START, END)
    assert requests == []

    await client.get_requests_by_type_and_target_date_between("exact", START, END)
    assert requests[0].url.params["type"] == "EXACT"


@pytest.mark.asyncio
async def test_delete_endpoints(make_client, requests):
    client = make_client(lambda request: httpx.Response(204, request=request))

    await client.delete_band_details(1)
    await client.delete_satellite_configuration(2)
    await client.delete_satellite(3)
    await client.delete_override(4)
    await client.delete_user(5)
    await client.delete_task_request(6)

    assert [(r.method, r.url.path) for r in requests] == [
        ("DELETE", "/api/satellite_bands/1"),
        ("DELETE", "/api/satellite_configurations/2"),
        ("DELETE", "/api/satellites/3"),
        ("DELETE", "/api/overrides/4"),
        ("DELETE", "/api/users/5"),
        ("DELETE", "/api/requests/6"),
    ]


@pytest.mark.asyncio
async def test_delete_failure(make_client):
    client = make_client(lambda request: httpx.Response(409, content=b"in use", request=request))

    with pytest.raises(ResponseStatusError) as exc_info:
        await client.delete_satellite(3)
    assert exc_info.value.body == "in use"


@pytest.mark.asyncio
async def test_file_download_returns_raw_bytes(make_client, requests):
    client = make_client(lambda request: httpx.Response(200, content=b"\x00\x01\x02", request=request))

    data = await client.get_file_by_task_id_and_name(7, "data.bin")

    assert data == b"\x00\x01\x02"
    assert requests[0].url.path == "/api/downloads/7/data.bin"


@pytest.mark.asyncio
async def test_new_token_by_satellite_id(make_client, requests):
    client = make_client(_ok({"token": "abc123"}))

    token = await client.new_token_by_satellite_id(42, 101)

    assert token == "abc123"
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/api/fps"
    assert json.loads(requests[0].content) == {
        "band": "/api/satellite_bands/42",
        "satellite": "/api/satellites/101",
    }


@pytest.mark.asyncio
async def test_new_token_by_site_configuration_id(make_client, requests):
    client = make_client(_ok({"token": "xyz"}))

    assert await client.new_token_by_site_configuration_id(42, 9) == "xyz"
    assert json.loads(requests[0].content)["configuration"] == "/api/configurations/9"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"token": 12}])
async def test_new_token_requires_string_token(make_client, payload):
    client = make_client(_ok(payload))

    with pytest.raises(ResponseError):
        await client.new_token_by_satellite_id(1, 1)


@pytest.mark.asyncio
async def test_gateway_license_endpoints(make_client, requests):
    client = make_client(_ok({"valid": True}))

    verified = await client.verify_gateway_license("KEY-1")
    await client.regenerate_gateway_license(8)
    await client.get_gateway_license(8)
    await client.get_all_gateway_licenses()

    assert verified["valid"] is True
    assert [(r.method, r.url.path) for r in requests] == [
        ("POST", "/api/gateway-licenses/verify"),
        ("POST", "/api/gateway-licenses/8/regenerate"),
        ("GET", "/api/gateway-licenses/8"),
        ("GET", "/api/gateway-licenses"),
    ]
    assert json.loads(requests[0].content) == {"licenseKey": "KEY-1"}


@pytest.mark.asyncio
async def test_fps_task_bundle(make_client, requests):
    client = make_client(_ok([{"task": 1}]))

    bundles = await client.get_fps_task_bundle(START, END)

    assert bundles.into_inner() == [{"task": 1}]
    assert requests[0].url.path == "/api/fpstaskbundle/search/findByOverlapping"


@pytest.mark.asyncio
async def test_search_by_name_endpoints(make_client, requests):
    client = make_client(_ok(satellite_json(1)))

    await client.get_satellite_by_name("Sat 1")

    assert requests[0].url.path == "/api/satellites/findOneByName"
    assert requests[0].url.params["name"] == "Sat 1"
