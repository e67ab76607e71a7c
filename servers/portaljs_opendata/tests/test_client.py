"""Tests for the upstream client: envelopes, errors, caching and headers."""

import httpx
import pytest

from portaljs_opendata.cache import DEFAULT_TTL_MS
from portaljs_opendata.client import USER_AGENT, PortalAPIClient
from portaljs_opendata.session import SessionCredential
from portaljs_opendata.utils.exceptions import (
    UpstreamApiError,
    UpstreamConnectionError,
    UpstreamHttpError,
    ValidationError,
)

from .conftest import BASE_URL, api_error, ok, request_params


@pytest.mark.asyncio
async def test_get_returns_result_and_sends_query(client, portal):
    portal.on("package_show", {"id": "abc", "name": "water"})

    result = await client.request("GET", "package_show", {"id": "abc"})

    assert result == {"id": "abc", "name": "water"}
    request = portal.calls("package_show")[0]
    assert str(request.url).startswith(f"{BASE_URL}/api/3/action/package_show")
    assert request_params(request) == {"id": "abc"}
    assert request.headers["User-Agent"] == USER_AGENT
    assert request.headers["Content-Type"] == "application/json"
    assert "Authorization" not in request.headers


@pytest.mark.asyncio
async def test_cached_get_skips_network_until_ttl(client, portal, clock):
    portal.on("package_show", {"id": "abc", "name": "water"})

    await client.request("GET", "package_show", {"id": "abc"})
    clock.advance(DEFAULT_TTL_MS - 1)
    await client.request("GET", "package_show", {"id": "abc"})
    assert len(portal.calls("package_show")) == 1

    clock.advance(1)
    await client.request("GET", "package_show", {"id": "abc"})
    assert len(portal.calls("package_show")) == 2


@pytest.mark.asyncio
async def test_non_cacheable_get_always_hits_network(client, portal):
    portal.on("organization_list_for_user", [])

    await client.request("GET", "organization_list_for_user", cacheable=False)
    await client.request("GET", "organization_list_for_user", cacheable=False)

    assert len(portal.calls("organization_list_for_user")) == 2
    assert len(client.cache) == 0


@pytest.mark.asyncio
async def test_post_is_never_cached(client, portal):
    portal.on("package_create", {"id": "new", "name": "new"})

    await client.request("POST", "package_create", {"name": "new"})
    await client.request("POST", "package_create", {"name": "new"})

    calls = portal.calls("package_create")
    assert len(calls) == 2
    assert request_params(calls[0]) == {"name": "new"}
    assert len(client.cache) == 0


@pytest.mark.asyncio
async def test_success_false_raises_and_is_not_cached(client, portal):
    portal.on(
        "package_show",
        lambda request: httpx.Response(
            200, json={"success": False, "error": {"message": "Bad thing"}}
        ),
    )

    with pytest.raises(UpstreamApiError) as exc_info:
        await client.request("GET", "package_show", {"id": "abc"})
    assert exc_info.value.error_body == {"message": "Bad thing"}
    assert "Bad thing" in exc_info.value.message

    with pytest.raises(UpstreamApiError):
        await client.request("GET", "package_show", {"id": "abc"})
    assert len(portal.calls("package_show")) == 2
    assert len(client.cache) == 0


@pytest.mark.asyncio
async def test_http_error_carries_status(client, portal):
    portal.on("package_show", lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(UpstreamHttpError) as exc_info:
        await client.request("GET", "package_show", {"id": "abc"})

    assert exc_info.value.status == 500
    assert exc_info.value.message == "API returned 500 Internal Server Error"


@pytest.mark.asyncio
async def test_http_error_keeps_envelope_error(client, portal):
    portal.on(
        "package_create",
        lambda request: api_error(409, {"name": ["That URL is already in use."]}),
    )

    with pytest.raises(UpstreamHttpError) as exc_info:
        await client.request("POST", "package_create", {"name": "taken"})

    assert exc_info.value.status == 409
    assert "That URL is already in use." in exc_info.value.message


@pytest.mark.asyncio
async def test_missing_result_becomes_empty_mapping(client, portal):
    portal.on("organization_member_delete", lambda request: httpx.Response(200, json={"success": True}))

    assert await client.request("POST", "organization_member_delete", {"id": "o"}) == {}


@pytest.mark.asyncio
async def test_invalid_json_raises_api_error(client, portal):
    portal.on("status_show", lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(UpstreamApiError):
        await client.request("GET", "status_show")


@pytest.mark.asyncio
async def test_network_failure_surfaces_as_http_error(client, portal):
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    portal.on("package_show", unreachable)

    with pytest.raises(UpstreamHttpError) as exc_info:
        await client.request("GET", "package_show", {"id": "abc"})

    assert isinstance(exc_info.value, UpstreamConnectionError)
    assert exc_info.value.status == 0
    assert "connection refused" in exc_info.value.message


@pytest.mark.asyncio
async def test_connection_failures_are_retried(settings, clock, portal):
    attempts = []

    def flaky(request):
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("refused", request=request)
        return ok({"ok": True})

    portal.on("status_show", flaky)
    retrying = settings.model_copy(update={"max_retries": 2})
    client = PortalAPIClient(
        retrying,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(portal.handler)),
    )

    assert await client.request("GET", "status_show", cacheable=False) == {"ok": True}
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_static_api_key_is_sent(settings, portal):
    keyed = settings.model_copy(update={"api_key": "static-key"})
    client = PortalAPIClient(
        keyed, http_client=httpx.AsyncClient(transport=httpx.MockTransport(portal.handler))
    )
    portal.on("package_show", {"id": "a", "name": "a"})

    await client.request("GET", "package_show", {"id": "a"})

    assert portal.calls()[0].headers["Authorization"] == "static-key"


@pytest.mark.asyncio
async def test_credential_overrides_key_and_url(client, portal):
    portal.on("package_create", {"id": "new", "name": "new"})
    credential = SessionCredential(api_key="session-key", api_url="https://other.test/")

    await client.request("POST", "package_create", {"name": "new"}, credential=credential)

    request = portal.calls()[0]
    assert request.headers["Authorization"] == "session-key"
    assert str(request.url) == "https://other.test/api/3/action/package_create"


@pytest.mark.asyncio
async def test_rejects_unknown_method(client):
    with pytest.raises(ValidationError):
        await client.request("DELETE", "package_delete")


@pytest.mark.asyncio
async def test_fetch_resource_returns_text_without_auth(client, portal):
    url = "https://files.test/data.csv"
    portal.serve_file(url, "a,b\n1,2\n", content_type="text/CSV; charset=utf-8")

    raw = await client.fetch_resource(url)

    assert raw.text == "a,b\n1,2\n"
    assert raw.content_type == "text/csv; charset=utf-8"
    assert "Authorization" not in portal.calls()[0].headers


@pytest.mark.asyncio
async def test_fetch_resource_http_error(client):
    with pytest.raises(UpstreamHttpError) as exc_info:
        await client.fetch_resource("https://files.test/missing.csv")
    assert exc_info.value.status == 404


@pytest.mark.asyncio
async def test_health_check_reports_status(client, portal):
    portal.on("status_show", {"ckan_version": "2.10"})

    health = await client.health_check()

    assert health["status"] == "healthy"
    assert health["details"] == {"ckan_version": "2.10"}
