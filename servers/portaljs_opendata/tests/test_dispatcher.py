"""Tests for the dispatcher: write gate, envelopes, error text and redaction."""

import json
import logging

import httpx
import pytest

from portaljs_opendata.dispatcher import ToolDispatcher, write_error_hints
from portaljs_opendata.session import AUTH_REQUIRED_MESSAGE
from portaljs_opendata.tools import TOOL_REGISTRY
from portaljs_opendata.utils.logger import RequestContextFilter

from .conftest import api_error, make_dataset, request_params

WRITE_TOOLS = [name for name, spec in TOOL_REGISTRY.items() if spec.is_write]


class _RecordCollector(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_registry_exposes_the_catalog():
    assert list(TOOL_REGISTRY)[:2] == ["search", "fetch"]
    assert set(WRITE_TOOLS) == {
        "create_dataset",
        "update_dataset",
        "create_resource",
        "create_organization",
        "update_organization",
        "add_user_to_organization",
        "remove_user_from_organization",
    }
    assert not TOOL_REGISTRY["set_api_key"].requires_auth


def test_list_tools_derives_input_schemas(dispatcher):
    tools = {
        tool.name: tool.model_dump(by_alias=True) for tool in dispatcher.list_tools()
    }

    search_schema = tools["search"]["inputSchema"]
    assert search_schema["type"] == "object"
    assert search_schema["required"] == ["query"]
    assert search_schema["properties"]["limit"]["default"] == 10
    assert "maximum" not in search_schema["properties"]["limit"]
    assert tools["preview_resource"]["inputSchema"]["properties"]["limit"]["default"] == 5


@pytest.mark.asyncio
@pytest.mark.parametrize("tool", WRITE_TOOLS)
async def test_write_tools_require_credential(dispatcher, portal, session, tool):
    arguments = {
        "id": "x",
        "name": "new-thing",
        "package_id": "d1",
        "url": "https://files.test/a.csv",
        "username": "ana",
        "title": "T",
    }

    result = await dispatcher.invoke(tool, arguments, session)

    assert result.is_error
    assert result.text == AUTH_REQUIRED_MESSAGE
    assert portal.calls() == []
    assert not session.is_authenticated


@pytest.mark.asyncio
@pytest.mark.parametrize("tool", WRITE_TOOLS)
async def test_write_gate_checked_before_argument_validation(dispatcher, portal, session, tool):
    result = await dispatcher.invoke(tool, {}, session)

    assert result.is_error
    assert result.text == AUTH_REQUIRED_MESSAGE
    assert portal.calls() == []


@pytest.mark.asyncio
async def test_list_my_organizations_requires_credential(dispatcher, portal, session):
    result = await dispatcher.invoke("list_my_organizations", {}, session)

    assert result.text == AUTH_REQUIRED_MESSAGE
    assert portal.calls() == []


@pytest.mark.asyncio
async def test_create_dataset_after_set_api_key(dispatcher, portal, session):
    portal.on("package_create", make_dataset("d1", name="new-data"))

    await dispatcher.invoke("set_api_key", {"api_key": "secret-key"}, session)
    result = await dispatcher.invoke(
        "create_dataset",
        {"name": "new-data", "title": "New", "owner_org": "city", "tags": ["a", "b"]},
        session,
    )

    assert not result.is_error
    data = json.loads(result.text)["data"]
    assert data["action"] == "created"
    assert data["dataset"]["name"] == "new-data"

    request = portal.calls("package_create")[0]
    assert request.method == "POST"
    assert request.headers["Authorization"] == "secret-key"
    assert request_params(request) == {
        "name": "new-data",
        "title": "New",
        "owner_org": "city",
        "tags": [{"name": "a"}, {"name": "b"}],
    }
    assert len(dispatcher.client.cache) == 0


@pytest.mark.asyncio
async def test_update_dataset_sends_only_supplied_fields(dispatcher, portal, session):
    portal.on("package_patch", make_dataset("d1"))
    session.set_credential("key")

    result = await dispatcher.invoke(
        "update_dataset", {"id": "d1", "notes": "Updated", "private": False}, session
    )

    assert json.loads(result.text)["data"]["updated_fields"] == ["notes", "private"]
    assert request_params(portal.calls("package_patch")[0]) == {
        "id": "d1",
        "notes": "Updated",
        "private": False,
    }


@pytest.mark.asyncio
async def test_update_dataset_without_changes_is_rejected(dispatcher, portal, session):
    session.set_credential("key")

    result = await dispatcher.invoke("update_dataset", {"id": "d1"}, session)

    assert result.text.startswith("Error: No fields to update")
    assert portal.calls() == []


@pytest.mark.asyncio
async def test_session_api_url_is_used_for_writes(dispatcher, portal, session):
    portal.on("organization_member_create", {"capacity": "editor"})

    await dispatcher.invoke(
        "set_api_key", {"api_key": "k", "api_url": "https://tenant.test/"}, session
    )
    result = await dispatcher.invoke(
        "add_user_to_organization", {"id": "city", "username": "ana", "role": "editor"}, session
    )

    assert json.loads(result.text)["data"]["role"] == "editor"
    request = portal.calls()[0]
    assert str(request.url) == "https://tenant.test/api/3/action/organization_member_create"
    assert request_params(request) == {"id": "city", "username": "ana", "role": "editor"}


@pytest.mark.asyncio
async def test_remove_user_from_organization(dispatcher, portal, session):
    portal.on("organization_member_delete", lambda request: httpx.Response(200, json={"success": True}))
    session.set_credential("k")

    result = await dispatcher.invoke(
        "remove_user_from_organization", {"id": "city", "username": "ana"}, session
    )

    assert json.loads(result.text)["data"]["action"] == "member_removed"


@pytest.mark.asyncio
async def test_write_error_gets_owner_org_hint(dispatcher, portal, session):
    portal.on(
        "package_create",
        lambda request: api_error(409, {"owner_org": ["Missing value"], "__type": "Validation Error"}),
    )
    session.set_credential("k")

    result = await dispatcher.invoke("create_dataset", {"name": "new-data"}, session)

    assert result.is_error
    first_line = result.text.splitlines()[0]
    assert first_line.startswith("Error: API returned 409 Conflict")
    assert "owner_org: Missing value" in first_line
    assert "Hint: Specify `owner_org`" in result.text


def test_write_error_hints_match_known_failures():
    assert write_error_hints("That URL is already in use.")
    assert write_error_hints("User not authorized to edit")
    assert write_error_hints("Organization not found")
    assert write_error_hints("something else entirely") == []


@pytest.mark.asyncio
async def test_read_errors_have_no_hints(dispatcher, portal, session):
    result = await dispatcher.invoke("fetch", {"id": "missing"}, session)

    assert result.is_error
    assert result.text.startswith("Error: API returned 404 Not Found")
    assert "Hint:" not in result.text


@pytest.mark.asyncio
async def test_unknown_tool_is_error_text(dispatcher, session):
    result = await dispatcher.invoke("drop_database", {}, session)

    assert result.is_error
    assert result.text == "Error: Unknown tool: drop_database"
    assert len(result.to_content()) == 1


@pytest.mark.asyncio
async def test_invalid_arguments_are_error_text(dispatcher, portal, session):
    result = await dispatcher.invoke("search", {"limit": 5}, session)

    assert result.is_error
    assert result.text.startswith("Error: Invalid arguments for search: query:")
    assert portal.calls() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("arguments", [["water"], "water", 5])
async def test_non_object_arguments_are_error_text(dispatcher, portal, session, arguments):
    result = await dispatcher.invoke("search", arguments, session)

    assert result.is_error
    assert result.text.startswith("Error: Invalid arguments for search: expected an object")
    assert len(result.to_content()) == 1
    assert portal.calls() == []


@pytest.mark.asyncio
async def test_tool_and_portal_logs_share_a_request_id(dispatcher, portal, session, caplog):
    caplog.set_level(logging.INFO, logger="portaljs_opendata")
    portal.on("package_show", make_dataset("d1"))
    collector = _RecordCollector()
    collector.addFilter(RequestContextFilter())
    package_logger = logging.getLogger("portaljs_opendata")
    package_logger.addHandler(collector)
    try:
        await dispatcher.invoke("fetch", {"id": "d1"}, session)
        await dispatcher.invoke("fetch", {"id": "d1"}, session)
    finally:
        package_logger.removeHandler(collector)

    components = [getattr(r, "component", None) for r in collector.records]
    assert "portal_client" in components
    assert "dispatcher" in components
    first_call = collector.records[: components.index("dispatcher") + 1]
    assert len({r.request_id for r in first_call}) == 1
    assert first_call[0].request_id != "-"
    assert collector.records[-1].request_id != first_call[0].request_id


@pytest.mark.asyncio
async def test_network_failure_is_single_error_line(dispatcher, portal, session):
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    portal.on("package_show", unreachable)

    result = await dispatcher.invoke("fetch", {"id": "d1"}, session)

    content = result.to_content()
    assert len(content) == 1
    assert content[0].type == "text"
    assert content[0].text.startswith("Error: Could not reach the portal API")
    assert "\n" not in content[0].text


@pytest.mark.asyncio
async def test_unexpected_exception_is_caught(client, settings, session):
    async def broken(client, args, session):
        raise RuntimeError("kaboom")

    spec = TOOL_REGISTRY["fetch"]
    registry = {"fetch": type(spec)(**{**spec.__dict__, "handler": broken})}
    dispatcher = ToolDispatcher(client, settings, registry)

    result = await dispatcher.invoke("fetch", {"id": "x"}, session)

    assert result.is_error
    assert result.text == "Error: Internal error while running fetch: kaboom"


@pytest.mark.asyncio
async def test_success_envelope(dispatcher, portal, session):
    portal.on("package_show", make_dataset("d1"))

    result = await dispatcher.invoke("fetch", {"id": "d1"}, session)

    payload = json.loads(result.text)
    assert payload["success"] is True
    assert payload["data"]["id"] == "d1"
    assert payload["metadata"]["api_version"] == "2.0.0"
    assert payload["metadata"]["execution_time_ms"] >= 0
    assert "T" in payload["metadata"]["timestamp"]


@pytest.mark.asyncio
async def test_credential_never_logged_or_shown(dispatcher, portal, session, caplog):
    caplog.set_level(logging.DEBUG, logger="portaljs_opendata")
    portal.on("package_create", make_dataset("d1"))

    result = await dispatcher.invoke("set_api_key", {"api_key": "top-secret-123"}, session)
    await dispatcher.invoke("create_dataset", {"name": "abc", "owner_org": "o"}, session)
    await dispatcher.invoke("set_api_key", {"api_key": ""}, session)

    assert "top-secret-123" not in result.text
    assert "top-secret-123" not in repr(session)
    for record in caplog.records:
        assert "top-secret-123" not in record.getMessage()
        assert "top-secret-123" not in repr(record.__dict__)
