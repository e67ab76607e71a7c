"""Shared fixtures: a fake portal behind httpx.MockTransport and a fake clock."""

import json
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from portaljs_opendata.cache import TTLCache
from portaljs_opendata.client import PortalAPIClient
from portaljs_opendata.config import Settings
from portaljs_opendata.dispatcher import ToolDispatcher
from portaljs_opendata.session import SessionContext

BASE_URL = "https://portal.test"

Responder = Union[Any, Callable[[httpx.Request], httpx.Response]]


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def ok(result: Any) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "result": result})


def api_error(status: int, error: Dict[str, Any]) -> httpx.Response:
    return httpx.Response(status, json={"success": False, "error": error})


class FakePortal:
    """Answers ``/api/3/action/<name>`` with registered results and records requests."""

    def __init__(self) -> None:
        self.actions: Dict[str, Responder] = {}
        self.files: Dict[str, httpx.Response] = {}
        self.requests: List[httpx.Request] = []

    def on(self, action: str, responder: Responder) -> None:
        """Register a result (wrapped in a success envelope) or a request callable."""
        self.actions[action] = responder

    def serve_file(self, url: str, text: str, content_type: str = "text/plain") -> None:
        self.files[url] = httpx.Response(
            200, text=text, headers={"content-type": content_type}
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/api/3/action/"):
            action = path.rsplit("/", 1)[-1]
            responder = self.actions.get(action)
            if responder is None:
                return api_error(404, {"message": "Not found", "__type": "Not Found Error"})
            if callable(responder):
                return responder(request)
            return ok(responder)

        response = self.files.get(str(request.url))
        if response is None:
            return httpx.Response(404, text="missing")
        return response

    def calls(self, action: Optional[str] = None) -> List[httpx.Request]:
        if action is None:
            return list(self.requests)
        return [r for r in self.requests if r.url.path.endswith(f"/api/3/action/{action}")]


def request_params(request: httpx.Request) -> Dict[str, Any]:
    """Query parameters of a GET or the JSON body of a POST."""
    if request.method == "POST":
        return json.loads(request.content)
    return dict(request.url.params)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        portal_base_url=BASE_URL,
        api_key=None,
        max_retries=0,
        retry_delay=0.0,
        max_retry_delay=0.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def portal() -> FakePortal:
    return FakePortal()


@pytest.fixture
def client(settings, clock, portal) -> PortalAPIClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(portal.handler))
    return PortalAPIClient(settings, cache=TTLCache(clock=clock), http_client=http_client)


@pytest.fixture
def dispatcher(client, settings) -> ToolDispatcher:
    return ToolDispatcher(client, settings)


@pytest.fixture
def session() -> SessionContext:
    return SessionContext()


def make_dataset(
    dataset_id: str,
    name: Optional[str] = None,
    org: Optional[str] = "org-1",
    tags: Optional[List[str]] = None,
    resources: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Package payload the way ``package_show`` returns it."""
    raw: Dict[str, Any] = {
        "id": dataset_id,
        "name": name or f"dataset-{dataset_id}",
        "title": f"Dataset {dataset_id}",
        "notes": "Some notes",
        "metadata_created": "2024-01-01T00:00:00",
        "metadata_modified": "2024-02-01T00:00:00",
    }
    if org:
        raw["organization"] = {"id": org, "name": f"{org}-name", "title": org.upper()}
    if tags is not None:
        raw["tags"] = [{"name": t, "display_name": t} for t in tags]
    if resources is not None:
        raw["resources"] = resources
    return raw
