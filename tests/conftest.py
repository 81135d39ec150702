"""Pytest configuration and fixtures."""

import json
import os
from typing import Any, Dict, List, Optional

os.environ.setdefault("ENVIRONMENT", "testing")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from auth0_actions.config import settings
from auth0_actions.database import Base
from auth0_actions.management.client import Auth0ManagementClient
from auth0_actions.management.schemas import ActionsConfig, ManagementConfig

TEST_DOMAIN = "test-tenant.auth0.com"
TEST_CLIENT_ID = "test-client-id"
TEST_CLIENT_SECRET = "test-client-secret"
TEST_TOKEN = "test-access-token"


class FakeAuth0:
    """In-memory Auth0 tenant served through ``httpx.MockTransport``.

    Implements the token endpoint and the subset of the Management API the
    application uses, and records every request it receives.
    """

    def __init__(self, domain: str = TEST_DOMAIN):
        self.domain = domain
        self.client_secret = TEST_CLIENT_SECRET
        self.accepted_token = TEST_TOKEN
        self.actions: Dict[str, Dict[str, Any]] = {}
        self.bindings: List[Dict[str, Any]] = []
        self.connections: List[Dict[str, Any]] = []
        self.requests: List[httpx.Request] = []

        # Overrides for the token endpoint
        self.token_status = 200
        self.token_body: Optional[Dict[str, Any]] = None

        self.fail_bindings_update = False
        self._next_id = 1

    def add_action(self, name: str, **fields: Any) -> str:
        action_id = f"act_{self._next_id}"
        self._next_id += 1
        self.actions[action_id] = {
            "id": action_id,
            "name": name,
            "runtime": "node18",
            "status": "built",
            "supported_triggers": [{"id": "post-login", "version": "v3"}],
            **fields,
        }
        return action_id

    def add_binding(self, action_id: str, display_name: Optional[str] = None) -> None:
        self.bindings.append(self._binding(action_id, display_name))

    def _binding(self, action_id: str, display_name: Optional[str]) -> Dict[str, Any]:
        action = self.actions.get(action_id, {})
        return {
            "id": f"bind_{action_id}",
            "trigger_id": "post-login",
            "display_name": display_name,
            "action": {"id": action_id, "name": action.get("name", action_id)},
        }

    def calls(self, method: str, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    @property
    def token_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/oauth/token"]

    @property
    def api_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith("/api/v2/")]

    @property
    def binding_action_ids(self) -> List[str]:
        return [b["action"]["id"] for b in self.bindings]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/oauth/token":
            return self._token(request)

        if request.headers.get("authorization") != f"Bearer {self.accepted_token}":
            return httpx.Response(
                401,
                json={"statusCode": 401, "error": "Unauthorized", "message": "Invalid token"},
            )

        if path == "/api/v2/actions/actions":
            return self._actions_collection(request)

        if path.startswith("/api/v2/actions/actions/"):
            return self._action_item(request, path[len("/api/v2/actions/actions/"):])

        if path == "/api/v2/actions/triggers/post-login/bindings":
            return self._bindings(request)

        if path == "/api/v2/connections" and request.method == "GET":
            return httpx.Response(200, json=self.connections)

        return httpx.Response(404, json={"statusCode": 404, "message": "Not found"})

    def _token(self, request: httpx.Request) -> httpx.Response:
        if self.token_status != 200 or self.token_body is not None:
            return httpx.Response(self.token_status, json=self.token_body or {})

        body = json.loads(request.content)
        if body.get("client_secret") != self.client_secret:
            return httpx.Response(
                401,
                json={"error": "access_denied", "error_description": "Unauthorized"},
            )

        return httpx.Response(
            200,
            json={"access_token": TEST_TOKEN, "token_type": "Bearer", "expires_in": 86400},
        )

    def _actions_collection(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            actions = list(self.actions.values())
            return httpx.Response(200, json={"actions": actions, "total": len(actions)})

        if request.method == "POST":
            body = json.loads(request.content)
            action_id = self.add_action(
                body["name"],
                code=body.get("code"),
                runtime=body.get("runtime"),
                supported_triggers=body.get("supported_triggers"),
                secrets=[{"name": s["name"]} for s in body.get("secrets", [])],
            )
            return httpx.Response(201, json=self.actions[action_id])

        return httpx.Response(405)

    def _action_item(self, request: httpx.Request, rest: str) -> httpx.Response:
        deploy = rest.endswith("/deploy")
        action_id = rest[: -len("/deploy")] if deploy else rest

        if action_id not in self.actions:
            return httpx.Response(404, json={"statusCode": 404, "message": "That action does not exist."})

        if deploy and request.method == "POST":
            return httpx.Response(200, json={"id": f"ver_{action_id}", "number": 1, "deployed": True})

        if request.method == "GET":
            return httpx.Response(200, json=self.actions[action_id])

        if request.method == "PATCH":
            body = json.loads(request.content)
            action = self.actions[action_id]
            action.update({k: v for k, v in body.items() if k != "secrets"})
            if "secrets" in body:
                action["secrets"] = [{"name": s["name"]} for s in body["secrets"]]
            return httpx.Response(200, json=action)

        if request.method == "DELETE":
            del self.actions[action_id]
            return httpx.Response(204)

        return httpx.Response(405)

    def _bindings(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"bindings": self.bindings})

        if request.method == "PATCH":
            if self.fail_bindings_update:
                return httpx.Response(500, json={"statusCode": 500, "message": "Internal error"})
            body = json.loads(request.content)
            self.bindings = [
                self._binding(entry["ref"]["value"], entry["display_name"])
                for entry in body["bindings"]
            ]
            return httpx.Response(200, json={"bindings": self.bindings})

        return httpx.Response(405)


@pytest.fixture
def fake_auth0():
    """Fake Auth0 tenant."""
    return FakeAuth0()


@pytest_asyncio.fixture
async def http_client(fake_auth0):
    """HTTP client routed to the fake tenant."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_auth0.handler)) as client:
        yield client


@pytest.fixture
def management_config():
    return ManagementConfig(
        domain=TEST_DOMAIN,
        client_id=TEST_CLIENT_ID,
        client_secret=TEST_CLIENT_SECRET,
    )


@pytest.fixture
def management_client(management_config, http_client):
    """Management API client talking to the fake tenant."""
    return Auth0ManagementClient(management_config, http_client=http_client)


@pytest.fixture
def actions_config():
    return ActionsConfig(
        action_name_prefix="myapp-",
        metadata_key="myapp",
        claims_namespace="https://myapp.example.com",
        callback_url="https://api.myapp.example.com",
        callback_api_key="callback-api-key",
    )


@pytest.fixture
def unconfigured_settings(monkeypatch):
    """Clear Auth0 credentials from the global settings."""
    monkeypatch.setattr(settings, "auth0_domain", None)
    monkeypatch.setattr(settings, "auth0_client_id", None)
    monkeypatch.setattr(settings, "auth0_client_secret", None)
    monkeypatch.setattr(settings, "auth0_audience", None)
    return settings


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a test database engine backed by a temporary SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    # Import models so they register with the metadata
    from auth0_actions.credentials import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    """Create test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
