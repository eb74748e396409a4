"""
Pytest configuration for the AI Core gateway tests: validates the
environment, registers markers and provides a simulated AI Core.

Upstream HTTP never leaves the process: every component under test gets
an ``httpx.AsyncClient`` backed by ``httpx.MockTransport`` whose routes
are keyed ``"METHOD:/path"``.
"""

import inspect
import json
import sys
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from devportal.config.settings import AICoreConfig, AICoreCredentials, Settings
from devportal.core.types import TeamRole
from devportal.observability.metrics import MetricsCollector
from devportal.persistence import Group, Organization, Team, User, create_inmemory_directory

TOKEN_BODY = {"access_token": "test-token", "token_type": "Bearer", "expires_in": 3600}


# =============================================================================
# SIMULATED AI CORE
# =============================================================================


class MockAICore:
    """
    Route table answering httpx requests.

    A route is ``"METHOD:/path"`` and matches any host, or
    ``"host METHOD:/path"`` to answer only for one instance. A route value
    is either a ready ``httpx.Response`` factory or a callable receiving
    the request.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        route: str,
        status: int = 200,
        body: Any = None,
        *,
        host: str | None = None,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> None:
        key = f"{host} {route}" if host else route
        if handler is None:
            def handler(request: httpx.Request) -> httpx.Response:
                if isinstance(body, str):
                    return httpx.Response(status, text=body)
                return httpx.Response(status, json=body if body is not None else {})
        self.routes[key] = handler

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.method}:{request.url.path}"
        handler = self.routes.get(f"{request.url.host} {key}") or self.routes.get(key)
        if handler is None:
            return httpx.Response(404, json={"error": f"no route for {key}"})
        response = handler(request)
        if inspect.isawaitable(response):
            response = await response
        return response

    def calls(self, route: str) -> list[httpx.Request]:
        method, path = route.split(":", 1)
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def last_json(self, route: str) -> Any:
        return json.loads(self.calls(route)[-1].content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))


def api_host(team: str) -> str:
    return f"{team}.aicore.test"


def make_credentials(team: str, resource_group: str = "default") -> AICoreCredentials:
    return AICoreCredentials(
        team=team,
        clientId=f"{team}-client",
        clientSecret=f"{team}-secret",
        oAuthURL=f"https://{team}.auth.test/oauth/token",
        apiUrl=f"https://{api_host(team)}",
        resourceGroup=resource_group,
    )


def deployment_payload(
    deployment_id: str,
    team: str = "team-alpha",
    *,
    scenario_id: str = "foundation-models",
    model_name: str | None = None,
    with_url: bool = True,
    status: str = "RUNNING",
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": deployment_id,
        "configurationId": "config-1",
        "scenarioId": scenario_id,
        "status": status,
        "statusMessage": "Deployment is running",
        "createdAt": "2023-01-01T00:00:00Z",
        "modifiedAt": "2023-01-01T01:00:00Z",
    }
    if with_url:
        payload["deploymentUrl"] = f"https://{api_host(team)}/v2/inference/deployments/{deployment_id}"
    if model_name:
        payload["details"] = {"resources": {"backend_details": {"model": {"name": model_name}}}}
    return payload


def listing(*deployments: dict[str, Any]) -> dict[str, Any]:
    return {"count": len(deployments), "resources": list(deployments)}


# =============================================================================
# SHARED FIXTURES
# =============================================================================


@pytest.fixture
def aicore() -> MockAICore:
    """Simulated AI Core that already issues tokens."""
    mock = MockAICore()
    mock.add("POST:/oauth/token", 200, TOKEN_BODY)
    return mock


@pytest.fixture
def http_client(aicore):
    return aicore.client()


@pytest.fixture
def make_deployment() -> Callable[..., dict[str, Any]]:
    return deployment_payload


@pytest.fixture
def make_listing() -> Callable[..., dict[str, Any]]:
    return listing


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def credentials_for() -> Callable[..., list[AICoreCredentials]]:
    def _make(*teams: str) -> list[AICoreCredentials]:
        return [make_credentials(t) for t in teams]
    return _make


@pytest.fixture
def settings_for() -> Callable[..., Settings]:
    def _make(*teams: str, **aicore_overrides: Any) -> Settings:
        return Settings(
            aicore=AICoreConfig(credentials=[make_credentials(t) for t in teams], **aicore_overrides)
        )
    return _make


@pytest.fixture
def org_directory():
    """
    A small organisation:

    org-one (owner org.mmm)
      group-one (owner group.manager): team-alpha, team-beta
      group-two: team-gamma
    """
    org = Organization(id="org-1", name="org-one", owner="org.mmm")
    groups = [
        Group(id="group-1", name="group-one", owner="group.manager", org_id="org-1"),
        Group(id="group-2", name="group-two", owner="someone.else", org_id="org-1"),
    ]
    teams = [
        Team(id="t-alpha", name="alpha", owner="team-alpha", group_id="group-1"),
        Team(id="t-beta", name="team-beta", group_id="group-1"),
        Team(id="t-gamma", name="team-gamma", group_id="group-2"),
    ]
    users = [
        User(id="u-1", name="team.member", email="team.member@example.com", team_id="t-alpha"),
        User(
            id="u-2",
            name="group.manager",
            email="group.manager@example.com",
            team_id="t-alpha",
            team_role=TeamRole.MANAGER,
        ),
        User(
            id="u-3",
            name="org.mmm",
            email="org.mmm@example.com",
            team_id="t-beta",
            team_role=TeamRole.MMM,
        ),
        User(
            id="u-4",
            name="metadata.user",
            email="metadata.user@example.com",
            metadata='{"ai_instances": ["team-alpha", "team-beta"]}',
        ),
        User(id="u-5", name="nobody", email="nobody@example.com"),
    ]
    return create_inmemory_directory(users=users, teams=teams, groups=groups, organizations=[org])


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Validate test environment and register custom markers."""
    missing = []
    for mod in ("httpx", "pydantic", "pydantic_settings", "yaml", "prometheus_client", "click", "pytest_asyncio"):
        try:
            __import__(mod)
        except ImportError:
            missing.append(mod)

    if missing:
        banner = "=" * 70
        print(
            f"\n{banner}\n TEST ENVIRONMENT ERROR\n{banner}\n"
            f"\n Missing dependencies: {', '.join(missing)}\n"
            f" Run: pip install -e '.[dev]'\n{banner}",
            file=sys.stderr,
        )
        raise SystemExit(1)

    config.addinivalue_line(
        "markers", "unit: Fast unit tests with no external dependencies"
    )
