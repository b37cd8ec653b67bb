"""
Pytest fixtures for the academic portal tests.

The portal only talks to the backend through utils.http.ApiClient, so
every test runs against a MagicMock client whose ``get``/``post``/``patch``
return canned ``{"data": ...}`` envelopes.  No network access is needed.

Fixtures:
    api_client      MagicMock(spec=ApiClient)
    services        real PortalServices over the mocked client
    config          AppConfig built from a controlled environment
    app / client    create_app() + TestClient (server errors become 500s)
    admin_client    client already logged in as an administrator
    user_client     client logged in with the plain user role
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient
from jose import jwt

from portal.app import create_app
from portal.services import PortalServices
from utils.config import AppConfig
from utils.http import ApiClient

TEST_EMAIL = "ana.perez@itla.edu.do"


# ── Helpers ───────────────────────────────────────────────────────────────────

def make_token(**claims) -> str:
    """Signed JWT; the portal only ever reads the payload."""
    return jwt.encode(claims, "backend-secret", algorithm="HS256")


def route_get(api_client: MagicMock, responses: dict) -> None:
    """Answer ``api_client.get(path)`` from *responses*, keyed by path.

    Values that are exceptions are raised; unknown paths get an empty list.
    """
    def _get(path, **kwargs):
        value = responses.get(path, {"data": []})
        if isinstance(value, Exception):
            raise value
        return value
    api_client.get.side_effect = _get


def login(client: TestClient, api_client: MagicMock, **claims) -> None:
    api_client.post.return_value = {"data": {"accessToken": make_token(**claims)}}
    resp = client.post("/login", data={"correo": TEST_EMAIL, "clave": "secreta"},
                       follow_redirects=False)
    assert resp.status_code == 303
    api_client.post.reset_mock()
    api_client.post.return_value = {"data": {}}


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture()
def api_client():
    client = MagicMock(spec=ApiClient)
    client.get.return_value = {"data": []}
    client.post.return_value = {"data": {}}
    client.patch.return_value = {"data": {}}
    return client


@pytest.fixture()
def services(api_client):
    return PortalServices(api_client, options_ttl=60)


@pytest.fixture()
def config(monkeypatch):
    monkeypatch.setenv("PORTAL_API_BASE_URL", "http://api.test/internal/")
    monkeypatch.setenv("PORTAL_SESSION_SECRET", "test-session-secret")
    monkeypatch.setenv("PORTAL_PAGE_SIZE", "10")
    monkeypatch.delenv("APP_LOG_FORMAT", raising=False)
    return AppConfig.from_env()


@pytest.fixture()
def app(config, services):
    return create_app(config=config, services=services)


@pytest.fixture()
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def admin_client(client, api_client):
    login(client, api_client, sub="7", nombre="Ana Pérez", rolId=1)
    return client


@pytest.fixture()
def user_client(client, api_client):
    login(client, api_client, sub="8", nombre="Luis Gómez", rolId=2)
    return client
