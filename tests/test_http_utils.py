"""
Tests for HTTP utilities in utils/http.py

Covers RetryStrategy, SessionManager, ApiClient request/download handling
and describe_api_error, with the requests session mocked out.
"""
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.http import (
    CONNECTION_ERROR_MESSAGE,
    ApiClient,
    ApiError,
    RetryStrategy,
    SessionManager,
    describe_api_error,
)


def _response(status=200, json_body=None, text="", content=b"", headers=None):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 400
    resp.text = text
    resp.content = content
    resp.headers = headers if headers is not None else (
        {"content-type": "application/json"} if json_body is not None else {})
    resp.json.return_value = json_body
    return resp


@pytest.fixture()
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture()
def client(session):
    manager = SessionManager()
    manager._session = session
    return ApiClient("http://api.test/internal/", timeout=5, session_manager=manager)


# ── RetryStrategy tests ──────────────────────────────────────────────────────

class TestRetryStrategy:
    def test_defaults(self):
        rs = RetryStrategy()
        assert rs.max_retries == 3
        assert rs.backoff_factor == 0.5
        assert 429 in rs.status_forcelist
        assert 503 in rs.status_forcelist

    def test_only_reads_are_retried(self):
        retry = RetryStrategy(max_retries=4).get_retry_object()
        assert retry.total == 4
        assert "GET" in retry.allowed_methods
        assert "POST" not in retry.allowed_methods
        assert "PATCH" not in retry.allowed_methods


# ── SessionManager tests ─────────────────────────────────────────────────────

class TestSessionManager:
    def test_session_cached(self):
        sm = SessionManager()
        assert sm.session is sm.session
        sm.close()

    def test_close_resets(self):
        sm = SessionManager()
        first = sm.session
        sm.close()
        assert sm.session is not first
        sm.close()

    def test_context_manager(self):
        with SessionManager() as sm:
            assert sm.session is not None
        assert sm._session is None


# ── ApiClient.request tests ──────────────────────────────────────────────────

class TestApiClientRequest:
    def test_url_join_strips_slashes(self, client):
        assert client.url_for("/libro") == "http://api.test/internal/libro"
        assert client.url_for("libro") == "http://api.test/internal/libro"

    def test_bearer_token_and_json_header(self, client, session):
        session.request.return_value = _response(json_body={"data": []})
        client.get("/libro", token="abc")
        _, kwargs = session.request.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer abc"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["timeout"] == 5

    def test_no_authorization_without_token(self, client, session):
        session.request.return_value = _response(json_body={"data": {}})
        client.post("/auth/login", json={"correo": "a@b.co"})
        _, kwargs = session.request.call_args
        assert "Authorization" not in kwargs["headers"]

    def test_multipart_leaves_content_type_to_requests(self, client, session):
        session.request.return_value = _response(json_body={"data": {}})
        client.post("/libro/registrar", token="t", data={"titulo": "X"},
                    files={"file": ("x.pdf", b"%PDF", "application/pdf")})
        _, kwargs = session.request.call_args
        assert "Content-Type" not in kwargs["headers"]

    def test_empty_params_are_dropped(self, client, session):
        session.request.return_value = _response(json_body={"data": []})
        client.get("/estudiante", token="t",
                   params={"estado": None, "numeroPagina": 2, "limite": ""})
        _, kwargs = session.request.call_args
        assert kwargs["params"] == {"numeroPagina": 2}

    def test_all_empty_params_become_none(self, client, session):
        session.request.return_value = _response(json_body={"data": []})
        client.get("/libro", token="t", params={"estado": None})
        _, kwargs = session.request.call_args
        assert kwargs["params"] is None

    def test_returns_parsed_json(self, client, session):
        session.request.return_value = _response(json_body={"data": [{"libroId": 1}]})
        assert client.get("/libro", token="t") == {"data": [{"libroId": 1}]}

    def test_204_returns_none(self, client, session):
        session.request.return_value = _response(status=204)
        assert client.patch("/libro/actualizar", token="t", json={}) is None

    def test_non_json_returns_text(self, client, session):
        session.request.return_value = _response(text="ok", headers={"content-type": "text/plain"})
        assert client.get("/ping") == "ok"

    def test_error_uses_backend_message(self, client, session):
        session.request.return_value = _response(
            status=409, text='{"message": "La materia ya existe"}')
        with pytest.raises(ApiError) as exc_info:
            client.post("/materia/registrar", token="t", json={})
        assert exc_info.value.status == 409
        assert exc_info.value.message == "La materia ya existe"
        assert exc_info.value.response == '{"message": "La materia ya existe"}'

    def test_error_without_message_field(self, client, session):
        session.request.return_value = _response(status=500, text='{"detail": "boom"}')
        with pytest.raises(ApiError) as exc_info:
            client.get("/libro", token="t")
        assert exc_info.value.message == "Error 500"

    def test_error_with_plain_text_body(self, client, session):
        session.request.return_value = _response(status=502, text="Bad gateway")
        with pytest.raises(ApiError) as exc_info:
            client.get("/libro", token="t")
        assert exc_info.value.message == "Bad gateway"

    def test_unreachable_server_is_status_zero(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ApiError) as exc_info:
            client.get("/libro", token="t")
        assert exc_info.value.status == 0
        assert exc_info.value.message == CONNECTION_ERROR_MESSAGE

    def test_invalid_json_body(self, client, session):
        resp = _response(json_body={}, text="{not json")
        resp.json.side_effect = ValueError("bad")
        session.request.return_value = resp
        with pytest.raises(ApiError) as exc_info:
            client.get("/libro", token="t")
        assert exc_info.value.status == 0
        assert exc_info.value.message == CONNECTION_ERROR_MESSAGE
        assert exc_info.value.response == "{not json"
        assert describe_api_error(exc_info.value) == CONNECTION_ERROR_MESSAGE


# ── ApiClient.download tests ─────────────────────────────────────────────────

class TestApiClientDownload:
    def test_download_returns_bytes_and_metadata(self, client, session):
        session.get.return_value = _response(
            content=b"%PDF-1.7",
            headers={"content-type": "application/pdf",
                     "content-disposition": 'attachment; filename="cedula.pdf"'},
        )
        dl = client.download("/estudiante-documento/3/descargar", token="t")
        assert dl.content == b"%PDF-1.7"
        assert dl.content_type == "application/pdf"
        assert dl.filename == "cedula.pdf"
        _, kwargs = session.get.call_args
        assert kwargs["headers"] == {"Authorization": "Bearer t"}

    def test_download_without_disposition(self, client, session):
        session.get.return_value = _response(content=b"PK", headers={"content-type": "application/zip"})
        dl = client.download("/x", token="t")
        assert dl.filename is None

    def test_download_error_uses_given_message(self, client, session):
        session.get.return_value = _response(status=404, text="missing")
        with pytest.raises(ApiError) as exc_info:
            client.download("/libro/9/descargar", token="t",
                            error_message="Error al descargar libro")
        assert exc_info.value.status == 404
        assert exc_info.value.message == "Error al descargar libro"

    def test_download_unreachable(self, client, session):
        session.get.side_effect = requests.Timeout("slow")
        with pytest.raises(ApiError) as exc_info:
            client.download("/x", token="t")
        assert exc_info.value.status == 0


# ── describe_api_error tests ─────────────────────────────────────────────────

class TestDescribeApiError:
    @pytest.mark.parametrize("status,fragment", [
        (400, "Datos inválidos"),
        (401, "Sesión expirada"),
        (403, "No tienes permisos"),
        (404, "Recurso no encontrado"),
        (409, "Conflicto"),
        (422, "Datos no válidos"),
        (500, "Error interno del servidor"),
    ])
    def test_known_statuses(self, status, fragment):
        assert fragment in describe_api_error(ApiError("raw", status))

    def test_unknown_status_uses_message(self):
        assert describe_api_error(ApiError("Servicio en mantenimiento", 503)) == \
            "Servicio en mantenimiento"

    def test_connection_error(self):
        assert describe_api_error(ApiError(CONNECTION_ERROR_MESSAGE, 0)) == \
            CONNECTION_ERROR_MESSAGE

    def test_plain_exception(self):
        assert describe_api_error(RuntimeError("algo falló")) == "algo falló"

    def test_empty_exception(self):
        assert describe_api_error(RuntimeError()) == "Error desconocido. Intenta nuevamente."
