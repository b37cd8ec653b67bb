"""
Tests for portal/auth.py: token claims, SessionUser and session login.
"""
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from conftest import make_token
from portal.auth import (
    SESSION_TOKEN_KEY,
    SESSION_USER_KEY,
    AdminRequired,
    InvalidTokenError,
    LoginRequired,
    SessionUser,
    current_user,
    decode_token_claims,
    login_user,
    logout_user,
    register_user,
    require_admin,
    session_user,
)
from utils.http import ApiError


def _request(session=None):
    return SimpleNamespace(session={} if session is None else session)


class TestDecodeClaims:
    def test_reads_payload_without_key(self):
        token = make_token(sub="5", nombre="Ana", rolId=2)
        claims = decode_token_claims(token)
        assert claims["sub"] == "5"
        assert claims["rolId"] == 2

    def test_garbage_token(self):
        with pytest.raises(InvalidTokenError):
            decode_token_claims("not-a-jwt")


class TestSessionUser:
    def test_from_claims(self):
        user = SessionUser.from_claims({"sub": "12", "nombre": "Ana Pérez", "rolId": 2},
                                       "ana@itla.edu.do")
        assert user == SessionUser(id=12, nombre="Ana Pérez", correo="ana@itla.edu.do",
                                   rol_id=2)
        assert not user.is_admin
        assert user.role_label == "Usuario"
        assert user.initials == "AP"

    def test_from_claims_fallbacks(self):
        user = SessionUser.from_claims({}, "luis.gomez@itla.edu.do")
        assert user.id == 0
        assert user.nombre == "luis.gomez"
        assert user.rol_id == 1
        assert user.is_admin

    def test_from_claims_without_email(self):
        assert SessionUser.from_claims({"sub": "x"}).nombre == "Usuario"

    def test_unknown_role_is_client(self):
        user = SessionUser.from_claims({"rolId": 3}, "c@d.co")
        assert user.role_label == "Cliente"

    def test_session_roundtrip(self):
        user = SessionUser(id=3, nombre="Ana", correo="a@b.co", rol_id=1)
        assert SessionUser.from_session(user.to_session()) == user


class TestSessionOperations:
    def test_login_stores_token_and_user(self):
        token = make_token(sub="7", nombre="Ana", rolId=1)
        services = MagicMock()
        services.auth.login.return_value = {"data": {"accessToken": token}}
        request = _request()
        assert login_user(request, services, "ana@itla.edu.do", "x")
        assert request.session[SESSION_TOKEN_KEY] == token
        assert request.session[SESSION_USER_KEY]["id"] == 7
        services.auth.login.assert_called_once_with("ana@itla.edu.do", "x")

    def test_login_rejected(self):
        services = MagicMock()
        services.auth.login.side_effect = ApiError("Credenciales inválidas", 401)
        request = _request()
        assert not login_user(request, services, "a@b.co", "bad")
        assert request.session == {}

    @pytest.mark.parametrize("body", [
        {"data": {}},
        {"data": None},
        {"data": {"accessToken": "garbage"}},
    ])
    def test_login_bad_body(self, body):
        services = MagicMock()
        services.auth.login.return_value = body
        request = _request()
        assert not login_user(request, services, "a@b.co", "x")
        assert request.session == {}

    def test_session_user_requires_token(self):
        user = SessionUser(id=1, nombre="Ana", correo="", rol_id=1).to_session()
        assert session_user(_request({SESSION_USER_KEY: user})) is None
        assert session_user(_request({SESSION_USER_KEY: user, SESSION_TOKEN_KEY: "t"})).id == 1

    def test_logout_clears(self):
        request = _request({SESSION_TOKEN_KEY: "t", "_flashes": []})
        logout_user(request)
        assert request.session == {}

    def test_register(self):
        services = MagicMock()
        assert register_user(services, "Ana", "a@b.co", "x", 2)
        services.auth.register.assert_called_once_with("Ana", "a@b.co", "x", 2)
        services.auth.register.side_effect = ApiError("Correo duplicado", 409)
        assert not register_user(services, "Ana", "a@b.co", "x", 2)


class TestDependencies:
    def test_current_user_raises_without_session(self):
        with pytest.raises(LoginRequired):
            current_user(_request())

    def test_require_admin(self):
        admin = SessionUser(id=1, nombre="Ana", correo="", rol_id=1)
        assert require_admin(admin) is admin
        client = SessionUser(id=2, nombre="Luis", correo="", rol_id=3)
        with pytest.raises(AdminRequired) as exc_info:
            require_admin(client)
        assert exc_info.value.user is client
