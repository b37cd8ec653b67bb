"""
Authentication and session glue.

The backend issues a bearer token (JWT) on login.  The portal never
verifies it, since the API does that on every call, and only reads the
payload to show who is logged in and whether admin pages are available.

Token and user live in the signed session cookie managed by Starlette's
SessionMiddleware.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from fastapi import Depends, Request
from jose import JWTError, jwt

from portal.services import PortalServices
from utils.config import KnownValues
from utils.formatting import initials as _initials
from utils.http import ApiError

logger = logging.getLogger(__name__)

SESSION_TOKEN_KEY = "token"
SESSION_USER_KEY = "user"


class InvalidTokenError(ValueError):
    """The access token could not be decoded."""


class LoginRequired(Exception):
    """Raised by dependencies when no session is present."""


class AdminRequired(Exception):
    """Raised by dependencies when a non-admin opens a management page."""

    def __init__(self, user: "SessionUser"):
        super().__init__(user.role_label)
        self.user = user


def decode_token_claims(token: str) -> dict[str, Any]:
    """Read the JWT payload without verifying the signature."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc
    if not isinstance(claims, dict):
        raise InvalidTokenError("Token payload is not an object")
    return claims


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value) or default
    except (TypeError, ValueError):
        return default


@dataclass
class SessionUser:
    id: int
    nombre: str
    correo: str
    rol_id: int

    @classmethod
    def from_claims(cls, claims: dict[str, Any], correo: str = "") -> "SessionUser":
        """Build the display user from token claims.

        Missing claims fall back to: id 0, the local part of the e-mail
        (or "Usuario") as name, and the admin role.
        """
        nombre = claims.get("nombre") or correo.split("@")[0] or "Usuario"
        return cls(
            id=_as_int(claims.get("sub"), 0),
            nombre=str(nombre),
            correo=correo or "",
            rol_id=_as_int(claims.get("rolId"), KnownValues.ADMIN_ROLE_ID),
        )

    @classmethod
    def from_session(cls, data: dict[str, Any]) -> "SessionUser":
        return cls(
            id=int(data.get("id", 0)),
            nombre=data.get("nombre", "Usuario"),
            correo=data.get("correo", ""),
            rol_id=int(data.get("rol_id", KnownValues.ADMIN_ROLE_ID)),
        )

    def to_session(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def is_admin(self) -> bool:
        return self.rol_id == KnownValues.ADMIN_ROLE_ID

    @property
    def role_label(self) -> str:
        return KnownValues.get_role_label(self.rol_id)

    @property
    def initials(self) -> str:
        return _initials(self.nombre)


# ── Session operations ────────────────────────────────────────────────────────

def session_token(request: Request) -> str | None:
    return request.session.get(SESSION_TOKEN_KEY)


def session_user(request: Request) -> SessionUser | None:
    data = request.session.get(SESSION_USER_KEY)
    if not data or not session_token(request):
        return None
    return SessionUser.from_session(data)


def login_user(request: Request, services: PortalServices,
               correo: str, clave: str) -> bool:
    """Log in against the API and store token and user in the session.

    Returns False on rejected credentials, an unreachable API, or a
    token whose payload cannot be read.
    """
    try:
        body = services.auth.login(correo, clave)
        token = body["data"]["accessToken"]
        user = SessionUser.from_claims(decode_token_claims(token), correo)
    except ApiError as exc:
        logger.info("login_failed correo=%s status=%d", correo, exc.status)
        return False
    except (InvalidTokenError, KeyError, TypeError) as exc:
        logger.warning("login_bad_token correo=%s error=%s", correo, exc)
        return False

    request.session[SESSION_TOKEN_KEY] = token
    request.session[SESSION_USER_KEY] = user.to_session()
    logger.info("login user_id=%d rol_id=%d", user.id, user.rol_id)
    return True


def register_user(services: PortalServices, nombre: str, correo: str,
                  clave: str, rol_id: int) -> bool:
    try:
        services.auth.register(nombre, correo, clave, rol_id)
    except ApiError as exc:
        logger.info("register_failed correo=%s status=%d", correo, exc.status)
        return False
    return True


def logout_user(request: Request) -> None:
    request.session.clear()


# ── Dependencies ──────────────────────────────────────────────────────────────

def get_services(request: Request) -> PortalServices:
    return request.app.state.services


def current_user(request: Request) -> SessionUser:
    user = session_user(request)
    if user is None:
        raise LoginRequired()
    return user


def current_token(request: Request, user: SessionUser = Depends(current_user)) -> str:
    return session_token(request)


def require_admin(user: SessionUser = Depends(current_user)) -> SessionUser:
    if not user.is_admin:
        raise AdminRequired(user)
    return user
