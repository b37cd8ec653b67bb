"""Configuration management utilities for the academic portal.

Provides reusable pieces for:
- Loading application settings from environment variables
- Organizing constants and known values shared by views and validators
- Secret-free settings dumps for startup logging
"""

from typing import Dict, Optional, Any
import os as _os


DEFAULT_API_BASE_URL = "http://127.0.0.1:8000/internal"


class KnownValues:
    """Known status codes and labels used across the academic API."""

    # Generic AC/IN flag shared by most entities
    ESTADOS = {
        "AC": "Activo",
        "IN": "Inactivo",
    }

    STUDENT_STATES = {
        "REGISTRADO": "Registrado",
        "PENDIENTE_DOCUMENTO": "Pendiente Documento",
        "PENDIENTE_RESPUESTA": "Pendiente Respuesta",
        "ACEPTADO": "Aceptado",
        "RECHAZADO": "Rechazado",
        "ACTIVO": "Activo",
        "GRADUADO": "Graduado",
    }

    # Bootstrap badge class per student state
    STUDENT_STATE_BADGES = {
        "REGISTRADO": "bg-primary",
        "PENDIENTE_DOCUMENTO": "bg-warning",
        "PENDIENTE_RESPUESTA": "bg-info",
        "ACEPTADO": "bg-success",
        "RECHAZADO": "bg-danger",
        "ACTIVO": "bg-success",
        "GRADUADO": "bg-info",
    }

    DOCUMENT_TYPES = {
        "CEDULA": "Cédula de Identidad",
        "ACTA_NACIMIENTO": "Acta de Nacimiento",
        "RECORD_ESCUELA": "Record de Escuela",
    }

    DOCUMENT_STATES = {
        "PENDIENTE": "Pendiente",
        "VALIDO": "Aprobado",
        "RECHAZADO": "Rechazado",
    }

    DOCUMENT_STATE_BADGES = {
        "PENDIENTE": "bg-warning",
        "VALIDO": "bg-success",
        "RECHAZADO": "bg-danger",
    }

    ENROLLMENT_STATES = {
        "APROBADA": "Aprobado",
        "REPROBADA": "Reprobado",
        "RETIRADA": "Retirada",
    }

    QUARTER_PERIODS = ("C1", "C2", "C3")

    ROLES = {
        1: "Administrador",
        2: "Usuario",
    }
    DEFAULT_ROLE_LABEL = "Cliente"
    ADMIN_ROLE_ID = 1

    # Upload limits (bytes) and accepted content types
    MAX_DOCUMENT_BYTES = 10 * 1024 * 1024
    MAX_BOOK_BYTES = 20 * 1024 * 1024
    DOCUMENT_CONTENT_TYPES = frozenset({
        "application/pdf", "image/jpeg", "image/png", "image/jpg",
    })

    @classmethod
    def is_valid_estado(cls, estado: str) -> bool:
        """Check if an AC/IN status code is known.

        Args:
            estado: Status code

        Returns:
            True if the status is AC or IN
        """
        return estado in cls.ESTADOS

    @classmethod
    def get_role_label(cls, rol_id: Optional[int]) -> str:
        """Get display label for a role id.

        Args:
            rol_id: Numeric role id from the token payload

        Returns:
            Role label; unknown ids map to the client role
        """
        return cls.ROLES.get(rol_id, cls.DEFAULT_ROLE_LABEL)


class AppConfig:
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the portal works out of the
    box against a backend running locally.

    Environment variables:
        PORTAL_API_BASE_URL: Base URL of the academic REST API
            (default: http://127.0.0.1:8000/internal)
        PORTAL_API_TIMEOUT: Request timeout in seconds (default: 30)
        PORTAL_SESSION_SECRET: Key used to sign the session cookie
        PORTAL_PAGE_SIZE: Rows per page on paginated lists (default: 10)
        PORTAL_OPTIONS_TTL: Seconds to cache select options (default: 60)
        APP_PORT: Portal server port (default: 3000)
        APP_HOST: Portal server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
    """

    def __init__(self) -> None:
        self.api_base_url = _os.getenv(
            "PORTAL_API_BASE_URL", DEFAULT_API_BASE_URL
        ).rstrip("/")
        self.api_timeout = float(_os.getenv("PORTAL_API_TIMEOUT", "30"))
        self._session_secret = _os.getenv(
            "PORTAL_SESSION_SECRET", "change-me-in-production"
        )
        self.page_size = int(_os.getenv("PORTAL_PAGE_SIZE", "10"))
        self.options_ttl = float(_os.getenv("PORTAL_OPTIONS_TTL", "60"))
        self.app_port = int(_os.getenv("APP_PORT", "3000"))
        self.app_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")

    @property
    def session_secret(self) -> str:
        return self._session_secret

    def to_dict(self) -> Dict[str, Any]:
        """Public settings as a dict.

        Private attributes (leading underscore) are left out so the session
        secret never ends up in logs.
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
