"""
Tests for utils/config.py: AppConfig env loading and KnownValues.
"""
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.config import DEFAULT_API_BASE_URL, AppConfig, KnownValues

_ENV_VARS = ("PORTAL_API_BASE_URL", "PORTAL_API_TIMEOUT", "PORTAL_SESSION_SECRET",
             "PORTAL_PAGE_SIZE", "PORTAL_OPTIONS_TTL", "APP_PORT", "APP_HOST",
             "APP_LOG_FORMAT")


class TestAppConfig:
    def test_defaults(self, monkeypatch):
        for name in _ENV_VARS:
            monkeypatch.delenv(name, raising=False)
        cfg = AppConfig.from_env()
        assert cfg.api_base_url == DEFAULT_API_BASE_URL
        assert cfg.api_timeout == 30.0
        assert cfg.page_size == 10
        assert cfg.options_ttl == 60.0
        assert cfg.app_port == 3000
        assert cfg.app_host == "127.0.0.1"
        assert cfg.log_format == "text"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("PORTAL_API_BASE_URL", "https://api.itla.edu.do/internal/")
        monkeypatch.setenv("PORTAL_PAGE_SIZE", "25")
        monkeypatch.setenv("APP_PORT", "8080")
        monkeypatch.setenv("APP_LOG_FORMAT", "json")
        cfg = AppConfig.from_env()
        assert cfg.api_base_url == "https://api.itla.edu.do/internal"
        assert cfg.page_size == 25
        assert cfg.app_port == 8080
        assert cfg.log_format == "json"

    def test_secret_not_dumped(self, monkeypatch):
        monkeypatch.setenv("PORTAL_SESSION_SECRET", "super-secret")
        cfg = AppConfig.from_env()
        assert cfg.session_secret == "super-secret"
        dumped = cfg.to_dict()
        assert "super-secret" not in json.dumps(dumped)
        assert "_session_secret" not in dumped
        assert dumped["app_port"] == cfg.app_port


class TestKnownValues:
    def test_estados(self):
        assert KnownValues.is_valid_estado("AC")
        assert KnownValues.is_valid_estado("IN")
        assert not KnownValues.is_valid_estado("ACTIVO")

    def test_role_labels(self):
        assert KnownValues.get_role_label(1) == "Administrador"
        assert KnownValues.get_role_label(2) == "Usuario"
        assert KnownValues.get_role_label(3) == "Cliente"
        assert KnownValues.get_role_label(None) == "Cliente"

    def test_badges_cover_every_student_state(self):
        assert set(KnownValues.STUDENT_STATE_BADGES) == set(KnownValues.STUDENT_STATES)
        assert set(KnownValues.DOCUMENT_STATE_BADGES) == set(KnownValues.DOCUMENT_STATES)
