from __future__ import annotations

import pytest

import roofline.core.startup as startup_module


class _Cfg:
    def __init__(self, required: bool, env: str = "development") -> None:
        self.DB_CONNECTIVITY_REQUIRED = required
        self.ENV = env
        self.API_BASE_URL = "https://api.example.com/v1"
        self.API_TOKEN = None

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def test_startup_skips_raise_when_db_optional_and_unreachable(monkeypatch):
    monkeypatch.setattr(startup_module, "get_config", lambda: _Cfg(required=False))
    monkeypatch.setattr(startup_module, "verify_database_connection", lambda: False)

    startup_module.validate_startup_config()


def test_startup_raises_when_db_required_and_unreachable(monkeypatch):
    monkeypatch.setattr(startup_module, "get_config", lambda: _Cfg(required=True))
    monkeypatch.setattr(startup_module, "verify_database_connection", lambda: False)

    with pytest.raises(RuntimeError, match="Database connectivity check failed"):
        startup_module.validate_startup_config()


def test_startup_warns_when_production_has_no_token(monkeypatch, caplog):
    monkeypatch.setattr(startup_module, "get_config", lambda: _Cfg(required=False, env="production"))
    monkeypatch.setattr(startup_module, "verify_database_connection", lambda: True)

    startup_module.validate_startup_config()
    assert any(record.getMessage() == "startup.production.api_token_missing" for record in caplog.records)
