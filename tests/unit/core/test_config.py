from __future__ import annotations

import pytest

from roofline.core.config import _build_config
from roofline.core.exceptions import ConfigurationError


def test_defaults(monkeypatch):
    for name in ("DATABASE_URL", "API_BASE_URL", "WORKFLOW_AUTOSAVE_DELAY_MS", "MATERIALS_AUTOSAVE_DELAY_MS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    config = _build_config("development")
    assert config.workflow_autosave_delay == 0.5
    assert config.materials_autosave_delay == 2.0
    assert config.DATABASE_URL.startswith("sqlite")
    assert config.is_production is False


def test_production_requires_https(monkeypatch):
    monkeypatch.setenv("API_BASE_URL", "http://api.example.com")
    with pytest.raises(ConfigurationError, match="https"):
        _build_config("production")


def test_rejects_bad_values(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ConfigurationError):
        _build_config("development")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.setenv("MATERIALS_AUTOSAVE_DELAY_MS", "-1")
    with pytest.raises(ConfigurationError):
        _build_config("development")
    monkeypatch.setenv("MATERIALS_AUTOSAVE_DELAY_MS", "2000")
    monkeypatch.setenv("DATABASE_URL", "mysql://db.example.com/roofline")
    with pytest.raises(ConfigurationError):
        _build_config("development")
