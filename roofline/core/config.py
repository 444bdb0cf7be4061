"""Configuration module for Roofline."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from roofline.core.exceptions import ConfigurationError

load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    DB_CONNECTIVITY_REQUIRED: bool
    API_BASE_URL: str
    API_TOKEN: str | None
    API_TIMEOUT_SECONDS: int
    WORKFLOW_AUTOSAVE_DELAY_MS: int
    MATERIALS_AUTOSAVE_DELAY_MS: int
    LOG_LEVEL: str
    LOG_FILE: str

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def workflow_autosave_delay(self) -> float:
        return self.WORKFLOW_AUTOSAVE_DELAY_MS / 1000.0

    @property
    def materials_autosave_delay(self) -> float:
        return self.MATERIALS_AUTOSAVE_DELAY_MS / 1000.0


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=(resolved_env != "production"))

    config = Config(
        APP_NAME="Roofline",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./roofline.db"),
        DB_CONNECTIVITY_REQUIRED=_as_bool(os.getenv("DB_CONNECTIVITY_REQUIRED"), default=False),
        API_BASE_URL=os.getenv("API_BASE_URL", "http://localhost:3000/api").rstrip("/"),
        API_TOKEN=os.getenv("API_TOKEN"),
        API_TIMEOUT_SECONDS=int(os.getenv("API_TIMEOUT_SECONDS", "30")),
        WORKFLOW_AUTOSAVE_DELAY_MS=int(os.getenv("WORKFLOW_AUTOSAVE_DELAY_MS", "500")),
        MATERIALS_AUTOSAVE_DELAY_MS=int(os.getenv("MATERIALS_AUTOSAVE_DELAY_MS", "2000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
    )
    _validate_config(config)
    return config


def _validate_url(name: str, url: str, schemes: set[str]) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in schemes:
        raise ConfigurationError(f"{name} must use one of: {', '.join(sorted(schemes))}.")
    if not parsed.scheme.startswith("sqlite") and not parsed.hostname:
        raise ConfigurationError(f"{name} is missing hostname.")


def _validate_config(config: Config) -> None:
    _validate_url("DATABASE_URL", config.DATABASE_URL, {"sqlite", "postgresql", "postgresql+psycopg2"})
    _validate_url("API_BASE_URL", config.API_BASE_URL, {"http", "https"})

    if config.API_TIMEOUT_SECONDS < 1:
        raise ConfigurationError("API_TIMEOUT_SECONDS must be >= 1.")
    if config.WORKFLOW_AUTOSAVE_DELAY_MS < 0:
        raise ConfigurationError("WORKFLOW_AUTOSAVE_DELAY_MS must be >= 0.")
    if config.MATERIALS_AUTOSAVE_DELAY_MS < 0:
        raise ConfigurationError("MATERIALS_AUTOSAVE_DELAY_MS must be >= 0.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and not config.API_BASE_URL.startswith("https://"):
        raise ConfigurationError("Production API_BASE_URL must use https.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
