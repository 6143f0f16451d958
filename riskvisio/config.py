"""RiskVisio configuration management.

Configuration sources (in priority order):
1. Environment variables (RISKVISIO_ prefix, ``__`` for nested sections)
2. Config file (config.yaml)
3. Defaults

The legacy and admin keys may also be supplied through the bare
``RISKVISIO_API_KEY`` / ``RISKVISIO_ADMIN_KEY`` variables, which win over
any other source. Both are resolved once, when settings are first loaded.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: str = "sqlite+aiosqlite:///./riskvisio.db"
    echo: bool = False


class SecurityConfig(BaseModel):
    """API authentication configuration."""

    # Legacy single static key. When set it supersedes dual-credential mode
    # for the lifetime of the process.
    api_key: str | None = None

    # Required (as x-admin-key) for key-management mutations when set.
    admin_key: str | None = None

    protected_prefix: str = "/api"
    key_management_prefix: str = "/api/api-keys"

    # Diagnostic endpoints that are never authenticated
    public_paths: list[str] = Field(
        default_factory=lambda: ["/health", "/api/health", "/api"]
    )

    # Upper bound for a single Key Store lookup
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # Bootstrap policy: require x-admin-key (if configured) for the very
    # first key creation as well.
    bootstrap_requires_admin_key: bool = False

    # Generate a full-access key on first boot and write credentials.json
    provision_initial_key: bool = False
    data_dir: str = "."

    @field_validator("api_key", "admin_key", mode="before")
    @classmethod
    def _blank_as_none(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def auth_mode(self) -> Literal["legacy", "dual-credential"]:
        return "legacy" if self.api_key else "dual-credential"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    # Render JSON lines instead of the console renderer
    json_output: bool = Field(default=False, alias="json")

    model_config = {"populate_by_name": True}


class Settings(BaseSettings):
    """RiskVisio application settings."""

    model_config = SettingsConfigDict(
        env_prefix="RISKVISIO_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _load_config_file() -> dict:
    """Load configuration from YAML file if exists.

    Looks for config file in order:
    1. RISKVISIO_CONFIG_FILE environment variable
    2. ./config.yaml
    3. /etc/riskvisio/config.yaml
    """
    config_paths = [
        os.environ.get("RISKVISIO_CONFIG_FILE"),
        Path("config.yaml"),
        Path("/etc/riskvisio/config.yaml"),
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}


def _apply_key_overrides(settings: Settings) -> Settings:
    """Apply the bare RISKVISIO_API_KEY / RISKVISIO_ADMIN_KEY variables."""
    legacy_key = os.environ.get("RISKVISIO_API_KEY")
    admin_key = os.environ.get("RISKVISIO_ADMIN_KEY")
    if legacy_key and legacy_key.strip():
        settings.security.api_key = legacy_key
    if admin_key and admin_key.strip():
        settings.security.admin_key = admin_key
    return settings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Configuration is loaded from:
    1. YAML config file (if exists)
    2. Environment variables (override)
    3. Defaults
    """
    file_config = _load_config_file()
    return _apply_key_overrides(Settings(**file_config))
