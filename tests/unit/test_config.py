"""Unit tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from riskvisio.config import SecurityConfig, Settings, _apply_key_overrides, _load_config_file


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("RISKVISIO_API_KEY", "RISKVISIO_ADMIN_KEY", "RISKVISIO_CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)


class TestSecurityConfig:
    def test_defaults(self):
        config = SecurityConfig()

        assert config.api_key is None
        assert config.admin_key is None
        assert config.auth_mode == "dual-credential"
        assert "/health" in config.public_paths
        assert config.key_management_prefix == "/api/api-keys"

    def test_blank_keys_are_unset(self):
        config = SecurityConfig(api_key="   ", admin_key="")

        assert config.api_key is None
        assert config.admin_key is None
        assert config.auth_mode == "dual-credential"

    def test_legacy_mode(self):
        assert SecurityConfig(api_key="k").auth_mode == "legacy"

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            SecurityConfig(store_timeout_seconds=0)


class TestSources:
    def test_bare_env_vars_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RISKVISIO_API_KEY", "from-env")
        monkeypatch.setenv("RISKVISIO_ADMIN_KEY", "admin-env")

        settings = _apply_key_overrides(Settings(security={"api_key": "from-file"}))

        assert settings.security.api_key == "from-env"
        assert settings.security.admin_key == "admin-env"
        assert settings.security.auth_mode == "legacy"

    def test_blank_env_var_ignored(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RISKVISIO_API_KEY", "  ")

        settings = _apply_key_overrides(Settings())

        assert settings.security.api_key is None

    def test_nested_env_vars(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RISKVISIO_SERVER__PORT", "9090")
        monkeypatch.setenv("RISKVISIO_SECURITY__STORE_TIMEOUT_SECONDS", "1.5")

        settings = Settings()

        assert settings.server.port == 9090
        assert settings.security.store_timeout_seconds == 1.5

    def test_config_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        config_file = tmp_path / "riskvisio.yaml"
        config_file.write_text(
            "security:\n"
            "  admin_key: yaml-admin\n"
            "database:\n"
            "  url: sqlite+aiosqlite:///./other.db\n"
            "logging:\n"
            "  json: true\n"
        )
        monkeypatch.setenv("RISKVISIO_CONFIG_FILE", str(config_file))

        settings = Settings(**_load_config_file())

        assert settings.security.admin_key == "yaml-admin"
        assert settings.database.url == "sqlite+aiosqlite:///./other.db"
        assert settings.logging.json_output is True

