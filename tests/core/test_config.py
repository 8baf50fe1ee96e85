# tests/core/test_config.py
"""Tests for configuration schema and loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError


class TestGraphSettings:
    """The Graph endpoint configuration."""

    def test_defaults(self) -> None:
        from chainlook.core.config import GraphSettings

        settings = GraphSettings()
        assert settings.api_url == "https://gateway.thegraph.com/api"
        assert settings.hosted_service_url == "https://api.thegraph.com/subgraphs/name"
        assert settings.api_key is None

    def test_trailing_slash_stripped(self) -> None:
        from chainlook.core.config import GraphSettings

        settings = GraphSettings(api_url="https://gateway.example/api/")
        assert settings.api_url == "https://gateway.example/api"

    def test_settings_are_frozen(self) -> None:
        from chainlook.core.config import GraphSettings

        settings = GraphSettings()
        with pytest.raises(ValidationError):
            settings.api_key = "other"  # type: ignore[misc]


class TestHTTPSettings:
    def test_timeout_must_be_positive(self) -> None:
        from chainlook.core.config import HTTPSettings

        with pytest.raises(ValidationError):
            HTTPSettings(timeout_seconds=0)


class TestLoggingSettings:
    def test_invalid_level_rejected(self) -> None:
        from chainlook.core.config import LoggingSettings

        with pytest.raises(ValidationError):
            LoggingSettings(level="TRACE")  # type: ignore[arg-type]


class TestLoadSettings:
    """Loading from YAML with environment overrides."""

    def test_defaults_without_file(self) -> None:
        from chainlook.core.config import load_settings

        settings = load_settings()
        assert settings.ipfs.gateway_url == "https://ipfs.io"
        assert settings.http.timeout_seconds == 30.0

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        from chainlook.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text(
            """
graph:
  api_key: yaml-key
ipfs:
  gateway_url: https://gateway.example/
logging:
  level: DEBUG
"""
        )

        settings = load_settings(config_file)
        assert settings.graph.api_key == "yaml-key"
        assert settings.ipfs.gateway_url == "https://gateway.example"
        assert settings.logging.level == "DEBUG"

    def test_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from chainlook.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text("graph:\n  api_key: yaml-key\n")
        monkeypatch.setenv("CHAINLOOK_GRAPH__API_KEY", "env-key")

        settings = load_settings(config_file)
        assert settings.graph.api_key == "env-key"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        from chainlook.core.config import load_settings

        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")

    def test_invalid_value_raises_validation_error(self, tmp_path: Path) -> None:
        from chainlook.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text("http:\n  timeout_seconds: -1\n")

        with pytest.raises(ValidationError):
            load_settings(config_file)
