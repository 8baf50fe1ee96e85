# src/chainlook/core/config.py
"""
Configuration schema and loading for the ChainLook engine.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class GraphSettings(BaseModel):
    """The Graph endpoints.

    Subgraph ids containing a ``/`` (``author/name``) are addressed through the
    hosted service; all other ids go through the keyed decentralized gateway.

    Example YAML:
        graph:
          api_url: https://gateway.thegraph.com/api
          hosted_service_url: https://api.thegraph.com/subgraphs/name
          api_key: ${THE_GRAPH_API_KEY}
    """

    model_config = {"frozen": True}

    api_url: str = Field(
        default="https://gateway.thegraph.com/api",
        description="Decentralized network gateway base URL",
    )
    hosted_service_url: str = Field(
        default="https://api.thegraph.com/subgraphs/name",
        description="Hosted service base URL for author/name subgraph ids",
    )
    api_key: str | None = Field(
        default=None,
        description="Default gateway API key (overridable at runtime via the store)",
    )

    @field_validator("api_url", "hosted_service_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class IPFSSettings(BaseModel):
    """IPFS/IPNS HTTP gateway configuration."""

    model_config = {"frozen": True}

    gateway_url: str = Field(
        default="https://ipfs.io",
        description="Gateway serving /ipfs/<cid> and /ipns/<name>",
    )

    @field_validator("gateway_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class HTTPSettings(BaseModel):
    """Transport defaults shared by every provider."""

    model_config = {"frozen": True}

    timeout_seconds: float = Field(default=30.0, gt=0, description="Request timeout")
    user_agent: str = Field(
        default="chainlook",
        description="User-Agent header sent with every request",
    )


class APISettings(BaseModel):
    """ChainLook API used for the widget JSON schema."""

    model_config = {"frozen": True}

    url: str | None = Field(
        default=None,
        description="API base URL; when unset the bundled model schema is used",
    )


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    json_output: bool = Field(
        default=False,
        description="Render log lines as JSON instead of console key=value",
    )


class ChainlookSettings(BaseModel):
    """Top-level engine configuration.

    Every section has defaults, so an empty settings file (or none at all)
    yields a working configuration.
    """

    model_config = {"frozen": True}

    graph: GraphSettings = Field(
        default_factory=GraphSettings,
        description="The Graph endpoints and API key",
    )
    ipfs: IPFSSettings = Field(
        default_factory=IPFSSettings,
        description="IPFS/IPNS gateway",
    )
    http: HTTPSettings = Field(
        default_factory=HTTPSettings,
        description="Transport defaults",
    )
    api: APISettings = Field(
        default_factory=APISettings,
        description="ChainLook API",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )


def load_settings(config_path: Path | None = None) -> ChainlookSettings:
    """Load settings from an optional YAML file with environment overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (CHAINLOOK_*) - highest priority
    2. Config file (settings.yaml), when given
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: CHAINLOOK_GRAPH__API_KEY for nested keys.

    Args:
        config_path: Path to YAML configuration file, or None for env + defaults

    Returns:
        Validated ChainlookSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    settings_files: list[str] = []
    if config_path is not None:
        # Dynaconf silently accepts missing files
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        settings_files.append(str(config_path))

    dynaconf_settings = Dynaconf(
        envvar_prefix="CHAINLOOK",
        settings_files=settings_files,
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {
        k.lower(): _lower_keys(v)
        for k, v in dynaconf_settings.as_dict().items()
        if k not in internal_keys
    }
    return ChainlookSettings(**raw_config)


def _lower_keys(value: Any) -> Any:
    """Lowercase nested mapping keys coming from environment overrides."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value
