# tests/conftest.py
"""Shared test fixtures and helpers.

Provides a canned-data "static" provider so resolver tests run without any
network I/O, and resets process-wide state (override store, schema cache)
around every test.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
import structlog
from hypothesis import Phase, Verbosity, settings
from pydantic import Field

from chainlook.contracts.errors import TransportError
from chainlook.core.cache import SCHEMA_CACHE
from chainlook.core.config import ChainlookSettings, GraphSettings
from chainlook.core.store import Store
from chainlook.plugins.base import BaseProvider
from chainlook.plugins.clients.http import HTTPClient
from chainlook.plugins.config_base import ProviderConfigBase
from chainlook.plugins.hookspecs import hookimpl
from chainlook.plugins.manager import PluginManager

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Static provider
# =============================================================================


class StaticConfig(ProviderConfigBase):
    records: list[Any] = Field(default_factory=list)
    options: dict[str, Any] = Field(default_factory=dict)
    fail_status: int | None = None


class StaticProvider(BaseProvider):
    """Returns the records embedded in its config."""

    name = "static"
    config_model = StaticConfig
    plugin_version = "0.0.1"

    # (source_key, config, required_fields) for every fetch, in call order
    calls: list[tuple[str | None, dict[str, Any], set[str]]] = []

    async def fetch(
        self,
        config: dict[str, Any],
        required_fields: set[str],
        source_key: str | None = None,
    ) -> list[dict[str, Any]]:
        cfg: StaticConfig = self.parse_config(config)
        StaticProvider.calls.append((source_key, config, set(required_fields)))
        if cfg.fail_status is not None:
            raise TransportError(
                f"HTTP {cfg.fail_status} from static:{source_key}",
                status_code=cfg.fail_status,
            )
        # Fresh dicts per fetch so tests can compare against their inputs
        return [dict(record) for record in cfg.records]


class StaticPlugin:
    @hookimpl
    def chainlook_get_providers(self) -> list[type[BaseProvider]]:
        return [StaticProvider]

    @hookimpl
    def chainlook_get_field_transforms(self) -> dict[str, Callable[[Any], Any]]:
        return {"double": lambda value: value * 2}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_global_state() -> Iterator[None]:
    """Process-wide state must not leak between tests."""
    Store.clear()
    SCHEMA_CACHE.clear()
    StaticProvider.calls.clear()
    yield
    Store.clear()
    SCHEMA_CACHE.clear()
    StaticProvider.calls.clear()
    # CLI tests bind structlog to the runner's captured stderr
    structlog.reset_defaults()


@pytest.fixture
def chainlook_settings() -> ChainlookSettings:
    return ChainlookSettings(graph=GraphSettings(api_key="test-key"))


@pytest.fixture
def plugin_manager() -> PluginManager:
    """Built-in plugins plus the static provider and a 'double' transform."""
    manager = PluginManager()
    manager.register_builtin_plugins()
    manager.register(StaticPlugin())
    return manager


MockHandler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def mock_http() -> Callable[[MockHandler], HTTPClient]:
    """Factory for HTTPClients whose requests are answered by a handler."""

    def factory(handler: MockHandler) -> HTTPClient:
        return HTTPClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    return factory
