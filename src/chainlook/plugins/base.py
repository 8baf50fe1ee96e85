# src/chainlook/plugins/base.py
"""Base class for provider implementations.

A provider turns one source configuration into a list of raw records. It
owns its request lifecycle: build the request, call the transport, detect
provider-level errors and extract records.
"""

from abc import ABC, abstractmethod
from typing import Any

from chainlook.contracts.widget import ProviderConfig
from chainlook.core.config import ChainlookSettings
from chainlook.plugins.clients.http import HTTPClient
from chainlook.plugins.config_base import ProviderConfigBase

RawRecord = dict[str, Any]


class BaseProvider(ABC):
    """Base class for data providers.

    Subclass, set ``name`` and ``config_model``, and implement fetch().

    Example:
        class StaticProvider(BaseProvider):
            name = "static"
            config_model = StaticConfig

            async def fetch(self, config, required_fields, source_key=None):
                return [{"id": 1}]
    """

    name: str
    config_model: type[ProviderConfigBase] = ProviderConfigBase
    plugin_version: str = "0.0.0"

    def __init__(self, http: HTTPClient, settings: ChainlookSettings) -> None:
        self.http = http
        self.settings = settings

    def parse_config(self, config: ProviderConfig) -> Any:
        """Validate ``config`` against this provider's config model.

        Raises:
            ProviderConfigError: If the config does not match the model
        """
        return self.config_model.from_dict(config)

    @abstractmethod
    async def fetch(
        self,
        config: ProviderConfig,
        required_fields: set[str],
        source_key: str | None = None,
    ) -> list[RawRecord]:
        """Fetch raw records for one source.

        Args:
            config: Provider config, variables already substituted
            required_fields: Fields to request (used by query-based providers)
            source_key: Source key in multi-source mode, for error context

        Returns:
            Records in provider order

        Raises:
            TransportError: On HTTP or network failure
            ProviderQueryError: When the provider reports a query error
            ProviderConfigError: When ``config`` is invalid
        """
        ...
