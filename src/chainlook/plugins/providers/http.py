# src/chainlook/plugins/providers/http.py
"""Generic HTTP JSON provider."""

import time
from typing import Any, Literal

from pydantic import Field

from chainlook.contracts.enums import ProviderKind
from chainlook.contracts.widget import ProviderConfig
from chainlook.core.logging import get_logger
from chainlook.plugins.base import BaseProvider, RawRecord
from chainlook.plugins.config_base import DocumentConfigBase, extract_records

logger = get_logger(__name__)


class HTTPConfig(DocumentConfigBase):
    """HTTP source configuration.

    Example:
        {"provider": "http", "url": "https://api.example.com/prices",
         "params": {"symbol": "$symbol"}, "dataKey": "items"}
    """

    url: str
    method: Literal["GET", "POST"] = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    body: Any = None


class HTTPProvider(BaseProvider):
    """Fetches a JSON document from any URL."""

    name = ProviderKind.HTTP.value
    config_model = HTTPConfig
    plugin_version = "1.0.0"

    async def fetch(
        self,
        config: ProviderConfig,
        required_fields: set[str],
        source_key: str | None = None,
    ) -> list[RawRecord]:
        cfg: HTTPConfig = self.parse_config(config)

        start = time.perf_counter()
        document = await self.http.request_json(
            cfg.method,
            cfg.url,
            params=cfg.params or None,
            json=cfg.body,
            headers=cfg.headers,
        )
        records = extract_records(document, cfg.data_key)

        logger.info(
            "provider_fetch_completed",
            provider=self.name,
            source_key=source_key,
            url=cfg.url,
            rows=len(records),
            latency_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return records
