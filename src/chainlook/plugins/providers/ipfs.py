# src/chainlook/plugins/providers/ipfs.py
"""IPFS and IPNS providers.

Both read a JSON document through the configured HTTP gateway. Content
that is not published (or an IPNS name that has not propagated yet) comes
back as a TransportError whose ``not_found`` is True.
"""

import time
from typing import Any

from pydantic import Field

from chainlook.contracts.enums import ProviderKind
from chainlook.contracts.widget import ProviderConfig
from chainlook.core.logging import get_logger
from chainlook.plugins.base import BaseProvider, RawRecord
from chainlook.plugins.config_base import DocumentConfigBase, extract_records

logger = get_logger(__name__)


class IPFSConfig(DocumentConfigBase):
    cid: str = Field(description="Content identifier of the JSON document")


class IPNSConfig(DocumentConfigBase):
    name: str = Field(description="IPNS name (key hash or DNSLink domain)")


class _GatewayProvider(BaseProvider):
    """Shared gateway fetch for /ipfs/ and /ipns/ paths."""

    namespace: str

    def gateway_url(self, identifier: str) -> str:
        return f"{self.settings.ipfs.gateway_url}/{self.namespace}/{identifier}"

    async def fetch_document(self, identifier: str) -> Any:
        """Fetch and decode the JSON document at ``identifier``."""
        return await self.http.request_json("GET", self.gateway_url(identifier))

    async def _fetch_records(
        self,
        identifier: str,
        data_key: str | None,
        source_key: str | None,
    ) -> list[RawRecord]:
        start = time.perf_counter()
        document = await self.fetch_document(identifier)
        records = extract_records(document, data_key)
        logger.info(
            "provider_fetch_completed",
            provider=self.name,
            source_key=source_key,
            identifier=identifier,
            rows=len(records),
            latency_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return records


class IPFSProvider(_GatewayProvider):
    """Reads a JSON document by CID."""

    name = ProviderKind.IPFS.value
    namespace = ProviderKind.IPFS.value
    config_model = IPFSConfig
    plugin_version = "1.0.0"

    async def fetch(
        self,
        config: ProviderConfig,
        required_fields: set[str],
        source_key: str | None = None,
    ) -> list[RawRecord]:
        cfg: IPFSConfig = self.parse_config(config)
        return await self._fetch_records(cfg.cid, cfg.data_key, source_key)


class IPNSProvider(_GatewayProvider):
    """Reads a JSON document by IPNS name."""

    name = ProviderKind.IPNS.value
    namespace = ProviderKind.IPNS.value
    config_model = IPNSConfig
    plugin_version = "1.0.0"

    async def fetch(
        self,
        config: ProviderConfig,
        required_fields: set[str],
        source_key: str | None = None,
    ) -> list[RawRecord]:
        cfg: IPNSConfig = self.parse_config(config)
        return await self._fetch_records(cfg.name, cfg.data_key, source_key)
