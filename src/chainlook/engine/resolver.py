# src/chainlook/engine/resolver.py
"""Widget resolver: definition in, result rows out.

Pipeline:
    collect fields -> substitute variables -> fetch (concurrently)
    -> normalise -> join -> group -> dynamic fields

All provider fetches are started together and awaited together. Nothing
after the fetch stage runs until every fetch has settled. If any source
fails, the whole resolution fails with the first failure in source
declaration order; rows from the other sources are discarded.

A definition that fails validation before any fetch is dispatched yields
no rows, and the problem is logged as ``widget_config_invalid``. This
covers unknown providers and transforms as well as malformed definitions.
"""

import asyncio
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from chainlook.contracts.enums import ProviderKind
from chainlook.contracts.errors import ConfigError
from chainlook.contracts.widget import DataSpec, ProviderConfig, Row, WidgetDefinition
from chainlook.core.config import ChainlookSettings
from chainlook.core.logging import get_logger
from chainlook.core.variables import VariableLookup, apply_variables
from chainlook.engine.aggregation import group_rows
from chainlook.engine.collector import fields_for_source, get_required_fields
from chainlook.engine.dynamic_fields import compute_dynamic_fields
from chainlook.engine.join import JoinIndex, reconcile
from chainlook.engine.normalizer import normalize, resolve_transforms
from chainlook.plugins.base import BaseProvider, RawRecord
from chainlook.plugins.clients.http import HTTPClient
from chainlook.plugins.manager import PluginManager

logger = get_logger(__name__)

Variables = Mapping[str, Any] | VariableLookup | None

_DASHBOARD_PROTOCOLS = (ProviderKind.IPFS.value, ProviderKind.IPNS.value)


@dataclass(frozen=True)
class _SourcePlan:
    """Everything needed to fetch one source, prepared before any I/O."""

    source_key: str | None
    provider: BaseProvider
    config: ProviderConfig
    fields: set[str]

    @property
    def prefix(self) -> str | None:
        return self.config.get("prefix")


class WidgetResolver:
    """Resolves widget definitions into result rows.

    Example:
        resolver = WidgetResolver(load_settings())
        rows = await resolver.resolve(definition, {"limit": 10})
    """

    def __init__(
        self,
        settings: ChainlookSettings | None = None,
        plugin_manager: PluginManager | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            settings: Engine settings (defaults when omitted)
            plugin_manager: Registry of providers and transforms; a manager
                with the built-in plugins is created when omitted
            client: Shared httpx client. When omitted each resolve() call
                opens and closes its own.
        """
        self.settings = settings or ChainlookSettings()
        if plugin_manager is None:
            plugin_manager = PluginManager()
            plugin_manager.register_builtin_plugins()
        self.plugin_manager = plugin_manager
        self._client = client

    def _http(self) -> HTTPClient:
        return HTTPClient.from_settings(self.settings.http, self._client)

    def _provider_for(self, source_key: str | None, config: ProviderConfig, http: HTTPClient) -> BaseProvider:
        name = config.get("provider")
        if not name:
            label = f"Source '{source_key}'" if source_key else "Source"
            raise ConfigError(f"{label} has no 'provider'")
        provider_cls = self.plugin_manager.get_provider(name)
        return provider_cls(http, self.settings)

    def _plan(
        self,
        definition: WidgetDefinition,
        data: DataSpec,
        variables: Variables,
        join_index: JoinIndex,
        http: HTTPClient,
    ) -> list[_SourcePlan]:
        """Validate every source before starting any fetch."""
        required = get_required_fields(definition)
        siblings = {} if data.is_single_source else data.sources

        plans = []
        for source_key, raw_config in data.source_configs():
            config = apply_variables(raw_config, variables)
            plans.append(
                _SourcePlan(
                    source_key=source_key,
                    provider=self._provider_for(source_key, config, http),
                    config=config,
                    fields=fields_for_source(required, source_key, config, siblings, join_index),
                )
            )
        return plans

    async def _fetch(self, plan: _SourcePlan) -> list[RawRecord]:
        logger.debug(
            "provider_fetch_started",
            provider=plan.provider.name,
            source_key=plan.source_key,
            fields=sorted(plan.fields),
        )
        return await plan.provider.fetch(plan.config, plan.fields, plan.source_key)

    async def resolve(
        self,
        definition: WidgetDefinition | dict[str, Any],
        variables: Variables = None,
    ) -> list[Row]:
        """Resolve ``definition`` into result rows.

        Args:
            definition: Parsed definition, or its raw camelCase dict
            variables: Values for ``$name`` references in provider configs

        Returns:
            Rows in first-seen order (or one row per group). Empty when the
            definition has no sources or fails validation before any fetch
            starts.

        Raises:
            ConfigError: Raised by a provider during its fetch (e.g. a
                gateway query without an API key)
            ProviderQueryError: A provider reported a query error
            TransportError: A provider request failed
        """
        try:
            if not isinstance(definition, WidgetDefinition):
                definition = WidgetDefinition.from_dict(definition)
        except ConfigError as e:
            logger.warning("widget_config_invalid", error=str(e))
            return []

        data = definition.data
        if data is None or not data.has_sources:
            logger.debug("widget_has_no_data", widget_type=definition.type.value)
            return []

        start = time.perf_counter()
        async with self._http() as http:
            try:
                transforms = resolve_transforms(data.transforms, self.plugin_manager.get_field_transforms())
                join_index = JoinIndex.from_join_map(data.join) if not data.is_single_source else JoinIndex()
                plans = self._plan(definition, data, variables, join_index, http)
            except ConfigError as e:
                logger.warning("widget_config_invalid", widget_type=definition.type.value, error=str(e))
                return []
            results = await asyncio.gather(
                *(self._fetch(plan) for plan in plans),
                return_exceptions=True,
            )

        for plan, result in zip(plans, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "widget_source_failed",
                    provider=plan.provider.name,
                    source_key=plan.source_key,
                    error_type=type(result).__name__,
                    error=str(result),
                )
                raise result

        per_source = [
            (
                plan.source_key,
                [normalize(record, transforms, plan.source_key, plan.prefix) for record in records],
            )
            for plan, records in zip(plans, results, strict=True)
        ]

        if data.is_single_source:
            rows = per_source[0][1]
        else:
            rows = reconcile(
                [(source_key or "", source_rows) for source_key, source_rows in per_source],
                join_index,
                prefixes={plan.source_key or "": plan.prefix or "" for plan in plans},
            )

        if data.group is not None:
            rows = group_rows(data.group.key, rows, data.group.aggregations)

        rows = compute_dynamic_fields(rows, data.dynamic_fields)

        logger.info(
            "widget_resolved",
            widget_type=definition.type.value,
            sources=len(plans),
            rows=len(rows),
            latency_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return rows

    async def fetch_dashboard(self, dashboard_id: str) -> dict[str, Any]:
        """Load a dashboard document published on IPFS or IPNS.

        Args:
            dashboard_id: ``ipfs:<cid>`` or ``ipns:<name>``

        Returns:
            ``{"title": ..., "definition": <document>}``

        Raises:
            ConfigError: For any other identifier form
            TransportError: When the document cannot be fetched (``not_found``
                is True when it is not published yet)
        """
        protocol, _, identifier = dashboard_id.partition(":")
        if protocol not in _DASHBOARD_PROTOCOLS or not identifier:
            raise ConfigError(
                f"Dashboard id '{dashboard_id}' must be 'ipfs:<cid>' or 'ipns:<name>'"
            )

        async with self._http() as http:
            provider = self._provider_for(None, {"provider": protocol}, http)
            document = await provider.fetch_document(identifier)  # type: ignore[attr-defined]

        title = document.get("title") if isinstance(document, dict) else None
        return {"title": title, "definition": document}


async def fetch_data_for_widget(
    definition: WidgetDefinition | dict[str, Any],
    variables: Variables = None,
    *,
    settings: ChainlookSettings | None = None,
    plugin_manager: PluginManager | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[Row]:
    """Resolve one widget with a throwaway resolver."""
    resolver = WidgetResolver(settings, plugin_manager, client)
    return await resolver.resolve(definition, variables)


async def fetch_dashboard(
    dashboard_id: str,
    *,
    settings: ChainlookSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Load an ``ipfs:``/``ipns:`` dashboard document."""
    return await WidgetResolver(settings, client=client).fetch_dashboard(dashboard_id)
