# src/chainlook/plugins/providers/graph.py
"""The Graph subgraph provider (GraphQL).

Builds one entity query from the required fields and the source config,
POSTs it to the subgraph endpoint and returns the entity's records.

Addressing:
    "author/name" ids  -> {hosted_service_url}/{author/name}
    deployment ids     -> {api_url}/{api_key}/subgraphs/id/{id}

The gateway API key comes from the runtime Store, falling back to settings.
It sits in the URL path, so only the redacted URL is ever logged.
"""

import json
import re
import time
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import Field

from chainlook.contracts.enums import ProviderKind
from chainlook.contracts.errors import ConfigError, ProviderQueryError
from chainlook.contracts.widget import ProviderConfig
from chainlook.core.cache import SCHEMA_CACHE
from chainlook.core.config import GraphSettings
from chainlook.core.logging import get_logger
from chainlook.core.store import Store
from chainlook.plugins.base import BaseProvider, RawRecord
from chainlook.plugins.config_base import ProviderConfigBase

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Arguments rendered as bare GraphQL enum values when they are identifiers
_ENUM_ARGUMENTS = frozenset({"orderBy", "orderDirection"})

INTROSPECTION_QUERY = """query IntrospectionQuery {
  __schema {
    queryType { name }
    types {
      ...FullType
    }
  }
}

fragment FullType on __Type {
  kind
  name
  fields(includeDeprecated: true) {
    name
    args {
      ...InputValue
    }
    type {
      ...TypeRef
    }
  }
}

fragment InputValue on __InputValue {
  name
  description
  type {
    ...TypeRef
  }
  defaultValue
}

fragment TypeRef on __Type {
  kind
  name
  ofType {
    kind
    name
    ofType {
      kind
      name
      ofType {
        kind
        name
        ofType {
          kind
          name
        }
      }
    }
  }
}
"""


class GraphConfig(ProviderConfigBase):
    """Subgraph source configuration.

    Example:
        {"provider": "graph", "subgraphId": "uniswap/uniswap-v3", "entity": "pools",
         "orderBy": "volumeUSD", "orderDirection": "desc", "first": 10,
         "filters": {"where": {"volumeUSD_gt": 1000}}}
    """

    subgraph_id: str = Field(description="Deployment id, or author/name for the hosted service")
    entity: str = Field(description="Top-level query field, e.g. 'pools'")
    order_by: str | None = None
    order_direction: str | None = None
    skip: int | None = 0
    first: int | None = None
    filters: dict[str, Any] = Field(default_factory=dict)

    def arguments(self) -> dict[str, Any]:
        """Query arguments in order, with None (undefined) values stripped."""
        args: dict[str, Any] = {
            "orderBy": self.order_by,
            "orderDirection": self.order_direction,
            "skip": self.skip,
            "first": self.first,
            **self.filters,
        }
        return {k: v for k, v in args.items() if v is not None}


def resolve_endpoint(subgraph_id: str, settings: GraphSettings) -> tuple[str, str]:
    """Return ``(url, log_url)`` for a subgraph id.

    Raises:
        ConfigError: If the gateway form is needed and no API key is set
    """
    if "/" in subgraph_id:
        url = f"{settings.hosted_service_url}/{subgraph_id}"
        return url, url

    api_key = Store.get_graph_api_key() or settings.api_key
    if not api_key:
        raise ConfigError(
            f"The Graph API key is required to query subgraph {subgraph_id}. "
            f"Set graph.api_key (CHAINLOOK_GRAPH__API_KEY) or Store.set_graph_api_key()."
        )
    return (
        f"{settings.api_url}/{api_key}/subgraphs/id/{subgraph_id}",
        f"{settings.api_url}/***/subgraphs/id/{subgraph_id}",
    )


def build_selection(fields: Iterable[str]) -> dict[str, Any]:
    """Turn dotted field paths into a nested selection tree.

    A field that is both selected as a leaf and as a parent of a dotted
    path (``token`` and ``token.symbol``) becomes a nested selection.
    """
    tree: dict[str, Any] = {}
    for path in fields:
        node = tree
        *parents, leaf = path.split(".")
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node.setdefault(leaf, True)
    return tree


def render_value(value: Any, *, enum: bool = False) -> str:
    """Render a Python value as a GraphQL argument literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, int | float):
        return json.dumps(value)
    if isinstance(value, str):
        if enum and _IDENTIFIER.match(value):
            return value
        return json.dumps(value)
    if isinstance(value, Mapping):
        inner = ", ".join(f"{k}: {render_value(v)}" for k, v in value.items())
        return "{" + inner + "}"
    if isinstance(value, list | tuple):
        return "[" + ", ".join(render_value(v) for v in value) + "]"
    raise ConfigError(f"Cannot render {type(value).__name__} as a GraphQL value")


def _render_selection(selection: Mapping[str, Any], indent: int) -> list[str]:
    pad = "  " * indent
    lines: list[str] = []
    for name in sorted(selection):
        child = selection[name]
        if isinstance(child, dict):
            lines.append(f"{pad}{name} {{")
            lines.extend(_render_selection(child, indent + 1))
            lines.append(f"{pad}}}")
        else:
            lines.append(f"{pad}{name}")
    return lines


def build_query(entity: str, fields: Iterable[str], arguments: Mapping[str, Any]) -> str:
    """Build the GraphQL document for one entity query.

    Example:
        >>> print(build_query("pools", {"id", "token.symbol"}, {"first": 2}))
        query {
          pools(first: 2) {
            id
            token {
              symbol
            }
          }
        }
    """
    selection = build_selection(fields) or {"id": True}
    rendered_args = ", ".join(
        f"{name}: {render_value(value, enum=name in _ENUM_ARGUMENTS)}"
        for name, value in arguments.items()
    )
    head = f"{entity}({rendered_args})" if rendered_args else entity

    lines = ["query {", f"  {head} {{"]
    lines.extend(_render_selection(selection, 2))
    lines.extend(["  }", "}"])
    return "\n".join(lines)


class GraphProvider(BaseProvider):
    """Queries a subgraph for one entity."""

    name = ProviderKind.GRAPH.value
    config_model = GraphConfig
    plugin_version = "1.0.0"

    async def query(
        self,
        subgraph_id: str,
        document: str,
        source_key: str | None = None,
    ) -> dict[str, Any]:
        """POST a GraphQL document and return its ``data`` object.

        Raises:
            ProviderQueryError: If the response carries ``errors`` (even on HTTP 200)
            TransportError: On HTTP or network failure
        """
        url, log_url = resolve_endpoint(subgraph_id, self.settings.graph)
        result = await self.http.request_json(
            "POST",
            url,
            json={"query": document},
            log_url=log_url,
        )

        if not isinstance(result, dict):
            raise ProviderQueryError(
                f"Unexpected response from subgraph {subgraph_id}",
                errors=result,
                source_key=source_key,
            )

        errors = result.get("errors")
        if errors is not None:
            logger.warning(
                "subgraph_query_error",
                subgraph_id=subgraph_id,
                source_key=source_key,
                errors=errors,
            )
            raise ProviderQueryError(
                f"Error while querying data from subgraph {subgraph_id}\n{json.dumps(errors)}",
                errors=errors,
                source_key=source_key,
            )

        return result.get("data") or {}

    async def fetch(
        self,
        config: ProviderConfig,
        required_fields: set[str],
        source_key: str | None = None,
    ) -> list[RawRecord]:
        cfg: GraphConfig = self.parse_config(config)
        document = build_query(cfg.entity, required_fields, cfg.arguments())

        start = time.perf_counter()
        data = await self.query(cfg.subgraph_id, document, source_key)
        records = data.get(cfg.entity)

        if records is None:
            rows: list[RawRecord] = []
        elif isinstance(records, list):
            rows = records
        else:
            # Singular entity queries (``pool(id: ...)``) return one object
            rows = [records]

        logger.info(
            "provider_fetch_completed",
            provider=self.name,
            source_key=source_key,
            subgraph_id=cfg.subgraph_id,
            entity=cfg.entity,
            rows=len(rows),
            latency_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return rows

    async def get_subgraph_schema(self, subgraph_id: str) -> Any:
        """Introspect a subgraph's schema, once per id per process."""

        async def introspect() -> Any:
            data = await self.query(subgraph_id, INTROSPECTION_QUERY)
            return data.get("__schema")

        return await SCHEMA_CACHE.get_or_fetch(f"subgraph-schema-{subgraph_id}", introspect)
