"""Process-wide read-through response cache.

Used for schema-style lookups only (widget JSON schema, subgraph
introspection). Entries are written once per key and live for the process
lifetime; there is no invalidation. Widget row data never goes through here.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from chainlook.core.logging import get_logger

logger = get_logger(__name__)


class ResponseCache:
    """Write-once-per-key cache with an async read-through helper.

    Example:
        schema = await SCHEMA_CACHE.get_or_fetch(
            f"subgraph-schema-{subgraph_id}",
            lambda: provider.introspect(subgraph_id),
        )
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any:
        """Return the cached value for ``key`` or None."""
        return self._entries.get(key)

    def put(self, key: str, value: Any) -> Any:
        """Store ``value`` unless ``key`` is already populated.

        Returns:
            The value now held for ``key`` (the first one written wins).
        """
        return self._entries.setdefault(key, value)

    async def get_or_fetch(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached value, populating it from ``producer`` on a miss."""
        if key in self._entries:
            return self._entries[key]

        value = await producer()
        logger.debug("response_cache_populated", key=key)
        return self.put(key, value)

    def clear(self) -> None:
        """Drop every entry. Intended for tests."""
        self._entries.clear()


SCHEMA_CACHE = ResponseCache()
