"""Process-wide override store.

Holds values a user sets at runtime that take precedence over configured
defaults. Today that is only The Graph gateway API key: a key set here wins
over ``settings.graph.api_key``.
"""

from threading import Lock


class Store:
    """Mutable, process-wide key/value overrides."""

    _lock = Lock()
    _graph_api_key: str | None = None

    @classmethod
    def get_graph_api_key(cls) -> str | None:
        with cls._lock:
            return cls._graph_api_key

    @classmethod
    def set_graph_api_key(cls, api_key: str | None) -> None:
        """Set (or clear, with None/empty) the runtime gateway API key."""
        with cls._lock:
            cls._graph_api_key = api_key or None

    @classmethod
    def clear(cls) -> None:
        with cls._lock:
            cls._graph_api_key = None
