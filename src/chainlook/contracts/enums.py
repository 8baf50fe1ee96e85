"""Closed variant sets shared across the engine, providers and CLI.

All enums use (str, Enum) because their values arrive verbatim in widget
definition JSON and must round-trip through it unchanged.
"""

from enum import Enum


class WidgetType(str, Enum):
    """Display kind of a widget.

    The data engine never branches on this; it only decides which display
    spec the presentation layer reads.
    """

    CHART = "chart"
    PIE_CHART = "pieChart"
    TABLE = "table"
    METRIC = "metric"


class ProviderKind(str, Enum):
    """Built-in data provider kinds.

    Values are the ``provider`` key of a source configuration. Third-party
    providers registered through the plugin manager may use other names.
    """

    GRAPH = "graph"
    IPFS = "ipfs"
    IPNS = "ipns"
    HTTP = "http"


class AggregationFunction(str, Enum):
    """Reductions available in ``data.group.aggregations``."""

    SUM = "sum"
    AVERAGE = "average"
    MIN = "min"
    MAX = "max"
    COUNT = "count"
