"""Shared contracts for cross-boundary data types.

Import pattern:
    from chainlook.contracts import WidgetDefinition, ProviderQueryError
"""

from chainlook.contracts.enums import (
    AggregationFunction,
    ProviderKind,
    WidgetType,
)
from chainlook.contracts.errors import (
    ChainlookError,
    ConfigError,
    EvaluationError,
    ProviderQueryError,
    TransportError,
)
from chainlook.contracts.widget import (
    AxisSpec,
    ChartSpec,
    DataSpec,
    DisplaySpec,
    GroupSpec,
    MetricSpec,
    PieChartSpec,
    ProviderConfig,
    Row,
    SeriesSpec,
    TableColumnSpec,
    TableSpec,
    WidgetDefinition,
)

__all__ = [
    # enums
    "AggregationFunction",
    "ProviderKind",
    "WidgetType",
    # errors
    "ChainlookError",
    "ConfigError",
    "EvaluationError",
    "ProviderQueryError",
    "TransportError",
    # widget
    "AxisSpec",
    "ChartSpec",
    "DataSpec",
    "DisplaySpec",
    "GroupSpec",
    "MetricSpec",
    "PieChartSpec",
    "ProviderConfig",
    "Row",
    "SeriesSpec",
    "TableColumnSpec",
    "TableSpec",
    "WidgetDefinition",
]
