# src/chainlook/contracts/widget.py
"""Widget definition model.

Widget definitions are authored as JSON with camelCase keys. The models below
accept that form directly (and the snake_case field names when constructed in
Python), validate the shape, and are frozen after construction.

Example:
    {
      "type": "chart",
      "data": {
        "sources": {
          "pools": {"provider": "graph", "subgraphId": "uniswap/v3", "entity": "pools"},
          "prices": {"provider": "http", "url": "https://example.com/prices.json"}
        },
        "join": {"pools.token": "prices.token"},
        "transforms": {"volumeUSD": "number"},
        "dynamicFields": {"volumeK": "volumeUSD / 1000"}
      },
      "chart": {"xAxis": {"dataKey": "date"}, "lines": [{"dataKey": "volumeK"}]}
    }
"""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from chainlook.contracts.enums import AggregationFunction, WidgetType
from chainlook.contracts.errors import ConfigError

ProviderConfig = dict[str, Any]
Row = dict[str, Any]


class _WidgetModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )


class SeriesSpec(_WidgetModel):
    """One plotted series (line, area or bar) of a chart."""

    data_key: str
    label: str | None = None


class AxisSpec(_WidgetModel):
    """Chart axis. The y axis usually has no data key of its own."""

    data_key: str | None = None
    transform: str | None = None


class ChartSpec(_WidgetModel):
    x_axis: AxisSpec
    y_axis: AxisSpec = Field(default_factory=AxisSpec)
    lines: list[SeriesSpec] = Field(default_factory=list)
    areas: list[SeriesSpec] = Field(default_factory=list)
    bars: list[SeriesSpec] = Field(default_factory=list)


class PieChartSpec(_WidgetModel):
    data_key: str
    name_key: str | None = None
    label_key: str | None = None


class TableColumnSpec(_WidgetModel):
    data_key: str
    label: str | None = None
    transform: str | None = None


class TableSpec(_WidgetModel):
    columns: list[TableColumnSpec] = Field(default_factory=list)


class MetricSpec(_WidgetModel):
    data_key: str
    label: str | None = None
    transform: str | None = None
    prefix: str | None = None
    suffix: str | None = None


DisplaySpec = ChartSpec | PieChartSpec | TableSpec | MetricSpec


class GroupSpec(_WidgetModel):
    """Grouping configuration.

    Only the group key and the aggregated fields survive grouping.
    """

    model_config = ConfigDict(extra="forbid")

    key: str
    aggregations: dict[str, AggregationFunction] = Field(default_factory=dict)


class DataSpec(_WidgetModel):
    """Where a widget's rows come from and how they are shaped.

    ``source`` selects single-source mode, ``sources`` multi-source mode. When
    both are present ``source`` wins and ``sources`` is ignored.
    """

    model_config = ConfigDict(extra="forbid")

    source: ProviderConfig | None = None
    sources: dict[str, ProviderConfig] = Field(default_factory=dict)
    join: dict[str, str] = Field(default_factory=dict)
    group: GroupSpec | None = None
    transforms: dict[str, str] = Field(default_factory=dict)
    dynamic_fields: dict[str, str] = Field(default_factory=dict)

    @field_validator("dynamic_fields")
    @classmethod
    def validate_expressions(cls, v: dict[str, str]) -> dict[str, str]:
        """Reject unparsable or forbidden expressions at definition time."""
        from chainlook.engine.expression_parser import (
            ExpressionParser,
            ExpressionSecurityError,
            ExpressionSyntaxError,
        )

        for name, expression in v.items():
            try:
                ExpressionParser(expression)
            except ExpressionSyntaxError as e:
                raise ValueError(f"Invalid expression for '{name}': {e}") from e
            except ExpressionSecurityError as e:
                raise ValueError(f"Forbidden construct in '{name}': {e}") from e
        return v

    @property
    def is_single_source(self) -> bool:
        return self.source is not None

    @property
    def has_sources(self) -> bool:
        return self.source is not None or bool(self.sources)

    def source_configs(self) -> list[tuple[str | None, ProviderConfig]]:
        """Source configurations in fetch order.

        Single-source mode yields one entry keyed by None.
        """
        if self.source is not None:
            return [(None, self.source)]
        return list(self.sources.items())


class WidgetDefinition(_WidgetModel):
    """Declarative widget: a data spec plus one display spec per kind.

    Extra top-level keys (title, description, ...) are kept but unused.
    """

    type: WidgetType
    data: DataSpec | None = None
    chart: ChartSpec | None = None
    pie_chart: PieChartSpec | None = None
    table: TableSpec | None = None
    metric: MetricSpec | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Self:
        """Parse a widget definition with a clear error on failure.

        Raises:
            ConfigError: If the definition does not match the model.
        """
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid widget definition: {e}") from e

    @property
    def display_spec(self) -> DisplaySpec | None:
        """Display config for the declared widget type."""
        match self.type:
            case WidgetType.CHART:
                return self.chart
            case WidgetType.PIE_CHART:
                return self.pie_chart
            case WidgetType.TABLE:
                return self.table
            case WidgetType.METRIC:
                return self.metric

    def display_specs(self) -> list[DisplaySpec]:
        """Every display config present, regardless of declared type."""
        specs: list[DisplaySpec | None] = [self.chart, self.pie_chart, self.table, self.metric]
        return [spec for spec in specs if spec is not None]
