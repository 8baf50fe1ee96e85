# tests/contracts/test_widget.py
"""Tests for the widget definition model."""

import pytest
from pydantic import ValidationError


class TestWidgetDefinitionParsing:
    """Parsing camelCase JSON definitions."""

    def test_parses_camel_case_chart(self) -> None:
        from chainlook.contracts import ChartSpec, WidgetDefinition, WidgetType

        definition = WidgetDefinition.from_dict(
            {
                "type": "chart",
                "data": {"source": {"provider": "http", "url": "https://x"}},
                "chart": {
                    "xAxis": {"dataKey": "date"},
                    "lines": [{"dataKey": "volume", "label": "Volume"}],
                },
            }
        )

        assert definition.type == WidgetType.CHART
        assert isinstance(definition.display_spec, ChartSpec)
        assert definition.chart is not None
        assert definition.chart.x_axis.data_key == "date"
        assert definition.chart.lines[0].data_key == "volume"

    def test_pie_chart_type_uses_pie_chart_key(self) -> None:
        from chainlook.contracts import PieChartSpec, WidgetDefinition

        definition = WidgetDefinition.from_dict(
            {"type": "pieChart", "pieChart": {"dataKey": "share", "nameKey": "name"}}
        )

        assert isinstance(definition.display_spec, PieChartSpec)
        assert definition.display_spec.name_key == "name"

    def test_display_spec_is_none_when_missing(self) -> None:
        from chainlook.contracts import WidgetDefinition

        definition = WidgetDefinition.from_dict({"type": "metric"})
        assert definition.display_spec is None
        assert definition.data is None

    def test_display_specs_lists_every_present_kind(self) -> None:
        from chainlook.contracts import WidgetDefinition

        definition = WidgetDefinition.from_dict(
            {
                "type": "table",
                "table": {"columns": [{"dataKey": "a"}]},
                "metric": {"dataKey": "b"},
            }
        )

        assert len(definition.display_specs()) == 2

    def test_unknown_type_raises_config_error(self) -> None:
        from chainlook.contracts import ConfigError, WidgetDefinition

        with pytest.raises(ConfigError, match="Invalid widget definition"):
            WidgetDefinition.from_dict({"type": "heatmap"})

    def test_extra_top_level_keys_are_kept(self) -> None:
        from chainlook.contracts import WidgetDefinition

        definition = WidgetDefinition.from_dict({"type": "metric", "title": "TVL"})
        assert definition.model_extra == {"title": "TVL"}

    def test_definition_is_frozen(self) -> None:
        from chainlook.contracts import WidgetDefinition

        definition = WidgetDefinition.from_dict({"type": "metric"})
        with pytest.raises(ValidationError):
            definition.type = "chart"  # type: ignore[misc]


class TestDataSpec:
    """Data spec modes and validation."""

    def test_single_source_mode(self) -> None:
        from chainlook.contracts import DataSpec

        data = DataSpec.model_validate({"source": {"provider": "ipfs", "cid": "Qm1"}})

        assert data.is_single_source
        assert data.source_configs() == [(None, {"provider": "ipfs", "cid": "Qm1"})]

    def test_source_wins_over_sources(self) -> None:
        from chainlook.contracts import DataSpec

        data = DataSpec.model_validate(
            {
                "source": {"provider": "ipfs", "cid": "Qm1"},
                "sources": {"X": {"provider": "ipfs", "cid": "Qm2"}},
            }
        )

        assert data.source_configs() == [(None, {"provider": "ipfs", "cid": "Qm1"})]

    def test_sources_keep_declaration_order(self) -> None:
        from chainlook.contracts import DataSpec

        data = DataSpec.model_validate(
            {
                "sources": {
                    "zeta": {"provider": "http", "url": "https://z"},
                    "alpha": {"provider": "http", "url": "https://a"},
                }
            }
        )

        assert [key for key, _ in data.source_configs()] == ["zeta", "alpha"]
        assert not data.is_single_source

    def test_no_sources(self) -> None:
        from chainlook.contracts import DataSpec

        assert not DataSpec().has_sources

    def test_group_aggregations_parse_to_enum(self) -> None:
        from chainlook.contracts import AggregationFunction, DataSpec

        data = DataSpec.model_validate(
            {"group": {"key": "category", "aggregations": {"amount": "sum"}}}
        )

        assert data.group is not None
        assert data.group.aggregations == {"amount": AggregationFunction.SUM}

    def test_unknown_aggregation_rejected(self) -> None:
        from chainlook.contracts import DataSpec

        with pytest.raises(ValidationError):
            DataSpec.model_validate({"group": {"key": "k", "aggregations": {"a": "median"}}})

    def test_forbidden_dynamic_field_expression_rejected(self) -> None:
        from chainlook.contracts import ConfigError, WidgetDefinition

        with pytest.raises(ConfigError, match="Forbidden construct in 'evil'"):
            WidgetDefinition.from_dict(
                {"type": "metric", "data": {"dynamicFields": {"evil": "__import__('os')"}}}
            )

    def test_unparsable_dynamic_field_expression_rejected(self) -> None:
        from chainlook.contracts import ConfigError, WidgetDefinition

        with pytest.raises(ConfigError, match="Invalid expression for 'broken'"):
            WidgetDefinition.from_dict(
                {"type": "metric", "data": {"dynamicFields": {"broken": "a +"}}}
            )

    def test_unknown_data_key_rejected(self) -> None:
        from chainlook.contracts import DataSpec

        with pytest.raises(ValidationError):
            DataSpec.model_validate({"sorce": {}})
