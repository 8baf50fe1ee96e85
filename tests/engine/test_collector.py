# tests/engine/test_collector.py
"""Tests for the field requirement collector."""

from typing import Any

from chainlook.contracts import WidgetDefinition
from chainlook.engine.collector import fields_for_source, get_required_fields
from chainlook.engine.join import JoinIndex


def _definition(**overrides: Any) -> WidgetDefinition:
    raw: dict[str, Any] = {"type": "chart", **overrides}
    return WidgetDefinition.from_dict(raw)


class TestGetRequiredFields:
    """Collecting fields from display specs, grouping and expressions."""

    def test_chart_fields(self) -> None:
        definition = _definition(
            chart={
                "xAxis": {"dataKey": "date"},
                "yAxis": {"dataKey": "scale"},
                "lines": [{"dataKey": "volume"}],
                "areas": [{"dataKey": "tvl"}],
                "bars": [{"dataKey": "fees"}],
            }
        )
        assert get_required_fields(definition) == {"date", "scale", "volume", "tvl", "fees"}

    def test_pie_table_and_metric_fields(self) -> None:
        definition = _definition(
            type="table",
            pieChart={"dataKey": "share", "nameKey": "name", "labelKey": "label"},
            table={"columns": [{"dataKey": "a"}, {"dataKey": "b"}]},
            metric={"dataKey": "total"},
        )
        assert get_required_fields(definition) == {"share", "name", "label", "a", "b", "total"}

    def test_specs_of_other_kinds_are_included(self) -> None:
        definition = _definition(type="metric", metric={"dataKey": "m"}, table={"columns": [{"dataKey": "t"}]})
        assert get_required_fields(definition) == {"m", "t"}

    def test_group_key_and_aggregations(self) -> None:
        definition = _definition(
            chart={"xAxis": {"dataKey": "category"}},
            data={"group": {"key": "category", "aggregations": {"amount": "sum", "fee": "max"}}},
        )
        assert get_required_fields(definition) == {"category", "amount", "fee"}

    def test_dynamic_field_references(self) -> None:
        definition = _definition(
            chart={"xAxis": {"dataKey": "date"}, "lines": [{"dataKey": "volumeK"}]},
            data={"dynamicFields": {"volumeK": "volumeUSD / 10 ** token.decimals"}},
        )
        assert get_required_fields(definition) == {"date", "volumeUSD", "token.decimals"}

    def test_earlier_dynamic_field_not_fetched(self) -> None:
        definition = _definition(
            chart={"xAxis": {"dataKey": "date"}, "lines": [{"dataKey": "b"}]},
            data={"dynamicFields": {"a": "x * 2", "b": "a + 1"}},
        )
        assert get_required_fields(definition) == {"date", "x"}

    def test_self_reference_reads_fetched_value(self) -> None:
        definition = _definition(
            chart={"xAxis": {"dataKey": "price"}},
            data={"dynamicFields": {"price": "price * 100"}},
        )
        assert "price" in get_required_fields(definition)

    def test_no_data_only_display_fields(self) -> None:
        definition = _definition(chart={"xAxis": {"dataKey": "date"}})
        assert get_required_fields(definition) == {"date"}


class TestFieldsForSource:
    """Narrowing the widget-wide field set per source."""

    def test_single_source_gets_everything(self) -> None:
        fields = fields_for_source({"a", "b"}, None, {"provider": "graph"}, {}, JoinIndex())
        assert fields == {"a", "b"}

    def test_explicit_fields_win(self) -> None:
        config = {"provider": "graph", "fields": ["id", "name"]}
        fields = fields_for_source({"a"}, "X", config, {"X": config}, JoinIndex())
        assert fields == {"id", "name"}

    def test_prefix_selects_and_strips(self) -> None:
        pools = {"provider": "graph"}
        prices = {"provider": "http", "prefix": "price_"}
        sources = {"pools": pools, "prices": prices}
        required = {"volume", "price_usd", "price_"}
        index = JoinIndex()

        assert fields_for_source(required, "prices", prices, sources, index) == {"usd"}
        assert fields_for_source(required, "pools", pools, sources, index) == {"volume"}

    def test_join_fields_always_added(self) -> None:
        x = {"provider": "graph", "fields": ["v"]}
        y = {"provider": "graph"}
        index = JoinIndex.from_join_map({"X.id": "Y.tokenId"})

        assert fields_for_source({"w"}, "X", x, {"X": x, "Y": y}, index) == {"v", "id"}
        assert fields_for_source({"w"}, "Y", y, {"X": x, "Y": y}, index) == {"w", "tokenId"}

    def test_unprefixed_siblings_share_unclaimed_names(self) -> None:
        x = {"provider": "graph"}
        y = {"provider": "graph"}
        sources = {"X": x, "Y": y}
        required = {"onlyOnX", "onlyOnY"}

        assert fields_for_source(required, "X", x, sources, JoinIndex()) == required
        assert fields_for_source(required, "Y", y, sources, JoinIndex()) == required
        assert fields_for_source(required, "Y", {**y, "fields": ["onlyOnY"]}, sources, JoinIndex()) == {"onlyOnY"}
