# src/chainlook/engine/collector.py
"""Field requirement collector.

Works out which fields providers must return for a widget to render and
compute correctly. The collector is conservative: asking for a field that
is not displayed is harmless, but omitting one silently produces empty
chart series and wrong aggregates.

Pipeline order matters for what counts as "required":
    fetch -> join -> group -> dynamic fields -> display

Group keys and aggregated fields are read before dynamic fields exist, so
they are always fetched. Display keys that name a dynamic field are
computed, not fetched. An expression reference to a dynamic field declared
earlier is computed too; a reference to itself or to a later one reads the
fetched value of that name.
"""

from collections.abc import Mapping

from chainlook.contracts.widget import (
    ChartSpec,
    DataSpec,
    DisplaySpec,
    MetricSpec,
    PieChartSpec,
    ProviderConfig,
    TableSpec,
    WidgetDefinition,
)
from chainlook.engine.expression_parser import ExpressionParser
from chainlook.engine.join import JoinIndex


def get_required_fields(definition: WidgetDefinition) -> set[str]:
    """Collect every field name providers must supply for ``definition``.

    Every display spec present is inspected, not only the one matching the
    declared widget type.
    """
    data = definition.data
    dynamic_names = set(data.dynamic_fields) if data is not None else set()

    fields: set[str] = set()
    for spec in definition.display_specs():
        fields.update(f for f in display_fields(spec) if f not in dynamic_names)

    if data is not None:
        fields.update(data_fields(data))

    return fields


def display_fields(spec: DisplaySpec) -> set[str]:
    """Field names a display spec reads from result rows."""
    keys: list[str | None]
    match spec:
        case ChartSpec():
            keys = [spec.x_axis.data_key, spec.y_axis.data_key]
            keys.extend(series.data_key for series in (*spec.lines, *spec.areas, *spec.bars))
        case PieChartSpec():
            keys = [spec.data_key, spec.name_key, spec.label_key]
        case TableSpec():
            keys = [column.data_key for column in spec.columns]
        case MetricSpec():
            keys = [spec.data_key]
    return {key for key in keys if key}


def data_fields(data: DataSpec) -> set[str]:
    """Fields read by grouping, aggregation and dynamic field expressions."""
    fields: set[str] = set()

    if data.group is not None:
        fields.add(data.group.key)
        fields.update(data.group.aggregations)

    computed: set[str] = set()
    for name, expression in data.dynamic_fields.items():
        parser = ExpressionParser(expression)
        fields.update(ref for ref in parser.referenced_fields if ref not in computed)
        computed.add(name)

    return fields


def fields_for_source(
    required: set[str],
    source_key: str | None,
    config: ProviderConfig,
    sources: Mapping[str, ProviderConfig],
    join_index: JoinIndex,
) -> set[str]:
    """Narrow the widget-wide field set to what one source must fetch.

    Precedence:
    1. An explicit ``fields`` list in the source config
    2. With a ``prefix``: required names carrying it, prefix stripped
    3. Otherwise: required names not claimed by another source's prefix

    The source's own join fields are always added.

    Unprefixed siblings cannot be told apart, so under rule 3 each one is
    asked for every unclaimed name, including names only a sibling
    returns. A ``fields`` list or a ``prefix`` narrows the request.

    Args:
        required: Output of get_required_fields()
        source_key: Source being fetched (None in single-source mode)
        config: The source's provider config
        sources: All source configs, for sibling prefixes (empty in single-source mode)
        join_index: Join index built from the data spec
    """
    explicit = config.get("fields")
    prefix = config.get("prefix") or ""

    if explicit is not None:
        fields = set(explicit)
    elif prefix:
        fields = {f[len(prefix):] for f in required if f.startswith(prefix) and f != prefix}
    else:
        sibling_prefixes = [
            other.get("prefix")
            for key, other in sources.items()
            if key != source_key and other.get("prefix")
        ]
        fields = {f for f in required if not any(f.startswith(p) for p in sibling_prefixes)}

    if source_key is not None:
        fields.update(join_index.fields_for(source_key))
    return fields
