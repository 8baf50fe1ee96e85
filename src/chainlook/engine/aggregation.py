# src/chainlook/engine/aggregation.py
"""Group rows by a key field and aggregate selected fields per group.

Grouping partitions rows by the raw value of the key, in first-seen order,
and emits one row per partition holding the key and each aggregated field.
Fields without an aggregation are dropped.
"""

import json
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from chainlook.contracts.enums import AggregationFunction
from chainlook.contracts.widget import Row
from chainlook.core.numbers import coerce_number

Aggregator = Callable[[list[Any]], Any]


def _numbers(values: list[Any]) -> list[int | float]:
    """Numeric values only; numeric strings parsed, bools and others dropped."""
    numbers = []
    for value in values:
        number = coerce_number(value)
        if number is not None:
            numbers.append(number)
    return numbers


def aggregate_sum(values: list[Any]) -> int | float:
    return sum(_numbers(values))


def aggregate_average(values: list[Any]) -> float | None:
    numbers = _numbers(values)
    if not numbers:
        return None
    return sum(numbers) / len(numbers)


def aggregate_min(values: list[Any]) -> int | float | None:
    numbers = _numbers(values)
    return min(numbers) if numbers else None


def aggregate_max(values: list[Any]) -> int | float | None:
    numbers = _numbers(values)
    return max(numbers) if numbers else None


def aggregate_count(values: list[Any]) -> int:
    """Count non-None values, numeric or not."""
    return sum(1 for value in values if value is not None)


AGGREGATIONS: dict[AggregationFunction, Aggregator] = {
    AggregationFunction.SUM: aggregate_sum,
    AggregationFunction.AVERAGE: aggregate_average,
    AggregationFunction.MIN: aggregate_min,
    AggregationFunction.MAX: aggregate_max,
    AggregationFunction.COUNT: aggregate_count,
}


def _partition_key(value: Any) -> Any:
    """Hashable identity for a group key value.

    Equal values share a group (1 and 1.0 are one key). Booleans are
    tagged so True and False never collide with 1 and 0. Unhashable values
    (lists, dicts) are keyed by their JSON form.
    """
    if isinstance(value, bool):
        return ("bool", value)
    try:
        hash(value)
    except TypeError:
        return ("json", json.dumps(value, sort_keys=True, default=str))
    return ("value", value)


def group_rows(
    key: str,
    rows: Iterable[Row],
    aggregations: Mapping[str, AggregationFunction | str],
) -> list[Row]:
    """Partition ``rows`` by ``key`` and aggregate each partition.

    Rows without the key are grouped under None.

    Args:
        key: Group key field
        rows: Rows to group
        aggregations: field -> aggregation function

    Returns:
        One row per distinct key value, in first-seen order.
    """
    functions = {
        field_name: AGGREGATIONS[AggregationFunction(function)]
        for field_name, function in aggregations.items()
    }

    groups: dict[Any, tuple[Any, list[Row]]] = {}
    for row in rows:
        value = row.get(key)
        groups.setdefault(_partition_key(value), (value, []))[1].append(row)

    result: list[Row] = []
    for value, members in groups.values():
        grouped: Row = {key: value}
        for field_name, function in functions.items():
            grouped[field_name] = function([member.get(field_name) for member in members])
        result.append(grouped)
    return result
