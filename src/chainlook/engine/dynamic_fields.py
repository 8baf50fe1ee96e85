# src/chainlook/engine/dynamic_fields.py
"""Dynamic (derived) field evaluation.

Each dynamic field is an expression evaluated per row, in declaration order,
so later fields can read earlier ones. A failing expression writes None for
that field and the resolution carries on.
"""

from collections.abc import Mapping

from chainlook.contracts.errors import EvaluationError
from chainlook.contracts.widget import Row
from chainlook.core.logging import get_logger
from chainlook.engine.expression_parser import EMPTY, ExpressionParser

logger = get_logger(__name__)


def compile_dynamic_fields(dynamic_fields: Mapping[str, str]) -> list[tuple[str, ExpressionParser]]:
    """Parse every expression up front, keeping declaration order."""
    return [(name, ExpressionParser(expression)) for name, expression in dynamic_fields.items()]


def compute_dynamic_fields(rows: list[Row], dynamic_fields: Mapping[str, str]) -> list[Row]:
    """Add each dynamic field to every row, in place.

    Args:
        rows: Result rows (grouped or not)
        dynamic_fields: field name -> expression, in declaration order

    Returns:
        The same list, for chaining.
    """
    if not dynamic_fields:
        return rows

    parsers = compile_dynamic_fields(dynamic_fields)
    failures = 0
    for index, row in enumerate(rows):
        for name, parser in parsers:
            try:
                value = parser.evaluate(row)
            except EvaluationError as e:
                failures += 1
                logger.warning(
                    "dynamic_field_evaluation_failed",
                    field=name,
                    row_index=index,
                    error=str(e),
                )
                value = None
            row[name] = None if value is EMPTY else value

    if failures:
        logger.info("dynamic_fields_degraded", failures=failures, rows=len(rows))
    return rows
