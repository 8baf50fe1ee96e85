"""Widget data engine: field collection, normalisation, joins, grouping, dynamic fields."""

from chainlook.engine.resolver import WidgetResolver, fetch_dashboard, fetch_data_for_widget

__all__ = [
    "WidgetResolver",
    "fetch_dashboard",
    "fetch_data_for_widget",
]
