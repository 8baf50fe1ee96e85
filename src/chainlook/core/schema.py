# src/chainlook/core/schema.py
"""Widget JSON schema: fetch once, validate raw definitions against it.

The ChainLook API publishes the authoritative schema at
``{api.url}/schemas/widget.json``. It is fetched at most once per process
through the shared response cache. Without a configured API the schema
generated from the pydantic widget model is used instead.
"""

from typing import TYPE_CHECKING, Any

from jsonschema.validators import validator_for

from chainlook.contracts.errors import ConfigError
from chainlook.contracts.widget import WidgetDefinition
from chainlook.core.cache import SCHEMA_CACHE
from chainlook.core.config import ChainlookSettings

if TYPE_CHECKING:
    from chainlook.plugins.clients.http import HTTPClient

WIDGET_SCHEMA_CACHE_KEY = "widget-schema"


def model_schema() -> dict[str, Any]:
    """JSON schema generated from WidgetDefinition (camelCase keys)."""
    return WidgetDefinition.model_json_schema(by_alias=True)


async def fetch_widget_schema(http: "HTTPClient", settings: ChainlookSettings) -> dict[str, Any]:
    """Return the widget JSON schema, fetching it on first use.

    Raises:
        TransportError: If the configured API cannot be reached
    """
    if settings.api.url is None:
        return model_schema()

    url = f"{settings.api.url.rstrip('/')}/schemas/widget.json"
    return await SCHEMA_CACHE.get_or_fetch(
        WIDGET_SCHEMA_CACHE_KEY,
        lambda: http.request_json("GET", url),
    )


def validate_definition(raw: Any, schema: dict[str, Any] | None = None) -> WidgetDefinition:
    """Validate a raw definition and parse it.

    Args:
        raw: Definition as loaded from JSON/YAML
        schema: JSON schema to check first; when None only the model applies

    Raises:
        ConfigError: Listing every schema violation, or the model error
    """
    if schema is not None:
        validator_cls = validator_for(schema)
        validator = validator_cls(schema)
        errors = sorted(validator.iter_errors(raw), key=lambda e: [str(p) for p in e.absolute_path])
        if errors:
            details = "\n".join(
                f"  {'/'.join(str(p) for p in error.absolute_path) or '<root>'}: {error.message}"
                for error in errors
            )
            raise ConfigError(f"Widget definition does not match schema:\n{details}")

    if not isinstance(raw, dict):
        raise ConfigError(f"Widget definition must be an object, got {type(raw).__name__}")
    return WidgetDefinition.from_dict(raw)
