# src/chainlook/plugins/config_base.py
"""Base classes for typed provider configurations.

Provider configs arrive as plain dicts (camelCase keys, after variable
substitution). Each provider declares a model inheriting from
ProviderConfigBase to get:
- Strict validation (reject unknown keys)
- Factory methods with clear error messages
- The engine-level keys every provider accepts (``provider``, ``prefix``, ``fields``)

Example usage:
    class IPFSConfig(ProviderConfigBase):
        cid: str
        data_key: str | None = None

    cfg = IPFSConfig.from_dict({"provider": "ipfs", "cid": "Qm..."})
"""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from chainlook.contracts.errors import ConfigError


class ProviderConfigError(ConfigError):
    """Raised when a provider configuration is invalid."""


class ProviderConfigBase(BaseModel):
    """Base class for typed provider configurations."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    provider: str
    prefix: str | None = Field(
        default=None,
        description="Prepended to every row key this source produces",
    )
    fields: list[str] | None = Field(
        default=None,
        description="Explicit fields to request, overriding inference",
    )

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        """Create config from dict with clear error on validation failure.

        Raises:
            ProviderConfigError: If configuration is invalid.
        """
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise ProviderConfigError(
                f"Invalid configuration for {cls.__name__}: {e}"
            ) from e


class DocumentConfigBase(ProviderConfigBase):
    """Base for providers returning a JSON document rather than a list."""

    data_key: str | None = Field(
        default=None,
        description="Key of the record list inside the fetched document",
    )


def extract_records(document: Any, data_key: str | None = None) -> list[dict[str, Any]]:
    """Turn a fetched JSON document into a list of records.

    A list is used as-is. An object is unwrapped at ``data_key`` when given,
    otherwise it is a single record. Scalars become ``{"value": x}``.

    Raises:
        ProviderConfigError: If ``data_key`` is missing from the document
    """
    if data_key is not None:
        if not isinstance(document, dict) or data_key not in document:
            raise ProviderConfigError(f"dataKey '{data_key}' not found in document")
        document = document[data_key]

    if document is None:
        return []
    items = document if isinstance(document, list) else [document]
    return [item if isinstance(item, dict) else {"value": item} for item in items]
