# src/chainlook/engine/normalizer.py
"""Row normaliser: raw provider record -> flat, transformed row.

Nested mappings are flattened into dotted keys so display specs and
expressions can address ``token.symbol`` directly. Lists are kept as values.
Each call builds a fresh row; nothing is shared with the input record.
"""

from collections.abc import Callable, Mapping
from typing import Any

from chainlook.contracts.errors import ConfigError
from chainlook.contracts.widget import Row

FieldTransform = Callable[[Any], Any]


def flatten_record(record: Mapping[str, Any], parent: str = "") -> Row:
    """Flatten nested mappings into dotted keys.

    Example:
        >>> flatten_record({"id": "0x1", "token": {"symbol": "WETH"}})
        {'id': '0x1', 'token.symbol': 'WETH'}
    """
    flat: Row = {}
    for key, value in record.items():
        path = f"{parent}.{key}" if parent else str(key)
        if isinstance(value, Mapping) and value:
            flat.update(flatten_record(value, path))
        elif isinstance(value, list):
            flat[path] = list(value)
        else:
            flat[path] = value
    return flat


def resolve_transforms(
    names: Mapping[str, str],
    registry: Mapping[str, FieldTransform],
) -> dict[str, FieldTransform]:
    """Map each field to its transform function.

    Args:
        names: field (or ``sourceKey.field``) -> transform name
        registry: transform name -> function, from the plugin manager

    Raises:
        ConfigError: If a transform name is not registered.
    """
    resolved: dict[str, FieldTransform] = {}
    for field_name, transform_name in names.items():
        if transform_name not in registry:
            available = ", ".join(sorted(registry)) or "none"
            raise ConfigError(
                f"Unknown transform '{transform_name}' for field '{field_name}'. "
                f"Available: {available}"
            )
        resolved[field_name] = registry[transform_name]
    return resolved


def normalize(
    record: Mapping[str, Any],
    transforms: Mapping[str, FieldTransform],
    source_key: str | None = None,
    prefix: str | None = None,
) -> Row:
    """Flatten ``record``, apply transforms and the source's key prefix.

    A transform keyed ``sourceKey.field`` applies only to that source and
    takes precedence over one keyed by the row field name (including any
    prefix).
    """
    prefix = prefix or ""
    row: Row = {}
    for key, value in flatten_record(record).items():
        row_key = f"{prefix}{key}"
        transform = None
        if source_key is not None:
            transform = transforms.get(f"{source_key}.{key}")
        if transform is None:
            transform = transforms.get(row_key)
        row[row_key] = transform(value) if transform is not None else value
    return row
