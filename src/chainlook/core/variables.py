# src/chainlook/core/variables.py
"""Variable substitution for provider configurations.

A configuration value that is exactly ``$name`` is replaced by the bound value
of ``name``. Substitution is a tree walk, not string interpolation: only whole
string values are candidates, the replacement keeps its own type, and unbound
names are left as the literal string so partially bound templates survive.

    >>> apply_variables({"first": "$limit", "where": {"owner": "$user"}}, {"limit": 10})
    {'first': 10, 'where': {'owner': '$user'}}
"""

from collections.abc import Callable, Mapping
from typing import Any

VARIABLE_SIGIL = "$"


class _Missing:
    """Sentinel returned by a lookup for an unbound variable."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

VariableLookup = Callable[[str], Any]


def lookup_from_mapping(variables: Mapping[str, Any]) -> VariableLookup:
    """Build a lookup that resolves names against ``variables``."""

    def lookup(name: str) -> Any:
        if name in variables:
            return variables[name]
        return MISSING

    return lookup


def apply_variables(
    tree: Any,
    variables: Mapping[str, Any] | VariableLookup | None,
    *,
    sigil: str = VARIABLE_SIGIL,
) -> Any:
    """Return a copy of ``tree`` with ``$variables`` substituted.

    Args:
        tree: Configuration value (usually a mapping)
        variables: Bound values, or a lookup returning MISSING for unbound names
        sigil: Prefix marking a variable reference

    Returns:
        New tree; the input is never mutated. Mappings are walked recursively.
        Lists are walked only into elements that are mappings.
    """
    if variables is None:
        lookup = lookup_from_mapping({})
    elif isinstance(variables, Mapping):
        lookup = lookup_from_mapping(variables)
    else:
        lookup = variables

    return _substitute(tree, lookup, sigil)


def _substitute(value: Any, lookup: VariableLookup, sigil: str) -> Any:
    if isinstance(value, Mapping):
        return {key: _substitute(item, lookup, sigil) for key, item in value.items()}

    if isinstance(value, list):
        return [
            _substitute(item, lookup, sigil) if isinstance(item, Mapping) else item
            for item in value
        ]

    if isinstance(value, str) and value.startswith(sigil) and len(value) > len(sigil):
        bound = lookup(value[len(sigil):])
        if bound is not MISSING:
            return bound

    return value
