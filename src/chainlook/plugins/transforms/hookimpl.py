"""Hook implementation for built-in field transforms."""

from collections.abc import Callable
from typing import Any

from chainlook.plugins.hookspecs import hookimpl


class ChainlookBuiltinTransforms:
    """Hook implementer for built-in field transforms."""

    @hookimpl
    def chainlook_get_field_transforms(self) -> dict[str, Callable[[Any], Any]]:
        """Return built-in field transforms by name."""
        from chainlook.plugins.transforms.builtin import BUILTIN_TRANSFORMS

        return dict(BUILTIN_TRANSFORMS)


# Singleton instance for registration
builtin_transforms = ChainlookBuiltinTransforms()
