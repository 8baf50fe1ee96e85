# src/chainlook/plugins/hookspecs.py
"""pluggy hook specifications for ChainLook plugins.

Plugins implement these hooks to register providers and field transforms.
The plugin manager calls these hooks during discovery.

Usage (implementing a plugin):
    from chainlook.plugins.hookspecs import hookimpl

    class MyPlugin:
        @hookimpl
        def chainlook_get_providers(self):
            return [MyProvider]

Note: @hookspec defines the hook interface (done here).
      @hookimpl marks plugin implementations of those hooks.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from chainlook.plugins.base import BaseProvider

PROJECT_NAME = "chainlook"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class ChainlookProviderSpec:
    """Hook specifications for provider plugins."""

    @hookspec
    def chainlook_get_providers(self) -> list[type["BaseProvider"]]:  # type: ignore[empty-body]
        """Return provider classes.

        Returns:
            List of provider classes (not instances), each with a unique ``name``
        """


class ChainlookTransformSpec:
    """Hook specifications for per-field transforms."""

    @hookspec
    def chainlook_get_field_transforms(self) -> dict[str, Callable[[Any], Any]]:  # type: ignore[empty-body]
        """Return field transforms.

        Returns:
            Mapping of transform name (as used in widget ``transforms``) to function
        """
