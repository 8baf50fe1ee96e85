# src/chainlook/plugins/manager.py
"""Plugin manager for discovery, registration, and lookup.

Uses pluggy for hook-based plugin registration.
"""

from collections.abc import Callable
from typing import Any

import pluggy

from chainlook.contracts.errors import ConfigError
from chainlook.plugins.base import BaseProvider
from chainlook.plugins.hookspecs import (
    PROJECT_NAME,
    ChainlookProviderSpec,
    ChainlookTransformSpec,
)

FieldTransform = Callable[[Any], Any]


class PluginManager:
    """Manages provider and transform registration and lookup.

    Usage:
        manager = PluginManager()
        manager.register_builtin_plugins()

        provider_cls = manager.get_provider("graph")
        transforms = manager.get_field_transforms()
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)

        self._pm.add_hookspecs(ChainlookProviderSpec)
        self._pm.add_hookspecs(ChainlookTransformSpec)

        # Caches - map name to plugin for duplicate detection
        self._providers: dict[str, type[BaseProvider]] = {}
        self._transforms: dict[str, FieldTransform] = {}

    def register_builtin_plugins(self) -> None:
        """Register the built-in providers and field transforms.

        Call this once at startup to make built-in plugins discoverable.
        """
        from chainlook.plugins.providers.hookimpl import builtin_providers
        from chainlook.plugins.transforms.hookimpl import builtin_transforms

        self.register(builtin_providers)
        self.register(builtin_transforms)

    def register(self, plugin: Any) -> None:
        """Register a plugin.

        Args:
            plugin: Plugin instance implementing hook methods

        Raises:
            ValueError: If the plugin contributes an already registered name
        """
        self._pm.register(plugin)
        try:
            self._refresh_caches()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def _refresh_caches(self) -> None:
        """Refresh plugin caches from hooks.

        Raises:
            ValueError: If a provider or transform name is registered twice
        """
        new_providers: dict[str, type[BaseProvider]] = {}
        new_transforms: dict[str, FieldTransform] = {}

        for providers in self._pm.hook.chainlook_get_providers():
            for cls in providers:
                name = cls.name
                if name in new_providers:
                    raise ValueError(
                        f"Duplicate provider plugin name: '{name}'. "
                        f"Already registered by {new_providers[name].__name__}"
                    )
                new_providers[name] = cls

        for transforms in self._pm.hook.chainlook_get_field_transforms():
            for name, function in transforms.items():
                if name in new_transforms:
                    raise ValueError(f"Duplicate field transform name: '{name}'")
                new_transforms[name] = function

        # All validated, update caches
        self._providers = new_providers
        self._transforms = new_transforms

    # === Getters ===

    def get_providers(self) -> list[type[BaseProvider]]:
        """Get all registered provider classes."""
        return list(self._providers.values())

    def get_provider_by_name(self, name: str) -> type[BaseProvider] | None:
        """Get provider class by name."""
        return self._providers.get(name)

    def get_provider(self, name: str) -> type[BaseProvider]:
        """Get provider class by name, failing loudly.

        Raises:
            ConfigError: If no provider is registered under ``name``
        """
        provider_cls = self._providers.get(name)
        if provider_cls is None:
            available = ", ".join(sorted(self._providers)) or "none"
            raise ConfigError(f"Unknown provider '{name}'. Available: {available}")
        return provider_cls

    def get_field_transforms(self) -> dict[str, FieldTransform]:
        """Get all registered field transforms, by name."""
        return dict(self._transforms)
