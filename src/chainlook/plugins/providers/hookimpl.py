"""Hook implementation for built-in providers."""

from typing import Any

from chainlook.plugins.hookspecs import hookimpl


class ChainlookBuiltinProviders:
    """Hook implementer for built-in providers."""

    @hookimpl
    def chainlook_get_providers(self) -> list[type[Any]]:
        """Return built-in provider classes."""
        from chainlook.plugins.providers.graph import GraphProvider
        from chainlook.plugins.providers.http import HTTPProvider
        from chainlook.plugins.providers.ipfs import IPFSProvider, IPNSProvider

        return [GraphProvider, IPFSProvider, IPNSProvider, HTTPProvider]


# Singleton instance for registration
builtin_providers = ChainlookBuiltinProviders()
