"""Plugin system: providers and field transforms, registered through pluggy."""

from chainlook.plugins.base import BaseProvider
from chainlook.plugins.hookspecs import hookimpl
from chainlook.plugins.manager import PluginManager

__all__ = ["BaseProvider", "PluginManager", "hookimpl"]
