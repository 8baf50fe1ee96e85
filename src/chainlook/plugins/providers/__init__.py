"""Built-in data providers."""

from chainlook.plugins.providers.graph import GraphProvider
from chainlook.plugins.providers.http import HTTPProvider
from chainlook.plugins.providers.ipfs import IPFSProvider, IPNSProvider

__all__ = ["GraphProvider", "HTTPProvider", "IPFSProvider", "IPNSProvider"]
