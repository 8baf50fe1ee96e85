# src/chainlook/plugins/clients/__init__.py
"""Transport clients used by providers.

Example:
    from chainlook.plugins.clients import HTTPClient

    async with HTTPClient.from_settings(settings.http) as http:
        document = await http.request_json("GET", url)
"""

from chainlook.plugins.clients.http import HTTPClient

__all__ = ["HTTPClient"]
