"""
Freedom API - Gateway Licenses

Endpoints of the Freedom Gateway licensing service. Mixed into ``Api`` so
every client exposes them.
"""

from typing import Any, Dict

from .container import Container


class GatewayApi:
    """Gateway license endpoints.

    Relies on ``path_to_url``, ``get_json_map`` and ``post_json_map`` from
    ``Api``. Responses are returned as raw JSON objects.
    """

    async def get_all_gateway_licenses(self) -> Container[Dict[str, Any]]:
        """List every gateway license visible to the account."""
        url = self.path_to_url("gateway-licenses")
        return await self.get_json_map(url, dict)

    async def get_gateway_license(self, license_id: int) -> Container[Dict[str, Any]]:
        """Fetch one gateway license by id."""
        url = self.path_to_url(f"gateway-licenses/{license_id}")
        return await self.get_json_map(url, dict)

    async def verify_gateway_license(self, license_key: str) -> Container[Dict[str, Any]]:
        """Check a license key with the server.

        Args:
            license_key: The key printed on the gateway license

        Returns:
            The server's verification response
        """
        url = self.path_to_url("gateway-licenses/verify")
        return await self.post_json_map(url, {"licenseKey": license_key}, dict)

    async def regenerate_gateway_license(self, license_id: int) -> Container[Dict[str, Any]]:
        """Issue a new key for an existing gateway license."""
        url = self.path_to_url(f"gateway-licenses/{license_id}/regenerate")
        return await self.post_json_map(url, {}, dict)
