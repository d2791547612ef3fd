"""Mobula market data provider.

Endpoint: https://api.mobula.io/api/1/market/data?asset={address}&blockchain={chain_id}
API Key: Required (Authorization header)
"""

import logging
from typing import Any

from .base import BaseProvider, ProviderConfigError, ProviderPayloadError, register_provider

logger = logging.getLogger(__name__)


@register_provider
class MobulaProvider(BaseProvider):
    """Provider for the Mobula market-data aggregator.

    Keyed by token address plus numeric chain id.
    API key is REQUIRED.
    """

    name = "mobula"
    requires_api_key = True
    BASE_URL = "https://api.mobula.io/api/1"

    async def _fetch_price(self, token_address: str) -> Any:
        """Fetch price from Mobula.

        :param token_address: Lower-cased token contract address.
        :returns: Raw USD price.
        """
        if not self.api_key:
            raise ProviderConfigError("[mobula] API key required but not provided")

        response = await self._get(
            f"{self.BASE_URL}/market/data",
            params={"asset": token_address, "blockchain": str(self.chain.chain_id)},
            headers={"Authorization": self.api_key},
        )
        data = self._read_json(response)

        market_data = data.get("data")
        if not market_data:
            logger.warning(f"[mobula] No market data for {token_address}: {data}")
            raise ProviderPayloadError(f"[mobula] No price for {token_address}")

        return market_data["price"]
