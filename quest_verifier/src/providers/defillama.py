"""DefiLlama coins provider.

Endpoint: https://coins.llama.fi/prices/current/{chain}:{address}
Pro:      https://pro-api.llama.fi/{api_key}/coins/prices/current/{chain}:{address}
API Key: Optional (embedded in the pro URL path)
"""

import logging
from typing import Any

from .base import BaseProvider, ProviderPayloadError, register_provider

logger = logging.getLogger(__name__)


@register_provider
class DefiLlamaProvider(BaseProvider):
    """Provider for DefiLlama's liquidity-weighted coin prices.

    Tokens are identified by a chain-qualified id, e.g.
    "arbitrum:0x912ce59144191c1204e64559fe8253a0e49e6548".
    """

    name = "defillama"
    BASE_URL_FREE = "https://coins.llama.fi"
    BASE_URL_PRO = "https://pro-api.llama.fi"

    @property
    def base_url(self) -> str:
        """Return the free URL, or the pro URL carrying the API key."""
        if not self.has_api_key:
            return self.BASE_URL_FREE
        return f"{self.BASE_URL_PRO}/{self.api_key}/coins"

    def coin_id(self, token_address: str) -> str:
        """Build the chain-qualified coin id for a token."""
        return f"{self.chain.llama_prefix}:{token_address}"

    async def _fetch_price(self, token_address: str) -> Any:
        """Fetch price from DefiLlama.

        :param token_address: Lower-cased token contract address.
        :returns: Raw USD price.
        """
        coin_id = self.coin_id(token_address)
        response = await self._get(f"{self.base_url}/prices/current/{coin_id}")
        coins = self._read_json(response)["coins"]

        coin = coins.get(coin_id)
        if coin is None:
            # Some deployments echo the checksummed address back
            coin = {k.lower(): v for k, v in coins.items()}.get(coin_id)
        if coin is None:
            logger.warning(f"[defillama] Coin {coin_id} not in response: {coins}")
            raise ProviderPayloadError(f"[defillama] No price for {coin_id}")

        return coin["price"]
