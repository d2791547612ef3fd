"""CoinGecko token-price-by-contract provider.

Endpoint: https://pro-api.coingecko.com/api/v3/simple/token_price/{platform}
          ?contract_addresses={address}&vs_currencies=usd
Rate Limit: 30 calls/min (demo), higher on paid plans
"""

import logging
from typing import Any

from .base import BaseProvider, ChainInfo, DEFAULT_CHAIN, ProviderPayloadError, register_provider

logger = logging.getLogger(__name__)


@register_provider
class CoinGeckoProvider(BaseProvider):
    """Provider for CoinGecko's token price endpoint.

    Keyed by asset platform slug plus a list of contract addresses; the
    response is keyed by lower-cased contract address.

    API tiers:
        - Free: api.coingecko.com (no key, 30 calls/min)
        - Demo: api.coingecko.com + x-cg-demo-api-key header
        - Pro: pro-api.coingecko.com + x-cg-pro-api-key header

    To use a demo key, prefix with "demo:": API_KEY_COINGECKO=demo:CG-xxxxx
    Pro keys need no prefix: API_KEY_COINGECKO=xxxxx
    """

    name = "coingecko"
    BASE_URL_FREE = "https://api.coingecko.com/api/v3"
    BASE_URL_PRO = "https://pro-api.coingecko.com/api/v3"

    def __init__(
        self,
        chain: ChainInfo = DEFAULT_CHAIN,
        api_key: str | None = None,
        timeout: float | None = None,
        client=None,
    ):
        """Initialize with optional demo: prefix handling."""
        self._is_demo = False
        if api_key and api_key.lower().startswith("demo:"):
            self._is_demo = True
            api_key = api_key[5:]  # Strip "demo:" prefix
        super().__init__(chain=chain, api_key=api_key, timeout=timeout, client=client)

    @property
    def base_url(self) -> str:
        """Return appropriate base URL based on API key type."""
        if not self.has_api_key:
            return self.BASE_URL_FREE
        # Demo keys use free URL, pro keys use pro URL
        return self.BASE_URL_FREE if self._is_demo else self.BASE_URL_PRO

    @property
    def api_header(self) -> tuple[str, str] | None:
        """Return appropriate header name and value for API key."""
        if not self.api_key:
            return None
        header_name = "x-cg-demo-api-key" if self._is_demo else "x-cg-pro-api-key"
        return (header_name, self.api_key)

    async def _fetch_price(self, token_address: str) -> Any:
        """Fetch price from CoinGecko.

        :param token_address: Lower-cased token contract address.
        :returns: Raw USD price.
        """
        url = f"{self.base_url}/simple/token_price/{self.chain.coingecko_platform}"

        headers = {}
        if self.api_header:
            header_name, header_value = self.api_header
            headers[header_name] = header_value

        response = await self._get(
            url,
            params={"contract_addresses": token_address, "vs_currencies": "usd"},
            headers=headers if headers else None,
        )
        data = self._read_json(response)

        # Keys are normally lower-cased, but don't rely on it
        token_data = data.get(token_address)
        if token_data is None:
            token_data = {k.lower(): v for k, v in data.items()}.get(token_address)
        if token_data is None:
            logger.warning(f"[coingecko] Token {token_address} not in response: {data}")
            raise ProviderPayloadError(f"[coingecko] No price for {token_address}")

        return token_data["usd"]
