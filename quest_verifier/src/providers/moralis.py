"""Moralis Web3 Data API provider.

Endpoint: https://deep-index.moralis.io/api/v2.2/erc20/{address}/price?chain={hex_chain_id}
API Key: Required (X-API-Key header)

Unlike the other providers, Moralis is used through a client object that is
initialized once at startup (MoralisClient) and injected into the provider.
"""

import json
import logging
from decimal import Decimal
from typing import Any

import httpx

from .base import (
    BaseProvider,
    ChainInfo,
    DEFAULT_CHAIN,
    ProviderConfigError,
    ProviderError,
    ProviderHTTPError,
    ProviderPayloadError,
    register_provider,
)

logger = logging.getLogger(__name__)


class MoralisClient:
    """Minimal Moralis EVM API client.

    Holds the API key and the HTTP client for all Moralis calls. Construct it
    once per process and hand it to MoralisProvider.

    :ivar api_key: Moralis API key.
    :ivar base_url: EVM API base URL.
    :ivar timeout: Request timeout in seconds.
    """

    BASE_URL = "https://deep-index.moralis.io/api/v2.2"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        :param api_key: Moralis API key.
        :param base_url: EVM API base URL.
        :param timeout: Request timeout in seconds.
        :param client: Optional HTTP client; the providers' shared client is used if omitted.
        :raises ProviderConfigError: If no API key is given.
        """
        if not api_key:
            raise ProviderConfigError("[moralis] API key required but not provided")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def get_token_price(self, chain_hex: str, address: str) -> dict:
        """Fetch the token price document for an ERC-20 contract.

        :param chain_hex: Chain id in hex (e.g., "0xa4b1").
        :param address: Token contract address.
        :returns: Decoded JSON response.
        :raises ProviderError: On transport failure or non-2xx response.
        """
        client = self._client if self._client is not None else BaseProvider.get_shared_client()
        url = f"{self.base_url}/erc20/{address}/price"
        try:
            response = await client.get(
                url,
                params={"chain": chain_hex},
                headers={"X-API-Key": self.api_key, "accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderError(f"[moralis] Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise ProviderError(f"[moralis] Request failed: {e}") from e

        if not response.is_success:
            raise ProviderHTTPError(response.status_code, response.text[:200])
        try:
            return response.json(parse_float=Decimal)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProviderPayloadError(f"[moralis] Invalid JSON response: {e}") from e


@register_provider
class MoralisProvider(BaseProvider):
    """Provider backed by the Moralis token price endpoint.

    Keyed by contract address plus hex chain id. API key is REQUIRED; without
    an injected or constructible MoralisClient every lookup fails.
    """

    name = "moralis"
    requires_api_key = True

    def __init__(
        self,
        chain: ChainInfo = DEFAULT_CHAIN,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        moralis_client: MoralisClient | None = None,
    ):
        """Initialize the provider.

        :param chain: Chain to price tokens on.
        :param api_key: Moralis API key, used when no client is injected.
        :param timeout: Request timeout in seconds.
        :param client: Optional HTTP client for a client built from api_key.
        :param moralis_client: Pre-initialized Moralis client.
        """
        super().__init__(chain=chain, api_key=api_key, timeout=timeout, client=client)
        if moralis_client is None and self.has_api_key:
            moralis_client = MoralisClient(self.api_key, timeout=self.timeout, client=client)
        self.moralis_client = moralis_client

    async def _fetch_price(self, token_address: str) -> Any:
        """Fetch price from Moralis.

        :param token_address: Lower-cased token contract address.
        :returns: Raw USD price.
        """
        if self.moralis_client is None:
            raise ProviderConfigError("[moralis] Client not initialized (missing API key)")

        data = await self.moralis_client.get_token_price(self.chain.hex_id, token_address)
        return data["usdPrice"]
