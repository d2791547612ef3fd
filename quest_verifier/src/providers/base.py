"""Base provider interface and shared HTTP client management.

All price providers inherit from BaseProvider and implement _fetch_price().
A shared httpx.AsyncClient is used across all providers to avoid connection overhead.

Each provider answers a single question: what is the USD price of the token at
a given contract address on the configured chain. One lookup is one outbound
request; there is no retry and no cache.

.. code-block:: python

    @register_provider
    class MyProvider(BaseProvider):
        name = "myprovider"

        async def _fetch_price(self, token_address: str) -> Decimal:
            response = await self._get(f"https://api.example.com/{token_address}")
            return self._read_json(response)["price"]
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

import httpx

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Base exception for provider errors."""

    pass


class ProviderConfigError(ProviderError):
    """Raised when provider configuration is invalid (e.g., missing API key)."""

    pass


class ProviderPayloadError(ProviderError):
    """Raised when a provider answers with an unexpected or unusable payload."""

    pass


class ProviderHTTPError(ProviderError):
    """Raised when HTTP request fails.

    :ivar status_code: HTTP status code from the failed request.
    """

    def __init__(self, status_code: int, message: str):
        """Initialize the HTTP error.

        :param status_code: HTTP status code.
        :param message: Error message from response.
        """
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


@dataclass(frozen=True)
class ChainInfo:
    """Identifiers of one EVM chain in the dialects of the price providers.

    :ivar name: Canonical chain name used in configuration.
    :ivar chain_id: Numeric EVM chain id.
    :ivar hex_id: Chain id as 0x-prefixed hex (Moralis).
    :ivar coingecko_platform: CoinGecko asset platform slug.
    :ivar llama_prefix: DefiLlama chain prefix for coin ids.
    """

    name: str
    chain_id: int
    hex_id: str
    coingecko_platform: str
    llama_prefix: str


SUPPORTED_CHAINS: dict[str, ChainInfo] = {
    "arbitrum-one": ChainInfo(
        name="arbitrum-one",
        chain_id=42161,
        hex_id="0xa4b1",
        coingecko_platform="arbitrum-one",
        llama_prefix="arbitrum",
    ),
}

DEFAULT_CHAIN = SUPPORTED_CHAINS["arbitrum-one"]


class BaseProvider(ABC):
    """Abstract base class for USD price providers.

    Subclasses must implement:
        - name: Class variable identifying the provider (e.g., "coingecko")
        - _fetch_price(): Async method returning the raw price for a token

    :cvar name: Unique identifier for this provider.
    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :ivar chain: Chain the token addresses live on.
    :ivar api_key: Optional API key for authenticated endpoints.
    :ivar timeout: Request timeout in seconds.
    """

    # Class-level shared HTTP client
    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    # Provider identification
    name: ClassVar[str] = ""

    # Lookups fail without a key when True
    requires_api_key: ClassVar[bool] = False

    # Default timeout for HTTP requests (seconds)
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        chain: ChainInfo = DEFAULT_CHAIN,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the provider.

        :param chain: Chain to price tokens on (default: Arbitrum One).
        :param api_key: Optional API key for authenticated endpoints.
        :param timeout: Request timeout in seconds (default: 10).
        :param client: Optional HTTP client; the shared client is used if omitted.
        """
        self.chain = chain
        self.api_key = api_key
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self._client = client

    @property
    def has_api_key(self) -> bool:
        """Check if this provider has an API key configured."""
        return self.api_key is not None and len(self.api_key) > 0

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        The client is shared across all provider instances to reuse connections.

        :returns: Shared httpx.AsyncClient instance.
        """
        if BaseProvider._shared_client is None or BaseProvider._shared_client.is_closed:
            BaseProvider._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
                follow_redirects=True,
            )
        return BaseProvider._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        client = BaseProvider._shared_client
        if client is not None and not client.is_closed:
            await client.aclose()
        BaseProvider._shared_client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client used for this provider's requests."""
        return self._client if self._client is not None else self.get_shared_client()

    async def fetch_usd_price(self, token_address: str) -> Decimal:
        """Fetch the current USD price of a token.

        :param token_address: Token contract address (any letter case).
        :returns: Positive USD price.
        :raises ProviderError: On transport failure, non-2xx response, missing
            configuration, or an unusable payload.
        """
        address = token_address.lower()
        try:
            raw_price = await self._fetch_price(address)
        except ProviderError:
            raise
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderPayloadError(
                f"[{self.name}] Unexpected payload for {address}: {e!r}"
            ) from e

        price = self._to_decimal(raw_price)
        logger.debug(f"[{self.name}] {address} = {price} USD")
        return price

    @abstractmethod
    async def _fetch_price(self, token_address: str) -> Any:
        """Request the price of a token and extract the raw price value.

        Missing fields may surface as KeyError/IndexError/TypeError; the caller
        converts them to ProviderPayloadError.

        :param token_address: Lower-cased token contract address.
        :returns: Raw price value (Decimal, int or numeric string).
        """
        pass

    def _to_decimal(self, value: Any) -> Decimal:
        """Convert a raw price to a positive Decimal.

        :param value: Raw price value from the payload.
        :returns: Price as Decimal.
        :raises ProviderPayloadError: If the value is missing, non-numeric or not positive.
        """
        if value is None or isinstance(value, bool):
            raise ProviderPayloadError(f"[{self.name}] No price in response")
        try:
            price = value if isinstance(value, Decimal) else Decimal(str(value))
        except InvalidOperation as e:
            raise ProviderPayloadError(f"[{self.name}] Non-numeric price: {value!r}") from e
        if not price.is_finite() or price <= 0:
            raise ProviderPayloadError(f"[{self.name}] Price must be positive, got {value!r}")
        return price

    def _read_json(self, response: httpx.Response) -> Any:
        """Decode a response body, keeping JSON numbers as Decimal.

        :param response: Successful HTTP response.
        :returns: Decoded JSON document.
        :raises ProviderPayloadError: If the body is not valid JSON.
        """
        try:
            return response.json(parse_float=Decimal)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProviderPayloadError(f"[{self.name}] Invalid JSON response: {e}") from e

    async def _get(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Make an HTTP GET request using the provider's client.

        :param url: Request URL.
        :param params: Optional query parameters.
        :param headers: Optional request headers.
        :returns: httpx.Response object.
        :raises ProviderHTTPError: On non-2xx response.
        :raises ProviderError: On network/timeout errors.
        """
        try:
            response = await self.client.get(
                url,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderError(f"[{self.name}] Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise ProviderError(f"[{self.name}] Request failed: {e}") from e

        if not response.is_success:
            logger.debug(
                "HTTP GET %s failed with status %s: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            raise ProviderHTTPError(response.status_code, response.text[:200])
        return response


# Registry of available providers (populated by subclass imports)
PROVIDER_REGISTRY: dict[str, type[BaseProvider]] = {}


def register_provider(cls: type[BaseProvider]) -> type[BaseProvider]:
    """Decorator to register a provider class in the global registry.

    :param cls: Provider class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If provider has no name defined.
    """
    if not cls.name:
        raise ValueError(f"Provider {cls.__name__} must define a 'name' class variable")
    PROVIDER_REGISTRY[cls.name] = cls
    return cls


def get_provider(
    name: str,
    chain: ChainInfo = DEFAULT_CHAIN,
    api_key: str | None = None,
    **kwargs: Any,
) -> BaseProvider:
    """Get a provider instance by name.

    :param name: Provider name (e.g., "coingecko", "moralis").
    :param chain: Chain to price tokens on.
    :param api_key: Optional API key.
    :param kwargs: Extra constructor arguments (timeout, client, ...).
    :returns: Provider instance.
    :raises ValueError: If provider name is unknown.
    """
    if name not in PROVIDER_REGISTRY:
        available = ", ".join(sorted(PROVIDER_REGISTRY.keys()))
        raise ValueError(f"Unknown provider '{name}'. Available: {available}")
    return PROVIDER_REGISTRY[name](chain=chain, api_key=api_key, **kwargs)


def get_available_providers() -> list[str]:
    """Get list of available provider names.

    :returns: Sorted list of registered provider names.
    """
    return sorted(PROVIDER_REGISTRY.keys())
