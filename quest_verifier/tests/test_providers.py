"""Unit tests for USD price providers."""

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from quest_verifier.src.providers import (
    BaseProvider,
    CoinGeckoProvider,
    DefiLlamaProvider,
    MobulaProvider,
    MoralisClient,
    MoralisProvider,
    ProviderConfigError,
    ProviderError,
    ProviderHTTPError,
    ProviderPayloadError,
    get_available_providers,
    get_provider,
    register_provider,
)

ARB = "0x912CE59144191C1204E64559FE8253a0e49E6548"
ARB_LOWER = ARB.lower()


def mock_client(handler) -> httpx.AsyncClient:
    """Build an AsyncClient whose requests are answered by handler."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_handler(body, status_code: int = 200, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, content=json.dumps(body).encode())

    return handler


def fetch(provider: BaseProvider, address: str = ARB) -> Decimal:
    return asyncio.run(provider.fetch_usd_price(address))


class TestRegistry:
    """Test the provider registry."""

    def test_available_providers(self) -> None:
        assert get_available_providers() == ["coingecko", "defillama", "mobula", "moralis"]

    def test_get_provider(self) -> None:
        provider = get_provider("mobula", api_key="k", timeout=3.0)
        assert isinstance(provider, MobulaProvider)
        assert provider.api_key == "k"
        assert provider.timeout == 3.0

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown provider 'nope'"):
            get_provider("nope")

    def test_register_requires_name(self) -> None:
        class Nameless(BaseProvider):
            async def _fetch_price(self, token_address):
                return 1

        with pytest.raises(ValueError, match="must define a 'name'"):
            register_provider(Nameless)


class TestMoralisProvider:
    """Test the Moralis adapter (provider A)."""

    def test_parses_usd_price(self) -> None:
        seen: list[httpx.Request] = []
        client = mock_client(json_handler({"usdPrice": 1.2345, "tokenSymbol": "ARB"}, seen=seen))
        moralis = MoralisClient("moralis-key", client=client)
        provider = MoralisProvider(moralis_client=moralis)

        assert fetch(provider) == Decimal("1.2345")

        request = seen[0]
        assert request.url.path == f"/api/v2.2/erc20/{ARB_LOWER}/price"
        assert request.url.params["chain"] == "0xa4b1"
        assert request.headers["X-API-Key"] == "moralis-key"

    def test_client_built_from_api_key(self) -> None:
        client = mock_client(json_handler({"usdPrice": "2"}))
        provider = MoralisProvider(api_key="k", client=client)
        assert isinstance(provider.moralis_client, MoralisClient)
        assert fetch(provider) == Decimal(2)

    def test_injected_fake_client(self) -> None:
        """Any object with get_token_price() can stand in for the client."""

        class FakeMoralis:
            async def get_token_price(self, chain_hex, address):
                assert (chain_hex, address) == ("0xa4b1", ARB_LOWER)
                return {"usdPrice": Decimal("0.75")}

        assert fetch(MoralisProvider(moralis_client=FakeMoralis())) == Decimal("0.75")

    def test_missing_key(self) -> None:
        """Without a client every lookup fails with a config error."""
        with pytest.raises(ProviderConfigError):
            fetch(MoralisProvider())

    def test_client_requires_key(self) -> None:
        with pytest.raises(ProviderConfigError):
            MoralisClient("")

    def test_missing_field(self) -> None:
        client = mock_client(json_handler({"tokenSymbol": "ARB"}))
        provider = MoralisProvider(moralis_client=MoralisClient("k", client=client))
        with pytest.raises(ProviderPayloadError):
            fetch(provider)

    def test_http_error(self) -> None:
        client = mock_client(json_handler({"message": "Unauthorized"}, status_code=401))
        provider = MoralisProvider(moralis_client=MoralisClient("k", client=client))
        with pytest.raises(ProviderHTTPError) as exc_info:
            fetch(provider)
        assert exc_info.value.status_code == 401


class TestMobulaProvider:
    """Test the Mobula adapter (provider B)."""

    def test_parses_price(self) -> None:
        seen: list[httpx.Request] = []
        client = mock_client(json_handler({"data": {"price": 1.01, "symbol": "ARB"}}, seen=seen))
        provider = MobulaProvider(api_key="mobula-key", client=client)

        assert fetch(provider) == Decimal("1.01")

        request = seen[0]
        assert request.url.params["asset"] == ARB_LOWER
        assert request.url.params["blockchain"] == "42161"
        assert request.headers["Authorization"] == "mobula-key"

    def test_missing_key(self) -> None:
        with pytest.raises(ProviderConfigError):
            fetch(MobulaProvider(client=mock_client(json_handler({}))))

    def test_null_price(self) -> None:
        client = mock_client(json_handler({"data": {"price": None}}))
        with pytest.raises(ProviderPayloadError, match="No price"):
            fetch(MobulaProvider(api_key="k", client=client))

    def test_missing_data(self, caplog) -> None:
        client = mock_client(json_handler({"error": "not found"}))
        with pytest.raises(ProviderPayloadError, match="No price"):
            fetch(MobulaProvider(api_key="k", client=client))
        assert f"[mobula] No market data for {ARB_LOWER}" in caplog.text


class TestCoinGeckoProvider:
    """Test the CoinGecko adapter (provider C)."""

    def test_parses_token_price(self) -> None:
        seen: list[httpx.Request] = []
        client = mock_client(json_handler({ARB_LOWER: {"usd": 0.98}}, seen=seen))
        provider = CoinGeckoProvider(api_key="pro-key", client=client)

        assert fetch(provider) == Decimal("0.98")

        request = seen[0]
        assert request.url.host == "pro-api.coingecko.com"
        assert request.url.path == "/api/v3/simple/token_price/arbitrum-one"
        assert request.url.params["contract_addresses"] == ARB_LOWER
        assert request.url.params["vs_currencies"] == "usd"
        assert request.headers["x-cg-pro-api-key"] == "pro-key"

    def test_demo_key(self) -> None:
        seen: list[httpx.Request] = []
        client = mock_client(json_handler({ARB_LOWER: {"usd": 1}}, seen=seen))
        provider = CoinGeckoProvider(api_key="demo:CG-abc", client=client)

        fetch(provider)

        assert seen[0].url.host == "api.coingecko.com"
        assert seen[0].headers["x-cg-demo-api-key"] == "CG-abc"

    def test_mixed_case_response_key(self) -> None:
        client = mock_client(json_handler({ARB: {"usd": 1.5}}))
        assert fetch(CoinGeckoProvider(client=client)) == Decimal("1.5")

    def test_unknown_token(self, caplog) -> None:
        """CoinGecko answers {} for contracts it does not know."""
        client = mock_client(json_handler({}))
        with pytest.raises(ProviderPayloadError, match="No price"):
            fetch(CoinGeckoProvider(client=client))
        assert f"[coingecko] Token {ARB_LOWER} not in response" in caplog.text


class TestDefiLlamaProvider:
    """Test the DefiLlama adapter (provider D)."""

    def test_parses_price(self) -> None:
        seen: list[httpx.Request] = []
        coin_id = f"arbitrum:{ARB_LOWER}"
        body = {"coins": {coin_id: {"price": 1.02, "symbol": "ARB", "decimals": 18}}}
        client = mock_client(json_handler(body, seen=seen))

        assert fetch(DefiLlamaProvider(client=client)) == Decimal("1.02")
        assert seen[0].url.host == "coins.llama.fi"
        assert seen[0].url.path == f"/prices/current/{coin_id}"

    def test_pro_url(self) -> None:
        seen: list[httpx.Request] = []
        coin_id = f"arbitrum:{ARB_LOWER}"
        client = mock_client(json_handler({"coins": {coin_id: {"price": 3}}}, seen=seen))

        fetch(DefiLlamaProvider(api_key="llama-key", client=client))

        assert seen[0].url.host == "pro-api.llama.fi"
        assert seen[0].url.path == f"/llama-key/coins/prices/current/{coin_id}"

    def test_unknown_coin(self, caplog) -> None:
        client = mock_client(json_handler({"coins": {}}))
        with pytest.raises(ProviderPayloadError, match="No price"):
            fetch(DefiLlamaProvider(client=client))
        assert f"[defillama] Coin arbitrum:{ARB_LOWER} not in response" in caplog.text


class TestBaseProviderFailures:
    """Test failure handling shared by all providers."""

    @pytest.mark.parametrize("price", [0, -1, "abc", True, "NaN"])
    def test_unusable_price(self, price) -> None:
        """Zero, negative and non-numeric prices are payload errors."""
        client = mock_client(json_handler({"data": {"price": price}}))
        with pytest.raises(ProviderPayloadError):
            fetch(MobulaProvider(api_key="k", client=client))

    def test_invalid_json(self) -> None:
        client = mock_client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(ProviderPayloadError, match="Invalid JSON"):
            fetch(DefiLlamaProvider(client=client))

    def test_server_error(self) -> None:
        client = mock_client(json_handler({"error": "boom"}, status_code=503))
        with pytest.raises(ProviderHTTPError, match="HTTP 503"):
            fetch(DefiLlamaProvider(client=client))

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError, match="Request failed"):
            fetch(DefiLlamaProvider(client=mock_client(handler)))

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(ProviderError, match="Request timeout"):
            fetch(DefiLlamaProvider(client=mock_client(handler)))

    def test_price_keeps_decimal_precision(self) -> None:
        """JSON floats should be parsed as Decimal, not float."""
        client = mock_client(lambda request: httpx.Response(
            200, content=b'{"data": {"price": 0.1000000000000000055511}}'
        ))
        price = fetch(MobulaProvider(api_key="k", client=client))
        assert price == Decimal("0.1000000000000000055511")
