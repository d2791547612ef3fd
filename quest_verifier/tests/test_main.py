"""Unit tests for configuration helpers in main."""

from quest_verifier.main import build_providers, parse_api_keys, parse_env_api_keys
from quest_verifier.src.providers import (
    DEFAULT_CHAIN,
    CoinGeckoProvider,
    DefiLlamaProvider,
    MobulaProvider,
    MoralisClient,
    MoralisProvider,
)


class TestParseApiKeys:
    """Test API key string parsing."""

    def test_parse(self) -> None:
        assert parse_api_keys("Moralis=abc, mobula = xyz") == {"moralis": "abc", "mobula": "xyz"}

    def test_value_with_equals(self) -> None:
        assert parse_api_keys("coingecko=demo:CG=1") == {"coingecko": "demo:CG=1"}

    def test_empty(self) -> None:
        assert parse_api_keys(None) == {}
        assert parse_api_keys("") == {}

    def test_ignores_malformed_items(self) -> None:
        assert parse_api_keys("moralis,mobula=k") == {"mobula": "k"}


class TestParseEnvApiKeys:
    """Test API_KEY_* environment parsing."""

    def test_env_keys(self, monkeypatch) -> None:
        monkeypatch.setenv("API_KEY_MORALIS", "m")
        monkeypatch.setenv("APIKEY_MOBULA", "b")
        monkeypatch.setenv("API_KEY_EMPTY", "")

        keys = parse_env_api_keys()

        assert keys["moralis"] == "m"
        assert keys["mobula"] == "b"
        assert "empty" not in keys


class TestBuildProviders:
    """Test provider wiring."""

    def test_builds_every_named_provider(self) -> None:
        providers = build_providers(
            ["moralis", "coingecko", "defillama", "mobula"],
            DEFAULT_CHAIN,
            {"moralis": "m", "mobula": "b"},
            5.0,
        )

        assert isinstance(providers["moralis"], MoralisProvider)
        assert isinstance(providers["moralis"].moralis_client, MoralisClient)
        assert isinstance(providers["coingecko"], CoinGeckoProvider)
        assert isinstance(providers["defillama"], DefiLlamaProvider)
        assert isinstance(providers["mobula"], MobulaProvider)
        assert providers["mobula"].api_key == "b"
        assert providers["mobula"].timeout == 5.0

    def test_moralis_without_key(self) -> None:
        """Moralis is still wired without a key; its lookups fail instead."""
        providers = build_providers(["moralis"], DEFAULT_CHAIN, {}, 5.0)
        assert providers["moralis"].moralis_client is None
