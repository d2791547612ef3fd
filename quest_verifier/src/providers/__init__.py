"""
USD price providers for ERC-20 tokens.

This module provides a unified interface for pricing a token contract in USD
through several independent third-party APIs.

Usage:
    from quest_verifier.src.providers import get_provider, get_available_providers

    # Get list of available providers
    available = get_available_providers()
    # ['coingecko', 'defillama', 'mobula', 'moralis']

    # Create a provider instance
    provider = get_provider("defillama")
    price = await provider.fetch_usd_price("0x912ce59144191c1204e64559fe8253a0e49e6548")

    # For providers requiring API keys
    provider = get_provider("mobula", api_key="your-api-key")
"""

# Import base classes and utilities
from .base import (
    DEFAULT_CHAIN,
    PROVIDER_REGISTRY,
    SUPPORTED_CHAINS,
    BaseProvider,
    ChainInfo,
    ProviderConfigError,
    ProviderError,
    ProviderHTTPError,
    ProviderPayloadError,
    get_available_providers,
    get_provider,
    register_provider,
)

# Import all provider implementations to trigger registration
from .coingecko import CoinGeckoProvider
from .defillama import DefiLlamaProvider
from .mobula import MobulaProvider
from .moralis import MoralisClient, MoralisProvider

__all__ = [
    # Base classes
    "BaseProvider",
    "ChainInfo",
    "ProviderError",
    "ProviderConfigError",
    "ProviderHTTPError",
    "ProviderPayloadError",
    # Chains
    "DEFAULT_CHAIN",
    "SUPPORTED_CHAINS",
    # Registry functions
    "register_provider",
    "get_provider",
    "get_available_providers",
    "PROVIDER_REGISTRY",
    # Provider implementations
    "CoinGeckoProvider",
    "DefiLlamaProvider",
    "MobulaProvider",
    "MoralisClient",
    "MoralisProvider",
]
