#!/usr/bin/env python3
"""Quest Verifier.

Answers quest-platform checks of whether a wallet holds a Stackly DCA order
worth at least a given USD value. Orders come from the Stackly subgraph and
sell tokens are priced through one of several USD price providers.

Start with env vars or CLI arguments, e.g. python -m quest_verifier.main --api-key ...
"""

import argparse
import logging
import os
import sys

import uvicorn

from .src.OrderValidator import OrderValidator
from .src.PriceRouter import PriceRouter
from .src.ProviderSelector import (
    DEFAULT_PROVIDER_WEIGHTS,
    WeightedProviderSelector,
    parse_provider_weights,
)
from .src.QuestApi import create_app
from .src.SubgraphClient import DEFAULT_SUBGRAPH_URL, SubgraphClient
from .src.TokenAllowlist import DEFAULT_ALLOWED_TOKENS, TokenAllowlist
from .src.providers import (
    SUPPORTED_CHAINS,
    BaseProvider,
    ChainInfo,
    MoralisClient,
    MoralisProvider,
    PROVIDER_REGISTRY,
    get_available_providers,
    get_provider,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_api_keys(api_key_str: str | None) -> dict[str, str]:
    """Parse comma-separated API key string into a dictionary.

    Format: provider1=key1,provider2=key2
    Example: moralis=abc123,mobula=xyz789

    :param api_key_str: Comma-separated API key string.
    :returns: Dict mapping provider names to API keys.
    """
    if not api_key_str:
        return {}

    api_keys = {}
    for item in api_key_str.split(","):
        item = item.strip()
        if "=" in item:
            provider, key = item.split("=", 1)
            api_keys[provider.strip().lower()] = key.strip()
    return api_keys


def parse_env_api_keys() -> dict[str, str]:
    """Parse API keys from individual environment variables.

    Looks for: API_KEY_MORALIS, API_KEY_MOBULA, API_KEY_COINGECKO, API_KEY_DEFILLAMA.

    :returns: Dict mapping provider names to API keys.
    """
    api_keys = {}
    prefixes = ["API_KEY_", "APIKEY_"]

    for key, value in os.environ.items():
        for prefix in prefixes:
            if key.startswith(prefix) and value:
                provider = key[len(prefix):].lower()
                api_keys[provider] = value
                break

    return api_keys


def build_providers(
    names: list[str],
    chain: ChainInfo,
    api_keys: dict[str, str],
    fetch_timeout: float,
) -> dict[str, BaseProvider]:
    """Instantiate the providers named in the weight table.

    The Moralis client is initialized here, once per process, and injected.

    :param names: Provider names.
    :param chain: Chain to price tokens on.
    :param api_keys: Dict mapping provider names to API keys.
    :param fetch_timeout: Timeout for price requests in seconds.
    :returns: Dict mapping provider names to provider instances.
    """
    providers: dict[str, BaseProvider] = {}
    for name in names:
        api_key = api_keys.get(name)
        if name == MoralisProvider.name:
            moralis_client = (
                MoralisClient(api_key, timeout=fetch_timeout) if api_key else None
            )
            providers[name] = MoralisProvider(
                chain=chain, timeout=fetch_timeout, moralis_client=moralis_client
            )
        else:
            providers[name] = get_provider(
                name, chain=chain, api_key=api_key, timeout=fetch_timeout
            )
    return providers


def main() -> None:
    """Main entry point for the Quest Verifier CLI."""
    available_providers = get_available_providers()
    default_weights = ",".join(f"{n}={w}" for n, w in DEFAULT_PROVIDER_WEIGHTS)

    parser = argparse.ArgumentParser(
        description="Quest Verifier: Stackly DCA order value checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available price providers:
  {', '.join(available_providers)}

Examples:
  # Serve with the default provider mix
  python -m quest_verifier.main --api-key secret \\
      --api-keys moralis=xxx,mobula=yyy,coingecko=zzz

  # Route every lookup through DefiLlama
  python -m quest_verifier.main --api-key secret --provider-weights defillama=1

Environment variables (CLI args take precedence):
  HOST, PORT, QUEST_API_KEY, SUBGRAPH_URL, CHAIN, ALLOWED_TOKENS,
  PROVIDER_WEIGHTS, FETCH_TIMEOUT, API_KEYS,
  API_KEY_MORALIS, API_KEY_MOBULA, API_KEY_COINGECKO, API_KEY_DEFILLAMA
""",
    )

    parser.add_argument(
        "--host",
        type=str,
        help="Interface to listen on (default: 0.0.0.0)",
        default=os.environ.get("HOST") or "0.0.0.0",
    )

    parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on (default: 8000)",
        default=int(os.environ.get("PORT") or "8000"),
    )

    parser.add_argument(
        "--api-key",
        dest="api_key",
        type=str,
        help="Secret expected in the x-api-key header of incoming requests",
        default=os.environ.get("QUEST_API_KEY"),
    )

    parser.add_argument(
        "--subgraph-url",
        dest="subgraph_url",
        type=str,
        help="Stackly subgraph GraphQL endpoint",
        default=os.environ.get("SUBGRAPH_URL") or DEFAULT_SUBGRAPH_URL,
    )

    parser.add_argument(
        "--chain",
        type=str,
        help=f"Chain of the DCA orders ({', '.join(SUPPORTED_CHAINS)})",
        default=os.environ.get("CHAIN") or "arbitrum-one",
    )

    parser.add_argument(
        "--allowed-tokens",
        dest="allowed_tokens",
        type=str,
        help="Comma-separated token addresses eligible for valuation (default: Stackly tokens)",
        default=os.environ.get("ALLOWED_TOKENS") or ",".join(DEFAULT_ALLOWED_TOKENS),
    )

    parser.add_argument(
        "--provider-weights",
        dest="provider_weights",
        type=str,
        help=f"Provider selection weights (default: {default_weights})",
        default=os.environ.get("PROVIDER_WEIGHTS") or default_weights,
    )

    parser.add_argument(
        "--api-keys",
        dest="api_keys",
        type=str,
        help="Comma-separated provider API keys (e.g., moralis=abc,mobula=xyz)",
        default=os.environ.get("API_KEYS"),
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for individual price and subgraph requests in seconds (default: 10.0)",
        default=float(os.environ.get("FETCH_TIMEOUT") or "10.0"),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if not args.api_key:
        parser.error("--api-key (or QUEST_API_KEY) is required")

    if args.fetch_timeout <= 0:
        parser.error("--fetch-timeout must be positive")

    chain = SUPPORTED_CHAINS.get(args.chain)
    if chain is None:
        parser.error(f"Unknown chain {args.chain}. Available: {', '.join(SUPPORTED_CHAINS)}")

    try:
        allowlist = TokenAllowlist.from_string(args.allowed_tokens)
        selector = WeightedProviderSelector(parse_provider_weights(args.provider_weights))
    except ValueError as e:
        parser.error(str(e))

    # Validate providers
    invalid_providers = [p for p in selector.providers if p not in available_providers]
    if invalid_providers:
        parser.error(
            f"Unknown providers: {invalid_providers}. "
            f"Available: {', '.join(available_providers)}"
        )

    # Parse API keys (CLI + environment)
    api_keys = parse_env_api_keys()
    api_keys.update(parse_api_keys(args.api_keys))

    # Log configuration
    logger.info("=" * 60)
    logger.info("Quest Verifier - Stackly DCA Order Checks")
    logger.info("=" * 60)
    logger.info(f"Listen:            {args.host}:{args.port}")
    logger.info(f"Chain:             {chain.name} ({chain.chain_id})")
    logger.info(f"Subgraph:          {args.subgraph_url}")
    logger.info(f"Allowed Tokens:    {len(allowlist)}")
    logger.info(
        "Provider Weights:  "
        + ", ".join(f"{n}={selector.share(n):.0%}" for n in selector.providers)
    )
    logger.info(f"Fetch Timeout:     {args.fetch_timeout}s")
    configured = [p for p in selector.providers if p in api_keys]
    if configured:
        logger.info(f"API Keys:          {', '.join(configured)}")
    missing = [p for p in selector.providers if p not in api_keys and PROVIDER_REGISTRY[p].requires_api_key]
    if missing:
        logger.warning(f"No API key for {', '.join(missing)}; their lookups will fail")
    logger.info("=" * 60)

    try:
        providers = build_providers(selector.providers, chain, api_keys, args.fetch_timeout)
        validator = OrderValidator(allowlist, PriceRouter(providers, selector))
        subgraph = SubgraphClient(args.subgraph_url, timeout=args.fetch_timeout)
        app = create_app(validator, subgraph, api_key=args.api_key)
        uvicorn.run(app, host=args.host, port=args.port, log_level="debug" if args.verbose else "info")
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
