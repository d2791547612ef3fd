"""
Quest Verifier - DCA Order Validation Module

This module decides whether a wallet holds a DCA order worth a minimum USD value:
- TokenAllowlist: Tokens eligible for valuation
- AmountNormalizer: Exact raw-amount to token-quantity conversion
- ProviderSelector: Weighted random choice of price provider
- PriceRouter: USD price lookups through the selected provider
- OrderValidator: Per-order evaluation with first-match short circuit
- SubgraphClient: Stackly subgraph order reader
- QuestApi: FastAPI endpoint for quest platforms
- providers: Modular USD price provider implementations
"""

from .AmountNormalizer import MalformedAmount, normalize_amount, usd_value
from .DcaOrder import DcaOrder, RequestFormatError, ValidationRequest
from .OrderValidator import OrderEvaluation, OrderStatus, OrderValidator, ValidationResult
from .PriceRouter import PriceQuote, PriceRouter, PriceUnavailable
from .ProviderSelector import DEFAULT_PROVIDER_WEIGHTS, WeightedProviderSelector
from .SubgraphClient import DEFAULT_SUBGRAPH_URL, SubgraphClient, SubgraphError
from .TokenAllowlist import DEFAULT_ALLOWED_TOKENS, TokenAllowlist

__all__ = [
    "DEFAULT_ALLOWED_TOKENS",
    "DEFAULT_PROVIDER_WEIGHTS",
    "DEFAULT_SUBGRAPH_URL",
    "DcaOrder",
    "MalformedAmount",
    "OrderEvaluation",
    "OrderStatus",
    "OrderValidator",
    "PriceQuote",
    "PriceRouter",
    "PriceUnavailable",
    "RequestFormatError",
    "SubgraphClient",
    "SubgraphError",
    "TokenAllowlist",
    "ValidationRequest",
    "ValidationResult",
    "WeightedProviderSelector",
    "normalize_amount",
    "usd_value",
]
