"""PriceRouter: USD price lookups dispatched to one provider per call.

Each call to price_usd() asks the selector for a provider and performs a
single lookup with it. A failed lookup is not retried on another provider;
the caller sees PriceUnavailable and decides what the failure means.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Mapping

from .providers import ProviderError

if TYPE_CHECKING:
    from .ProviderSelector import WeightedProviderSelector
    from .providers import BaseProvider

logger = logging.getLogger(__name__)


class PriceUnavailable(Exception):
    """Raised when no USD price could be obtained for a token.

    :ivar token_address: Token that could not be priced.
    :ivar source: Provider that was selected for the lookup.
    """

    def __init__(self, token_address: str, source: str, reason: str):
        self.token_address = token_address
        self.source = source
        super().__init__(f"No USD price for {token_address} from {source}: {reason}")


@dataclass(frozen=True)
class PriceQuote:
    """A USD price returned by one provider, valid only for this request.

    :ivar token_address: Lower-cased token address.
    :ivar price_usd: Positive USD price.
    :ivar source: Provider name.
    :ivar fetched_at: Unix time of the lookup.
    """

    token_address: str
    price_usd: Decimal
    source: str
    fetched_at: float = field(default_factory=time.time)


class PriceRouter:
    """Routes each price lookup to a provider chosen by a weighted selector.

    :ivar providers: Dict mapping provider names to provider instances.
    :ivar selector: Weighted provider selector.
    """

    def __init__(
        self,
        providers: Mapping[str, BaseProvider],
        selector: WeightedProviderSelector,
    ) -> None:
        """Initialize the router.

        Providers named in the selector's table but missing here are treated
        as unusable: selecting one fails that lookup.

        :param providers: Dict mapping provider names to provider instances.
        :param selector: Weighted provider selector.
        """
        self.providers = dict(providers)
        self.selector = selector

        missing = [p for p in selector.providers if p not in self.providers]
        if missing:
            logger.warning(f"Providers in weight table without an adapter: {', '.join(missing)}")

    async def price_usd(self, token_address: str) -> PriceQuote:
        """Get the USD price of a token.

        :param token_address: Token contract address (any letter case).
        :returns: PriceQuote from the selected provider.
        :raises PriceUnavailable: If the selected provider is unusable or fails.
        """
        address = token_address.lower()
        source = self.selector.choose()
        provider = self.providers.get(source)
        if provider is None:
            raise PriceUnavailable(address, source, "provider not configured")

        logger.debug(f"Pricing {address} via {source}")
        try:
            price = await provider.fetch_usd_price(address)
        except ProviderError as e:
            logger.warning(f"[{source}] Price lookup failed for {address}: {e}")
            raise PriceUnavailable(address, source, str(e)) from e

        return PriceQuote(token_address=address, price_usd=price, source=source)
