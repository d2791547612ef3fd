"""OrderValidator: Decides whether any of a wallet's DCA orders meets a USD threshold.

Algorithm:
    1. Keep only orders whose sell token is allowlisted (input order preserved)
    2. Evaluate orders one at a time: normalize amount, price the token,
       usd_value = price * quantity, qualify if usd_value >= minimum
    3. An order that cannot be evaluated (malformed amount, price unavailable,
       value out of range) yields an ERROR evaluation and the next order is tried
    4. Stop at the first qualifying order (pass); fail if none qualifies

.. code-block:: python

    >>> validator = OrderValidator(TokenAllowlist(), router)
    >>> result = await validator.validate(orders, Decimal("3.00"), "0xabc...")
    >>> result.passed
    True
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal, DecimalException
from typing import TYPE_CHECKING, Iterable

from .AmountNormalizer import MalformedAmount, normalize_amount, usd_value
from .PriceRouter import PriceUnavailable

if TYPE_CHECKING:
    from .DcaOrder import DcaOrder
    from .PriceRouter import PriceQuote, PriceRouter
    from .TokenAllowlist import TokenAllowlist

logger = logging.getLogger(__name__)


class OrderStatus(enum.Enum):
    """Outcome of evaluating one order."""

    QUALIFIES = "qualifies"
    BELOW_THRESHOLD = "below_threshold"
    ERROR = "error"


@dataclass
class OrderEvaluation:
    """Result of evaluating one order against the threshold.

    :ivar order: The evaluated order.
    :ivar status: Whether it qualifies, falls short, or could not be evaluated.
    :ivar usd_value: Computed USD value, when pricing succeeded.
    :ivar quote: Price quote used, when pricing succeeded.
    :ivar error: The failure, when status is ERROR.
    """

    order: DcaOrder
    status: OrderStatus
    usd_value: Decimal | None = None
    quote: PriceQuote | None = None
    error: Exception | None = None

    @property
    def qualifies(self) -> bool:
        return self.status is OrderStatus.QUALIFIES


@dataclass
class ValidationResult:
    """Outcome of validating a wallet's orders.

    :ivar passed: True if at least one order qualified.
    :ivar qualifying_order: First qualifying order, if any.
    :ivar evaluations: Evaluations performed, in order.
    :ivar eligible_count: Orders left after the allowlist filter.
    """

    passed: bool
    qualifying_order: DcaOrder | None = None
    evaluations: list[OrderEvaluation] = field(default_factory=list)
    eligible_count: int = 0

    @property
    def errors(self) -> list[OrderEvaluation]:
        """Evaluations that failed and were skipped."""
        return [e for e in self.evaluations if e.status is OrderStatus.ERROR]


class OrderValidator:
    """Validates DCA orders against a minimum USD value.

    :ivar allowlist: Tokens eligible for valuation.
    :ivar router: Price router used for USD quotes.
    """

    def __init__(self, allowlist: TokenAllowlist, router: PriceRouter) -> None:
        self.allowlist = allowlist
        self.router = router

    def filter_eligible(self, orders: Iterable[DcaOrder]) -> list[DcaOrder]:
        """Drop orders selling tokens outside the allowlist."""
        return self.allowlist.filter(orders)

    async def evaluate_order(self, order: DcaOrder, minimum_usd_value: Decimal) -> OrderEvaluation:
        """Evaluate a single order.

        Never raises for per-order failures; those become ERROR evaluations.

        :param order: Order to evaluate.
        :param minimum_usd_value: Inclusive USD threshold.
        :returns: OrderEvaluation for the order.
        """
        try:
            quantity = normalize_amount(order.amount, order.sell_token_decimals)
            quote = await self.router.price_usd(order.sell_token_address)
            # A finite price can still overflow the context exponent range
            value = usd_value(quantity, quote.price_usd)
        except (MalformedAmount, PriceUnavailable, DecimalException) as e:
            logger.warning(f"Skipping {order}: {e}")
            return OrderEvaluation(order=order, status=OrderStatus.ERROR, error=e)

        status = OrderStatus.QUALIFIES if value >= minimum_usd_value else OrderStatus.BELOW_THRESHOLD
        logger.debug(
            f"{order}: {quantity} x {quote.price_usd} USD ({quote.source}) = {value} USD, "
            f"minimum {minimum_usd_value}: {status.value}"
        )
        return OrderEvaluation(order=order, status=status, usd_value=value, quote=quote)

    async def validate(
        self,
        orders: Iterable[DcaOrder],
        minimum_usd_value: Decimal,
        wallet_address: str,
    ) -> ValidationResult:
        """Check whether any order reaches the minimum USD value.

        :param orders: The wallet's orders, in subgraph order.
        :param minimum_usd_value: Inclusive USD threshold.
        :param wallet_address: Wallet owning the orders (for logs).
        :returns: ValidationResult; passed on the first qualifying order.
        """
        orders = list(orders)
        eligible = self.filter_eligible(orders)
        logger.info(
            f"Validating {wallet_address}: {len(eligible)}/{len(orders)} orders eligible, "
            f"minimum {minimum_usd_value} USD"
        )

        result = ValidationResult(passed=False, eligible_count=len(eligible))
        for order in eligible:
            evaluation = await self.evaluate_order(order, minimum_usd_value)
            result.evaluations.append(evaluation)
            if evaluation.qualifies:
                result.passed = True
                result.qualifying_order = order
                logger.info(f"{wallet_address} passed with {order} ({evaluation.usd_value} USD)")
                return result

        logger.info(
            f"{wallet_address} failed: no qualifying order "
            f"({len(result.errors)} of {len(eligible)} could not be evaluated)"
        )
        return result
