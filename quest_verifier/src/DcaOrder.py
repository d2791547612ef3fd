"""DcaOrder and ValidationRequest: Inputs of the validation pipeline.

A DcaOrder is one recurring-buy position as indexed by the Stackly subgraph.
Amount and decimals are kept exactly as received; they are interpreted by
AmountNormalizer when the order is evaluated, so one malformed order only
disqualifies itself.

.. code-block:: python

    >>> order = DcaOrder.from_subgraph({
    ...     "id": "0x1",
    ...     "amount": "1500000000000000000",
    ...     "sellToken": {"address": "0x82aF...", "decimals": 18, "symbol": "WETH"},
    ... })
    >>> order.sell_token_symbol
    'WETH'
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from web3 import Web3


# startTime is sent as a GraphQL Int (signed 32-bit)
MAX_START_TIME = 2**31 - 1


class RequestFormatError(ValueError):
    """Raised when a verification request is missing or has unparseable parameters."""

    pass


@dataclass(frozen=True)
class DcaOrder:
    """A recurring-buy position.

    :ivar sell_token_address: Sell token contract address (case-insensitive).
    :ivar sell_token_decimals: Sell token decimals, as indexed.
    :ivar amount: Raw on-chain amount, as indexed.
    :ivar id: Subgraph order id.
    :ivar sell_token_symbol: Sell token symbol, for logs only.
    """

    sell_token_address: str
    sell_token_decimals: Any
    amount: Any
    id: str | None = None
    sell_token_symbol: str | None = None

    @classmethod
    def from_subgraph(cls, record: dict[str, Any]) -> DcaOrder:
        """Build an order from one `dcaorders` record.

        :param record: Subgraph record with amount and sellToken fields.
        :returns: New DcaOrder instance.
        :raises ValueError: If the record has no sell token address.
        """
        sell_token = record.get("sellToken") or {}
        address = sell_token.get("address")
        if not isinstance(address, str) or not address:
            raise ValueError(f"Order {record.get('id')!r} has no sell token address")
        return cls(
            sell_token_address=address,
            sell_token_decimals=sell_token.get("decimals"),
            amount=record.get("amount"),
            id=record.get("id"),
            sell_token_symbol=sell_token.get("symbol"),
        )

    def __str__(self) -> str:
        token = self.sell_token_symbol or self.sell_token_address
        return f"order {self.id or '?'} ({token})"


@dataclass(frozen=True)
class ValidationRequest:
    """A parsed verification request.

    :ivar wallet_address: Lower-cased wallet address.
    :ivar minimum_usd_value: Threshold a qualifying order must reach (> 0).
    :ivar start_time_inclusive: Only orders created at or after this unix time count.
    """

    wallet_address: str
    minimum_usd_value: Decimal
    start_time_inclusive: int

    @classmethod
    def from_params(
        cls,
        value: str | None,
        start_time: str | None,
        wallet: str | None,
    ) -> ValidationRequest:
        """Parse raw request parameters.

        :param value: Minimum USD value, decimal string.
        :param start_time: Start time, integer string (unix seconds).
        :param wallet: Wallet address.
        :returns: New ValidationRequest instance.
        :raises RequestFormatError: If a parameter is absent or invalid.
        """
        return cls(
            wallet_address=parse_wallet(wallet),
            minimum_usd_value=parse_minimum_value(value),
            start_time_inclusive=parse_start_time(start_time),
        )


def parse_minimum_value(value: str | None) -> Decimal:
    """Parse the `value` query parameter into a positive Decimal."""
    if not value or not value.strip():
        raise RequestFormatError("Missing minimum value")
    try:
        minimum = Decimal(value.strip())
    except InvalidOperation as e:
        raise RequestFormatError(f"Invalid minimum value: {value!r}") from e
    if not minimum.is_finite() or minimum <= 0:
        raise RequestFormatError(f"Minimum value must be positive: {value!r}")
    return minimum


def parse_start_time(start_time: str | None) -> int:
    """Parse the `startTime` query parameter into a unix timestamp."""
    if not start_time or not start_time.strip():
        raise RequestFormatError("Missing start time")
    try:
        parsed = int(start_time.strip())
    except ValueError as e:
        raise RequestFormatError(f"Invalid start time: {start_time!r}") from e
    if parsed < 0:
        raise RequestFormatError(f"Start time must not be negative: {start_time!r}")
    if parsed > MAX_START_TIME:
        raise RequestFormatError(f"Start time out of range: {start_time!r}")
    return parsed


def parse_wallet(wallet: str | None) -> str:
    """Validate a wallet address and return it lower-cased."""
    if not isinstance(wallet, str) or not wallet.strip():
        raise RequestFormatError("Missing wallet address")
    lowered = wallet.strip().lower()
    if not Web3.is_address(lowered):
        raise RequestFormatError(f"Invalid wallet address: {wallet!r}")
    return lowered
