"""AmountNormalizer: On-chain integer amounts to exact decimal token quantities.

ERC-20 amounts are unbounded integers scaled by 10**decimals. The conversion
below is exact: the quantity is built from the digit string, so no context
rounding or float conversion happens before the USD multiplication.

.. code-block:: python

    >>> normalize_amount("1500000000000000000", 18)
    Decimal('1.500000000000000000')
    >>> usd_value(Decimal("1.5"), Decimal("2.00"))
    Decimal('3.000')
"""

from __future__ import annotations

from decimal import Decimal, localcontext

# ERC-20 decimals() is a uint8
MAX_DECIMALS = 255

# Enough digits for a uint256 amount times a price with headroom
USD_PRECISION = 100


class MalformedAmount(ValueError):
    """Raised when an order amount or its decimals cannot be interpreted."""

    pass


def parse_raw_amount(amount: int | str) -> int:
    """Parse a raw on-chain amount.

    :param amount: Non-negative int, or a string of ASCII digits.
    :returns: The amount as int.
    :raises MalformedAmount: If the value is not a non-negative integer.
    """
    if isinstance(amount, bool):
        raise MalformedAmount(f"Invalid amount: {amount!r}")
    if isinstance(amount, int):
        if amount < 0:
            raise MalformedAmount(f"Negative amount: {amount}")
        return amount
    if isinstance(amount, str):
        digits = amount.strip()
        if digits and digits.isascii() and digits.isdigit():
            return int(digits)
    raise MalformedAmount(f"Invalid amount: {amount!r}")


def parse_decimals(decimals: int | str) -> int:
    """Parse a token's decimals value.

    :param decimals: Integer in [0, 255], or its digit string.
    :returns: The decimals as int.
    :raises MalformedAmount: If the value is out of range or not an integer.
    """
    if isinstance(decimals, str) and decimals.strip().isascii() and decimals.strip().isdigit():
        decimals = int(decimals.strip())
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise MalformedAmount(f"Invalid decimals: {decimals!r}")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise MalformedAmount(f"Decimals out of range: {decimals}")
    return decimals


def normalize_amount(amount: int | str, decimals: int | str) -> Decimal:
    """Convert a raw amount into a token quantity, amount / 10**decimals.

    :param amount: Raw on-chain amount.
    :param decimals: Token decimals.
    :returns: Exact quantity.
    :raises MalformedAmount: If either input is invalid.
    """
    raw = parse_raw_amount(amount)
    scale = parse_decimals(decimals)
    # Building from a string keeps every digit; Decimal() never rounds here
    return Decimal(f"{raw}E-{scale}")


def usd_value(quantity: Decimal, price: Decimal) -> Decimal:
    """Multiply a token quantity by its USD price without losing precision."""
    with localcontext() as ctx:
        ctx.prec = USD_PRECISION
        return quantity * price
