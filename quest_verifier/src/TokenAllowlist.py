"""TokenAllowlist: Fixed set of token contracts eligible for USD valuation.

Orders selling any other token are never priced, so a malicious order cannot
make the service query providers for arbitrary contracts.

.. code-block:: python

    >>> allowlist = TokenAllowlist(["0x82aF49447D8a07e3bd95BD0d56f35241523fBab1"])
    >>> "0x82af49447d8a07e3bd95bd0d56f35241523fbab1" in allowlist
    True
    >>> allowlist.contains("0x0000000000000000000000000000000000000000")
    False
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from web3 import Web3

if TYPE_CHECKING:
    from .DcaOrder import DcaOrder

# Tokens Stackly lets users DCA out of on Arbitrum One.
DEFAULT_ALLOWED_TOKENS: tuple[str, ...] = (
    "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",  # WETH
    "0x2f2a2543B76A4166549F7aaB2e75Bef0aefC5B0f",  # WBTC
    "0x912CE59144191C1204E64559FE8253a0e49E6548",  # ARB
    "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",  # USDC
    "0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8",  # USDC.e
    "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",  # USDT
    "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",  # DAI
    "0xfc5A1A6EB076a2C7aD06eD22C90d7E710E35ad0a",  # GMX
)


class TokenAllowlist:
    """Case-insensitive, read-only set of token addresses.

    :ivar addresses: Lower-cased allowed addresses.
    """

    def __init__(self, addresses: Iterable[str] = DEFAULT_ALLOWED_TOKENS) -> None:
        """Initialize the allowlist.

        :param addresses: Token contract addresses, any letter case.
        :raises ValueError: If an entry is not a 20-byte hex address.
        """
        normalized = set()
        for address in addresses:
            lowered = address.strip().lower()
            if not Web3.is_address(lowered):
                raise ValueError(f"Invalid token address in allowlist: {address!r}")
            normalized.add(lowered)
        self.addresses: frozenset[str] = frozenset(normalized)

    def __len__(self) -> int:
        return len(self.addresses)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self.contains(address)

    def __repr__(self) -> str:
        return f"TokenAllowlist({sorted(self.addresses)!r})"

    def contains(self, address: str | None) -> bool:
        """Check whether a token may be valued.

        :param address: Token contract address, any letter case.
        :returns: True if the token is allowlisted.
        """
        if not address:
            return False
        return address.strip().lower() in self.addresses

    def filter(self, orders: Iterable[DcaOrder]) -> list[DcaOrder]:
        """Keep the orders whose sell token is allowlisted, in input order."""
        return [o for o in orders if self.contains(o.sell_token_address)]

    @classmethod
    def from_string(cls, addresses: str) -> TokenAllowlist:
        """Parse a comma-separated address list.

        :param addresses: e.g. "0xabc...,0xdef...".
        :returns: New TokenAllowlist instance.
        :raises ValueError: If the list is empty or an entry is invalid.
        """
        entries = [a.strip() for a in addresses.split(",") if a.strip()]
        if not entries:
            raise ValueError("Token allowlist must not be empty")
        return cls(entries)
