"""ProviderSelector: Weighted random choice of the price provider for a lookup.

The weight table is a cost-control knob, not a quality ranking. Each lookup
draws one integer in [0, total_weight) from an injected random source and
uses the provider whose cumulative range contains it.

With the default table the ranges are:

    ==========  ======  =========
    provider    weight  draws
    ==========  ======  =========
    moralis     11      0 - 10
    coingecko   15      11 - 25
    defillama   25      26 - 50
    mobula      49      51 - 99
    ==========  ======  =========

.. code-block:: python

    >>> selector = WeightedProviderSelector()
    >>> selector.provider_for_draw(0)
    'moralis'
    >>> selector.provider_for_draw(99)
    'mobula'
"""

from __future__ import annotations

import random
from typing import Iterable, Mapping

DEFAULT_PROVIDER_WEIGHTS: tuple[tuple[str, int], ...] = (
    ("moralis", 11),
    ("coingecko", 15),
    ("defillama", 25),
    ("mobula", 49),
)


class WeightedProviderSelector:
    """Samples provider names from an ordered weight table.

    :ivar weights: Ordered (provider, weight) pairs.
    :ivar total_weight: Sum of all weights; draws fall in [0, total_weight).
    """

    def __init__(
        self,
        weights: Mapping[str, int] | Iterable[tuple[str, int]] = DEFAULT_PROVIDER_WEIGHTS,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the selector.

        :param weights: Provider weights; order defines the draw ranges.
        :param rng: Random source exposing randrange() (default: a fresh Random).
        :raises ValueError: If the table is empty, has duplicates or non-positive weights.
        """
        items = list(weights.items()) if isinstance(weights, Mapping) else list(weights)
        if not items:
            raise ValueError("Provider weight table must not be empty")

        seen: set[str] = set()
        for name, weight in items:
            if name in seen:
                raise ValueError(f"Duplicate provider in weight table: {name}")
            if isinstance(weight, bool) or not isinstance(weight, int) or weight <= 0:
                raise ValueError(f"Weight for {name} must be a positive integer, got {weight!r}")
            seen.add(name)

        self.weights: tuple[tuple[str, int], ...] = tuple(items)
        self.total_weight = sum(w for _, w in self.weights)
        self._rng = rng or random.Random()

    @property
    def providers(self) -> list[str]:
        """Provider names in table order."""
        return [name for name, _ in self.weights]

    def provider_for_draw(self, draw: int) -> str:
        """Map a draw to a provider name.

        :param draw: Integer in [0, total_weight).
        :returns: Provider whose cumulative range contains the draw.
        :raises ValueError: If the draw is out of range.
        """
        if not 0 <= draw < self.total_weight:
            raise ValueError(f"Draw {draw} outside [0, {self.total_weight})")
        upper = 0
        for name, weight in self.weights:
            upper += weight
            if draw < upper:
                return name
        raise AssertionError("unreachable")

    def choose(self) -> str:
        """Draw a provider for one lookup."""
        return self.provider_for_draw(self._rng.randrange(self.total_weight))

    def share(self, provider: str) -> float:
        """Fraction of lookups routed to a provider (0.0 if absent)."""
        return dict(self.weights).get(provider, 0) / self.total_weight


def parse_provider_weights(weights_str: str | None) -> list[tuple[str, int]]:
    """Parse a weight table string.

    Format: provider1=weight1,provider2=weight2
    Example: moralis=11,coingecko=15,defillama=25,mobula=49

    :param weights_str: Comma-separated weight string.
    :returns: Ordered (provider, weight) pairs; empty if the string is empty.
    :raises ValueError: If an entry is malformed.
    """
    if not weights_str:
        return []

    weights = []
    for item in weights_str.split(","):
        item = item.strip()
        if not item:
            continue
        if "=" not in item:
            raise ValueError(f"Invalid weight entry '{item}'. Expected 'provider=weight'")
        name, weight = item.split("=", 1)
        try:
            weights.append((name.strip().lower(), int(weight.strip())))
        except ValueError as e:
            raise ValueError(f"Invalid weight for {name.strip()}: {weight.strip()!r}") from e
    return weights
