# Copyright (c) Syntropy Systems
"""Per-model token pricing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

COST_DECIMALS = 6


@dataclass(frozen=True)
class ModelPrice:
    """USD price per 1K tokens."""

    input: float
    output: float


class PricingTable:
    """Ordered price lookup: exact model name, then longest prefix, then default."""

    def __init__(self, prices: Mapping[str, ModelPrice], default_model: str) -> None:
        if default_model not in prices:
            msg = f"Default pricing model '{default_model}' is not in the pricing table"
            raise ValueError(msg)
        self._prices = dict(prices)
        self.default_model = default_model

    def lookup(self, model: str) -> ModelPrice:
        """Return the price entry that applies to ``model``."""
        exact = self._prices.get(model)
        if exact is not None:
            return exact

        prefixes = [name for name in self._prices if model.startswith(name)]
        if prefixes:
            return self._prices[max(prefixes, key=len)]

        return self._prices[self.default_model]

    def cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        """Cost in USD of a request, rounded to 6 decimal places."""
        price = self.lookup(model)
        input_cost = (input_tokens / 1000) * price.input
        output_cost = (output_tokens / 1000) * price.output
        return round(input_cost + output_cost, COST_DECIMALS)
