"""
Token usage cost accumulator.

Converts per-call token usage into running totals and an advisory
monetary cost in a base currency and one converted currency.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from voicetutor.core.logging import get_logger

if TYPE_CHECKING:
    from voicetutor.config.schema import PricingConfig

logger = get_logger("costs")


@dataclass(frozen=True)
class UsageDelta:
    """Token usage reported for a single backend call."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def __post_init__(self) -> None:
        for name in ("prompt_tokens", "completion_tokens", "total_tokens"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")


@dataclass(frozen=True)
class CostTotals:
    """Running totals derived from recorded usage."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    base_cost: float = 0.0
    converted_cost: float = 0.0


class CostAccumulator:
    """
    Running token and cost totals.

    Totals only change through record() and reset().
    """

    def __init__(
        self,
        prompt_rate_per_1k: float = 0.005,
        completion_rate_per_1k: float = 0.015,
        fx_rate: float = 110.0,
        base_currency: str = "USD",
        converted_currency: str = "BDT",
    ) -> None:
        """
        Initialize accumulator.

        Args:
            prompt_rate_per_1k: Base-currency price per 1K prompt tokens
            completion_rate_per_1k: Base-currency price per 1K completion tokens
            fx_rate: Multiplier from base to converted currency
            base_currency: Currency code of the per-1K rates
            converted_currency: Currency code after applying fx_rate
        """
        self.prompt_rate_per_1k = prompt_rate_per_1k
        self.completion_rate_per_1k = completion_rate_per_1k
        self.fx_rate = fx_rate
        self.base_currency = base_currency
        self.converted_currency = converted_currency
        self._totals = CostTotals()

    @classmethod
    def from_config(cls, config: PricingConfig) -> CostAccumulator:
        return cls(
            prompt_rate_per_1k=config.prompt_rate_per_1k,
            completion_rate_per_1k=config.completion_rate_per_1k,
            fx_rate=config.fx_rate,
            base_currency=config.base_currency,
            converted_currency=config.converted_currency,
        )

    @property
    def totals(self) -> CostTotals:
        return self._totals

    def cost_of(self, usage: UsageDelta) -> float:
        """Base-currency cost of a single usage delta."""
        prompt_cost = (usage.prompt_tokens / 1000) * self.prompt_rate_per_1k
        completion_cost = (usage.completion_tokens / 1000) * self.completion_rate_per_1k
        return prompt_cost + completion_cost

    def record(self, usage: UsageDelta) -> CostTotals:
        """
        Add usage to the running totals.

        Args:
            usage: Token usage for one backend call

        Returns:
            Updated totals
        """
        cost = self.cost_of(usage)
        prev = self._totals
        self._totals = CostTotals(
            prompt_tokens=prev.prompt_tokens + usage.prompt_tokens,
            completion_tokens=prev.completion_tokens + usage.completion_tokens,
            total_tokens=prev.total_tokens + usage.total_tokens,
            base_cost=prev.base_cost + cost,
            converted_cost=prev.converted_cost + cost * self.fx_rate,
        )
        logger.debug(
            f"Recorded usage {usage.prompt_tokens}+{usage.completion_tokens} tokens, "
            f"running {self.describe()}"
        )
        return self._totals

    def reset(self) -> None:
        """Zero all totals."""
        self._totals = CostTotals()

    def converted_rates(self) -> tuple[float, float]:
        """Per-1K (prompt, completion) rates in the converted currency."""
        return (
            self.prompt_rate_per_1k * self.fx_rate,
            self.completion_rate_per_1k * self.fx_rate,
        )

    def describe(self, totals: CostTotals | None = None) -> str:
        """One-line summary, e.g. ``70 tokens, USD 0.000550 (BDT 0.0605)``."""
        if totals is None:
            totals = self._totals
        return (
            f"{totals.total_tokens} tokens, "
            f"{self.base_currency} {totals.base_cost:.6f} "
            f"({self.converted_currency} {totals.converted_cost:.4f})"
        )
