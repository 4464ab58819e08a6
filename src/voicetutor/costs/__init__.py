"""Usage cost tracking."""

from voicetutor.costs.accumulator import CostAccumulator, CostTotals, UsageDelta

__all__ = ["CostAccumulator", "CostTotals", "UsageDelta"]
