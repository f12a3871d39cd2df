"""Profit computation engines."""

from profitloss.engines.aggregator import Aggregator
from profitloss.engines.calculator import ProfitCalculator
from profitloss.engines.reconciliation import ReconciliationEngine, ReconciliationSettings

__all__ = [
    "Aggregator",
    "ProfitCalculator",
    "ReconciliationEngine",
    "ReconciliationSettings",
]
