"""
Aggregation of per-category costs into estimate totals.
"""

from decimal import Decimal
from typing import Dict

from .pricing import CENT, MONEY_CONTEXT, CostBreakdownSet
from .usage import Provider


def _sum_money(amounts) -> float:
    """Sum already-rounded amounts and round the result half-up to cents."""
    total = sum((Decimal(str(amount)) for amount in amounts), Decimal("0"))
    return float(total.quantize(CENT, context=MONEY_CONTEXT))


def compute_total(breakdowns: CostBreakdownSet) -> float:
    """Total monthly cost on the primary provider.

    Sums the primary amount of each category. The per-category amounts are
    already rounded; only the final sum is rounded again.

    Args:
        breakdowns: Cost breakdowns for all categories

    Returns:
        Total rounded to 2 decimal places
    """
    return _sum_money(breakdown.primary for breakdown in breakdowns)


def compute_provider_totals(breakdowns: CostBreakdownSet) -> Dict[Provider, float]:
    """Per-provider sum over the categories where the provider is modelled."""
    totals: Dict[Provider, float] = {}
    for provider in Provider:
        amounts = [
            breakdown.amounts[provider]
            for breakdown in breakdowns
            if provider in breakdown.amounts
        ]
        if amounts:
            totals[provider] = _sum_money(amounts)
    return totals
