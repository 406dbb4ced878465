"""
PROFITABILITY CALCULATOR
Decide whether moving idle funds pays for itself

RESPONSIBILITIES:
- Estimate one day of yield on the observed principal
- Compare it against the fixed execution (gas) cost
- Map the yield to a coarse sentiment score for the audit log

RULES:
❌ No I/O
❌ No validation of the quote (the market data provider owns that)
✅ Decimal arithmetic
✅ Strict inequality: break-even is NOT profitable
"""

from decimal import Decimal
from typing import Union

from app.domain.models import Profitability

Number = Union[Decimal, float, int, str]

DAYS_PER_YEAR = Decimal("365")
HUNDRED = Decimal("100")


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class ProfitabilityCalculator:
    """
    Profitability Calculator
    dailyYield = principal * (apy / 100) / 365
    profitable iff dailyYield - gasCost > 0
    """

    def daily_yield(self, principal: Number, apy_percent: Number) -> Decimal:
        return _to_decimal(principal) * (_to_decimal(apy_percent) / HUNDRED) / DAYS_PER_YEAR

    def evaluate(self, principal: Number, apy_percent: Number, gas_cost: Number) -> Profitability:
        """
        Evaluate profitability of moving the whole principal

        Args:
            principal: Observed balance
            apy_percent: Annual yield in percent (e.g. 7.0)
            gas_cost: Estimated fixed cost of execution

        Returns:
            Profitability snapshot
        """
        daily = self.daily_yield(principal, apy_percent)
        gas = _to_decimal(gas_cost)
        net = daily - gas

        # NaN apy flows through the arithmetic; it can never be profitable
        is_profitable = (not net.is_nan()) and net > 0

        return Profitability(daily_yield=daily, gas_cost=gas, is_profitable=is_profitable)

    def is_profitable(self, principal: Number, apy_percent: Number, gas_cost: Number) -> bool:
        return self.evaluate(principal, apy_percent, gas_cost).is_profitable


def sentiment_for_apy(
    apy: float,
    threshold: float = 6.0,
    high: float = 0.8,
    low: float = 0.4,
) -> float:
    """Two-bucket sentiment score derived from the yield."""
    return high if apy > threshold else low
