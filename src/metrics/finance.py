"""
Derived Financial Metrics

Pure functions over canonical amounts and dates. Nothing here touches
storage or the network.

DESIGN DECISION: Ratios with a zero denominator return None instead of
raising or producing inf/nan. Display code renders None through
format_percentage, which shows a neutral placeholder.
"""

import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from src.money.codec import CENT, Number

PLACEHOLDER = "—"


def _dec(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


# =============================================================================
# PERCENTAGES
# =============================================================================

def percentage_change(current: Number, base: Number) -> Optional[float]:
    """
    Percentage gain/loss of current over base.

    Returns None when base is zero.

        >>> percentage_change(150, 100)
        50.0
        >>> percentage_change(80, 100)
        -20.0
    """
    base_d = _dec(base)
    if base_d == 0:
        return None
    return float((_dec(current) - base_d) / base_d * 100)


def progress_percentage(part: Number, whole: Number) -> Optional[float]:
    """Share of whole already reached (installments paid, budget spent)."""
    whole_d = _dec(whole)
    if whole_d == 0:
        return None
    return float(_dec(part) / whole_d * 100)


def format_percentage(value: Optional[float], decimals: int = 2) -> str:
    """Render a percentage in pt-BR style, or the placeholder for None."""
    if value is None or math.isnan(value) or math.isinf(value):
        return PLACEHOLDER
    return f"{value:.{decimals}f}%".replace(".", ",")


@dataclass(frozen=True)
class GainLoss:
    """Result of comparing a current value with what was invested."""

    amount: Decimal
    percentage: Optional[float]
    is_gain: bool


def gain_loss(current: Number, invested: Number) -> GainLoss:
    amount = (_dec(current) - _dec(invested)).quantize(CENT, rounding=ROUND_HALF_UP)
    return GainLoss(
        amount=amount,
        percentage=percentage_change(current, invested),
        is_gain=amount >= 0,
    )


# =============================================================================
# DATES
# =============================================================================

def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end, ignoring the day of month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def suggested_monthly_contribution(
    target: Number,
    current: Optional[Number],
    target_date: date,
    today: Optional[date] = None,
) -> Optional[Decimal]:
    """
    Monthly amount needed to reach target by target_date.

    Returns None when the goal is already met or the deadline is not
    at least one month away; the form then leaves the field unset.
    """
    today = today or date.today()
    remaining = _dec(target) - _dec(current)
    months = months_between(today, target_date)

    if months <= 0 or remaining <= 0:
        return None

    return (remaining / months).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, order=True)
class ElapsedDuration:
    years: int
    months: int

    @property
    def total_months(self) -> int:
        return self.years * 12 + self.months


def elapsed_duration(start: date, today: Optional[date] = None) -> ElapsedDuration:
    """
    Time since start in whole years and months.

    Uses calendar months: a month counts once the same day of month is
    reached. Dates in the future give zero.
    """
    today = today or date.today()
    total = months_between(start, today)
    if today.day < start.day:
        total -= 1
    years, months = divmod(max(total, 0), 12)
    return ElapsedDuration(years=years, months=months)


def format_duration(duration: ElapsedDuration) -> str:
    """
    Portuguese rendering used on asset screens.

        >>> format_duration(ElapsedDuration(2, 1))
        '2 anos e 1 mês'
    """
    months = f"{duration.months} {'mês' if duration.months == 1 else 'meses'}"
    if duration.years > 0:
        years = f"{duration.years} {'ano' if duration.years == 1 else 'anos'}"
        return f"{years} e {months}"
    return months


# =============================================================================
# COMPOUND GROWTH (million plan simulator)
# =============================================================================

def future_value(
    initial: Number,
    monthly: Number,
    annual_rate_pct: Number,
    years: int,
) -> Decimal:
    """
    Balance after `years` of monthly compounding with monthly deposits.

    Deposits land at the end of each month.
    """
    months = years * 12
    rate = float(_dec(annual_rate_pct)) / 100 / 12
    initial_f = float(_dec(initial))
    monthly_f = float(_dec(monthly))

    if rate == 0:
        total = initial_f + monthly_f * months
    else:
        growth = (1 + rate) ** months
        total = initial_f * growth + monthly_f * ((growth - 1) / rate)

    return Decimal(str(total)).quantize(CENT, rounding=ROUND_HALF_UP)


def years_to_target(
    initial: Number,
    monthly: Number,
    annual_rate_pct: Number,
    target: Number = 1_000_000,
    max_months: int = 600,
) -> Optional[float]:
    """
    Years until the balance reaches target, simulated month by month.

    Returns None if the target is not reached within max_months.
    """
    rate = _dec(annual_rate_pct) / 100 / 12
    balance = _dec(initial)
    monthly_d = _dec(monthly)
    target_d = _dec(target)
    months = 0

    while balance < target_d:
        if months >= max_months:
            return None
        balance = balance * (1 + rate) + monthly_d
        months += 1

    return months / 12
