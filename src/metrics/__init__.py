"""Derived financial metrics package."""

from src.metrics.finance import (
    PLACEHOLDER,
    ElapsedDuration,
    GainLoss,
    elapsed_duration,
    format_duration,
    format_percentage,
    future_value,
    gain_loss,
    months_between,
    percentage_change,
    progress_percentage,
    suggested_monthly_contribution,
    years_to_target,
)

__all__ = [
    "PLACEHOLDER",
    "ElapsedDuration",
    "GainLoss",
    "elapsed_duration",
    "format_duration",
    "format_percentage",
    "future_value",
    "gain_loss",
    "months_between",
    "percentage_change",
    "progress_percentage",
    "suggested_monthly_contribution",
    "years_to_target",
]
