"""
billing.py
-----------
Pure billing arithmetic shared by the detector, matcher, classifiers and
reports:

    - Rounding to cents, half away from zero.
    - Annual cost from a per-charge amount and billing cycle.
    - Savings recommendation from a usage label and annual cost.
    - Subscription status from trial / cancellation / end dates.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from config.config_loader import get_billing_config


# Ordered like the canonical frequencies.
ANNUAL_MULTIPLIERS: tuple[tuple[str, int], ...] = (
    ("daily", 365),
    ("weekly", 52),
    ("biweekly", 26),
    ("monthly", 12),
    ("quarterly", 4),
    ("yearly", 1),
)
_ANNUAL_MULTIPLIER_MAP = dict(ANNUAL_MULTIPLIERS)


def round_half_up(value: float, places: int = 2) -> float:
    """Round half away from zero. Python's round() is banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def calculate_annual_cost(amount: float, billing_cycle: str) -> float:
    """
    Annualize a per-charge amount.

    Raises:
        ValueError: If billing_cycle is not a canonical frequency.
    """
    if billing_cycle not in _ANNUAL_MULTIPLIER_MAP:
        raise ValueError(
            f"Unknown billing cycle '{billing_cycle}'. "
            f"Available: {[name for name, _ in ANNUAL_MULTIPLIERS]}"
        )
    return round_half_up(amount * _ANNUAL_MULTIPLIER_MAP[billing_cycle])


def generate_savings_recommendation(
    service_name: str,
    usage_frequency: Optional[str],
    annual_cost: float,
    warning_threshold: float | None = None,
) -> Optional[str]:
    """
    Suggest a saving based on how often the service is used.

    Args:
        service_name: Display name used in the message.
        usage_frequency: "low" | "medium" | "high" | "unknown" | None
        annual_cost: Annualized cost of the subscription.
        warning_threshold: Annual cost above which medium-usage services get
            an annual-billing hint. Defaults to billing.annual_cost_warning_usd.

    Returns:
        Recommendation text, or None when there is nothing to suggest.
    """
    if not usage_frequency or usage_frequency == "unknown":
        return None

    if usage_frequency == "low":
        return (
            f"Consider cancelling {service_name} - you could save "
            f"${annual_cost:.2f}/year with low usage."
        )

    if warning_threshold is None:
        warning_threshold = get_billing_config()["annual_cost_warning_usd"]

    if usage_frequency == "medium" and annual_cost > warning_threshold:
        return (
            f"Look for annual billing discounts for {service_name} - "
            f"many services offer 15-20% off."
        )

    return None


def determine_status(
    trial_end_date: Optional[datetime],
    cancelled_at: Optional[datetime],
    end_date: Optional[datetime],
    now: datetime | None = None,
) -> str:
    """
    Subscription status by strict priority: cancelled > expired > trial > active.
    """
    if now is None:
        now = datetime.now()

    if cancelled_at:
        return "cancelled"
    if end_date and end_date < now:
        return "expired"
    if trial_end_date and trial_end_date > now:
        return "trial"
    return "active"
