"""
summary_report.py
------------------
Dashboard summaries over caller-supplied snapshots.

Two reports:
    1. Recurring summary: monthly and annual outlay of confirmed patterns,
       detected-but-unconfirmed count, charges still expected this month.
    2. Subscription summary: totals over active and trial subscriptions,
       per-category monthly totals, status counts, billings due this month,
       and subscriptions carrying a savings recommendation.

Monthly equivalents and list limits come from config.yaml. Both reports are
pure functions of their input and `now`.
"""

import calendar
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List

import pandas as pd

from core.billing import round_half_up
from core.models import SUBSCRIPTION_STATUSES, RecurringPattern, SubscriptionRecord
from config.config_loader import get_reporting_config


@dataclass
class UpcomingCharge:
    """A charge expected between now and the end of the current month."""
    item_id: str
    name: str
    amount: float
    currency: str
    due_date: datetime
    days_until: int


@dataclass
class CategoryTotal:
    category: str
    count: int
    monthly_total: float


@dataclass
class SavingsOpportunity:
    subscription_id: str
    service_name: str
    recommendation: str
    annual_cost: float


@dataclass
class RecurringSummary:
    total_monthly: float
    total_annual: float
    active_count: int                # Confirmed patterns
    detected_count: int              # Awaiting confirmation
    upcoming_this_month: List[UpcomingCharge] = field(default_factory=list)


@dataclass
class SubscriptionSummary:
    total_monthly: float
    total_annual: float
    active_count: int
    trial_count: int
    paused_count: int
    cancelled_count: int
    by_category: List[CategoryTotal] = field(default_factory=list)
    upcoming_this_month: List[UpcomingCharge] = field(default_factory=list)
    savings_opportunities: List[SavingsOpportunity] = field(default_factory=list)


class SummaryReporter:
    """
    Builds recurring-pattern and subscription summaries.

    Usage:
        reporter = SummaryReporter()
        recurring = reporter.summarize_patterns(patterns)
        subscriptions = reporter.summarize_subscriptions(subscription_records)
    """

    def __init__(self):
        self.config = get_reporting_config()
        self.monthly_equivalents = self.config["monthly_equivalents"]
        self.upcoming_limit = self.config["upcoming_limit"]
        self.savings_limit = self.config["savings_limit"]

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def summarize_patterns(
        self, patterns: Iterable[RecurringPattern], now: datetime | None = None
    ) -> RecurringSummary:
        now = now or datetime.now()
        patterns = list(patterns)
        confirmed = [p for p in patterns if p.status == "confirmed"]

        df = pd.DataFrame(
            {
                "amount": [p.expected_amount for p in confirmed],
                "frequency": [p.frequency for p in confirmed],
            },
            columns=["amount", "frequency"],
        )
        # Unknown frequencies map to NaN and drop out of the sum
        monthly = (df["amount"].astype(float) * df["frequency"].map(self.monthly_equivalents)).sum()
        total_monthly = float(monthly) if not df.empty else 0.0

        upcoming = self._upcoming(
            (
                (p.pattern_id, p.merchant_name, p.expected_amount, p.currency, p.next_expected)
                for p in confirmed
            ),
            now,
        )

        return RecurringSummary(
            total_monthly=round_half_up(total_monthly),
            total_annual=round_half_up(total_monthly * 12),
            active_count=len(confirmed),
            detected_count=sum(1 for p in patterns if p.status == "detected"),
            upcoming_this_month=upcoming,
        )

    def summarize_subscriptions(
        self, subscriptions: Iterable[SubscriptionRecord], now: datetime | None = None
    ) -> SubscriptionSummary:
        now = now or datetime.now()
        subscriptions = list(subscriptions)

        df = pd.DataFrame(
            {
                "category": [s.category for s in subscriptions],
                "status": [s.status for s in subscriptions],
                "annual_cost": [float(s.annual_cost) for s in subscriptions],
            },
            columns=["category", "status", "annual_cost"],
        )
        df["monthly_equivalent"] = df["annual_cost"] / 12

        billed = df[df["status"].isin(["active", "trial"])]
        total_monthly = float(billed["monthly_equivalent"].sum()) if not billed.empty else 0.0
        total_annual = float(billed["annual_cost"].sum()) if not billed.empty else 0.0

        by_category = [
            CategoryTotal(
                category=category,
                count=int(len(rows)),
                monthly_total=round_half_up(float(rows["monthly_equivalent"].sum())),
            )
            for category, rows in billed.groupby("category", sort=False)
        ]

        status_counts = (
            df["status"].value_counts().reindex(list(SUBSCRIPTION_STATUSES), fill_value=0).to_dict()
        )

        active = [s for s in subscriptions if s.status == "active"]
        upcoming = self._upcoming(
            (
                (s.subscription_id, s.service_name, s.amount, s.currency, s.next_billing_date)
                for s in active
            ),
            now,
        )

        savings = [
            SavingsOpportunity(
                subscription_id=s.subscription_id,
                service_name=s.service_name,
                recommendation=s.savings_recommendation,
                annual_cost=float(s.annual_cost),
            )
            for s in active
            if s.savings_recommendation
        ][: self.savings_limit]

        return SubscriptionSummary(
            total_monthly=round_half_up(total_monthly),
            total_annual=round_half_up(total_annual),
            active_count=int(status_counts.get("active", 0)),
            trial_count=int(status_counts.get("trial", 0)),
            paused_count=int(status_counts.get("paused", 0)),
            cancelled_count=int(status_counts.get("cancelled", 0)),
            by_category=by_category,
            upcoming_this_month=upcoming,
            savings_opportunities=savings,
        )

    # -------------------------------------------------------------------------
    # INTERNAL: UPCOMING CHARGES
    # -------------------------------------------------------------------------

    def _upcoming(self, items, now: datetime) -> List[UpcomingCharge]:
        """
        Charges due between now and the last moment of the current month,
        soonest first, capped at upcoming_limit.

        Args:
            items: (id, name, amount, currency, due_date) tuples.
        """
        due = []
        for item_id, name, amount, currency, due_date in items:
            if due_date is None:
                continue
            local_now = self._in_timezone_of(now, due_date)
            if local_now <= due_date <= self._end_of_month(local_now):
                due.append((due_date - local_now, item_id, name, amount, currency, due_date))
        due.sort(key=lambda item: item[0])

        return [
            UpcomingCharge(
                item_id=item_id,
                name=name,
                amount=float(amount),
                currency=currency,
                due_date=due_date,
                days_until=math.ceil(remaining.total_seconds() / 86400),
            )
            for remaining, item_id, name, amount, currency, due_date in due[: self.upcoming_limit]
        ]

    @staticmethod
    def _in_timezone_of(now: datetime, due_date: datetime) -> datetime:
        """
        `now` expressed like `due_date`: a naive `now` is read as wall time in
        the due date's zone, an aware `now` against a naive due date becomes
        naive UTC.
        """
        if due_date.tzinfo is not None:
            if now.tzinfo is None:
                return now.replace(tzinfo=due_date.tzinfo)
            return now.astimezone(due_date.tzinfo)
        if now.tzinfo is not None:
            return now.astimezone(timezone.utc).replace(tzinfo=None)
        return now

    @staticmethod
    def _end_of_month(now: datetime) -> datetime:
        last_day = calendar.monthrange(now.year, now.month)[1]
        return now.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999999)
