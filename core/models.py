"""
models.py
----------
Core domain models. These are the typed contracts between engine layers.

- TransactionRecord: Input. One booked transaction, read-only to the engine.

- DetectedPattern: Output of the detection layer. A candidate recurring
  pattern that the caller may store as a `detected` RecurringPattern.

- RecurringPattern: A persisted, status-bearing pattern supplied by the
  caller. The engine never mutates it; updates come back as new values.

- PatternMatch: Output of the matcher. Linkage plus pattern-state deltas.

- SubscriptionClassification: Output of a subscription classifier.

- SubscriptionRecord: A persisted subscription supplied by the caller for
  summary reporting.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


PATTERN_STATUSES = ("detected", "confirmed", "paused", "dismissed")
SUBSCRIPTION_STATUSES = ("active", "trial", "paused", "cancelled", "expired")


@dataclass(frozen=True)
class TransactionRecord:
    """A single booked transaction as supplied by the caller."""

    transaction_id: str
    transaction_date: datetime
    amount: float                    # Signed. Expenses are usually negative.
    description: str
    merchant: Optional[str] = None
    currency: str = "USD"
    recurring_id: Optional[str] = None   # Set when already linked to a pattern.
    pending: bool = False


@dataclass
class MerchantGroup:
    """Transactions sharing one normalized merchant key. Rebuilt every run."""

    key: str
    display_name: str                # First-seen raw merchant or description.
    currency: str
    transactions: list[TransactionRecord] = field(default_factory=list)


@dataclass(frozen=True)
class FrequencyResult:
    frequency: str
    score: float                     # Combined score 0.0 – 1.0
    average_interval_days: float


@dataclass(frozen=True)
class DetectedPattern:
    """
    Candidate recurring pattern produced by RecurringPatternDetector.

    Never mutated after creation. A fresh detection run regenerates the set.
    """

    merchant_name: str
    transactions: tuple[TransactionRecord, ...]   # Sorted by date ascending.
    suggested_frequency: str
    average_amount: float
    amount_variance: float           # Coefficient of variation of absolute amounts.
    confidence: float                # 0.0 – 1.0
    first_occurrence: datetime
    last_occurrence: datetime
    occurrence_count: int
    currency: str

    @property
    def transaction_ids(self) -> list[str]:
        return [t.transaction_id for t in self.transactions]


@dataclass(frozen=True)
class RecurringPattern:
    """
    A tracked recurring pattern owned by the caller.

    Status transitions (detected -> confirmed / dismissed, pause) happen
    outside the engine. Only `confirmed` patterns take part in matching and
    classification.
    """

    pattern_id: str
    merchant_name: str
    expected_amount: float
    amount_variance: float
    frequency: str
    status: str = "detected"
    currency: str = "USD"
    last_occurrence: Optional[datetime] = None
    next_expected: Optional[datetime] = None
    occurrence_count: int = 0
    confidence: float = 0.0
    subscription_id: Optional[str] = None


@dataclass(frozen=True)
class PatternMatch:
    """Result of linking one transaction to a confirmed pattern."""

    pattern_id: str
    transaction_id: str
    last_occurrence: datetime
    next_expected: datetime
    occurrence_count: int            # New count, after the increment.
    updated_pattern: RecurringPattern


@dataclass
class SubscriptionClassification:
    """
    Subscription derived from a confirmed pattern.

    Returned to the caller for storage; the engine keeps no copy.
    """

    recurring_id: str
    service_name: str
    amount: float
    currency: str
    billing_cycle: str
    category: str
    confidence: float
    annual_cost: float
    source: str                      # "catalog" | "heuristic"
    service_url: Optional[str] = None
    service_icon: Optional[str] = None
    last_billing_date: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    savings_recommendation: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionRecord:
    """A persisted subscription, used only as summary input."""

    subscription_id: str
    service_name: str
    amount: float
    currency: str
    billing_cycle: str
    category: str
    status: str
    annual_cost: float
    next_billing_date: Optional[datetime] = None
    savings_recommendation: Optional[str] = None
