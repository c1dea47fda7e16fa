"""
pipeline.py
------------
Main orchestration layer. Wires together:
    1. RecurringPatternDetector  →  produces ranked DetectedPatterns
    2. PatternMatcher            →  links new transactions to confirmed patterns
    3. Subscription classifiers  →  turn confirmed patterns into subscriptions
    4. SummaryReporter           →  dashboard summaries
    5. Output serialization      →  DataFrames for CSV export

This is the single entry point for running the engine. Everything else
is internal machinery. The pipeline holds only read-only configuration, so
one instance can serve many scopes; detection and matching for the same
scope must still be serialized by the caller.

Usage:
    from pipeline import SubscriptionEnginePipeline

    pipeline = SubscriptionEnginePipeline()
    patterns = pipeline.detect(transactions_df, existing_patterns)
    match = pipeline.match(new_transaction, existing_patterns)
    subscriptions = pipeline.classify(existing_patterns)
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pandas as pd

from core.models import (
    DetectedPattern,
    PatternMatch,
    RecurringPattern,
    SubscriptionClassification,
    SubscriptionRecord,
    TransactionRecord,
)
from core.pattern_matcher import PatternMatcher
from core.recurring_pattern_detector import RecurringPatternDetector
from classifiers.subscription_classifiers import get_all_classifiers
from reporting.summary_report import RecurringSummary, SubscriptionSummary, SummaryReporter
from config.config_loader import load_config

logger = logging.getLogger(__name__)

TRACKED_STATUSES = ("confirmed", "detected")

PATTERN_COLUMNS = [
    "merchant_name", "suggested_frequency", "average_amount", "amount_variance",
    "confidence", "first_occurrence", "last_occurrence", "occurrence_count",
    "currency", "transaction_ids",
]

SUBSCRIPTION_COLUMNS = [
    "recurring_id", "service_name", "category", "billing_cycle", "amount",
    "currency", "annual_cost", "confidence", "source", "service_url",
    "service_icon", "last_billing_date", "next_billing_date",
    "savings_recommendation",
]


class SubscriptionEnginePipeline:
    """
    End-to-end recurring pattern and subscription pipeline.

    Orchestrates detection → matching → classification → reporting without
    exposing internal objects to callers.
    """

    def __init__(self, lookback_days: int | None = None):
        """
        Args:
            lookback_days: Override default lookback window from config.
        """
        self.config = load_config()
        self.lookback_days = lookback_days
        self.detector = RecurringPatternDetector()
        self.matcher = PatternMatcher()
        self.classifiers = get_all_classifiers()
        self.reporter = SummaryReporter()

        logger.info(
            f"Pipeline initialized. "
            f"Classifiers: {[c.source for c in self.classifiers]}. "
            f"Lookback: {lookback_days or self.config['recurring_detection']['default_lookback_days']} days."
        )

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def detect(
        self,
        transactions: pd.DataFrame | Iterable[TransactionRecord],
        existing_patterns: Iterable[RecurringPattern] = (),
        as_of: datetime | None = None,
    ) -> List[DetectedPattern]:
        """
        Detect new recurring patterns, skipping merchants already tracked by a
        confirmed or detected pattern.
        """
        tracked = [p.merchant_name for p in existing_patterns if p.status in TRACKED_STATUSES]
        patterns = self.detector.detect(
            transactions,
            tracked_merchants=tracked,
            lookback_days=self.lookback_days,
            as_of=as_of,
        )
        logger.info(f"Detection complete. Candidate patterns: {len(patterns):,}.")
        return patterns

    def match(
        self, transaction: TransactionRecord, patterns: Iterable[RecurringPattern]
    ) -> PatternMatch | None:
        """Link one new transaction to the first matching confirmed pattern."""
        return self.matcher.match(transaction, patterns)

    def classify(
        self,
        patterns: Iterable[RecurringPattern],
        usage_frequencies: Optional[Dict[str, str]] = None,
    ) -> List[SubscriptionClassification]:
        """
        Classify confirmed patterns that have no subscription yet.

        Args:
            patterns: Patterns for one scope. Non-confirmed patterns and
                patterns already linked to a subscription are ignored.
            usage_frequencies: Optional usage label per pattern_id, used for
                savings recommendations.

        Returns:
            One SubscriptionClassification per recognised pattern, highest
            pattern confidence first.
        """
        usage_frequencies = usage_frequencies or {}
        candidates = sorted(
            (p for p in patterns if p.status == "confirmed" and p.subscription_id is None),
            key=lambda p: p.confidence,
            reverse=True,
        )

        classifications: List[SubscriptionClassification] = []
        for pattern in candidates:
            usage = usage_frequencies.get(pattern.pattern_id)
            for classifier in self.classifiers:
                result = classifier.classify(pattern, usage)
                if result is not None:
                    classifications.append(result)
                    # A pattern maps to one subscription; first classifier wins
                    break

        logger.info(
            f"Classification complete. Subscriptions: {len(classifications):,} "
            f"from {len(candidates):,} confirmed patterns."
        )
        return classifications

    def summarize_patterns(
        self, patterns: Iterable[RecurringPattern], now: datetime | None = None
    ) -> RecurringSummary:
        return self.reporter.summarize_patterns(patterns, now)

    def summarize_subscriptions(
        self, subscriptions: Iterable[SubscriptionRecord], now: datetime | None = None
    ) -> SubscriptionSummary:
        return self.reporter.summarize_subscriptions(subscriptions, now)

    # -------------------------------------------------------------------------
    # OUTPUT SERIALIZATION
    # -------------------------------------------------------------------------

    @staticmethod
    def patterns_to_frame(patterns: List[DetectedPattern]) -> pd.DataFrame:
        """Flattens DetectedPatterns into one row per pattern, in rank order."""
        if not patterns:
            return pd.DataFrame(columns=PATTERN_COLUMNS)

        rows = []
        for p in patterns:
            rows.append({
                "merchant_name": p.merchant_name,
                "suggested_frequency": p.suggested_frequency,
                "average_amount": p.average_amount,
                "amount_variance": p.amount_variance,
                "confidence": p.confidence,
                "first_occurrence": _format_date(p.first_occurrence),
                "last_occurrence": _format_date(p.last_occurrence),
                "occurrence_count": p.occurrence_count,
                "currency": p.currency,
                "transaction_ids": "|".join(p.transaction_ids),
            })
        return pd.DataFrame(rows, columns=PATTERN_COLUMNS)

    @staticmethod
    def subscriptions_to_frame(classifications: List[SubscriptionClassification]) -> pd.DataFrame:
        if not classifications:
            return pd.DataFrame(columns=SUBSCRIPTION_COLUMNS)

        rows = []
        for c in classifications:
            rows.append({
                "recurring_id": c.recurring_id,
                "service_name": c.service_name,
                "category": c.category,
                "billing_cycle": c.billing_cycle,
                "amount": c.amount,
                "currency": c.currency,
                "annual_cost": c.annual_cost,
                "confidence": c.confidence,
                "source": c.source,
                "service_url": c.service_url,
                "service_icon": c.service_icon,
                "last_billing_date": _format_date(c.last_billing_date),
                "next_billing_date": _format_date(c.next_billing_date),
                "savings_recommendation": c.savings_recommendation,
            })
        return pd.DataFrame(rows, columns=SUBSCRIPTION_COLUMNS)


def _format_date(value) -> str | None:
    if value is None:
        return None
    return value.strftime("%Y-%m-%d") if hasattr(value, "strftime") else str(value)
