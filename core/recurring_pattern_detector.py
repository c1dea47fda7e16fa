"""
recurring_pattern_detector.py
------------------------------
Batch recurring-pattern detection for one scope (user / space).

It only answers one question:

    "Which not-yet-tracked merchants in this transaction window repeat on a
     regular cadence with a stable amount?"

Output: a list of DetectedPattern, ranked by confidence. The caller decides
whether to store them as `detected` RecurringPatterns (see
to_recurring_pattern) and later confirms or dismisses them.

Design decisions:
    - Grouping key is the normalized merchant (see merchant_normalizer).
      Transactions without a merchant label fall back to one derived from
      the description; rows yielding no merchant at all are dropped.
    - Transactions already linked to a pattern, and pending ones, are ignored.
    - The lookback window ends at `as_of`, which defaults to the latest
      transaction date in the batch, so results depend only on the input.
    - All thresholds and tolerances are read from config.yaml.
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Iterable, List

import pandas as pd

from core.frequency_detector import calculate_next_expected
from core.merchant_normalizer import normalize_merchant, resolve_merchant
from core.models import DetectedPattern, MerchantGroup, RecurringPattern, TransactionRecord
from core.pattern_analyzer import PatternAnalyzer
from config.config_loader import get_recurring_detection_config

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["transaction_id", "transaction_date", "amount", "description"]
OPTIONAL_COLUMN_DEFAULTS = {
    "merchant": None,
    "currency": "USD",
    "recurring_id": None,
    "pending": False,
}


class RecurringPatternDetector:
    """
    Detects new recurring patterns in a transaction batch.

    Usage:
        detector = RecurringPatternDetector()
        patterns = detector.detect(transactions_df, tracked_merchants=["Netflix"])
    """

    def __init__(self):
        self.config = get_recurring_detection_config()
        self.min_occurrences = self.config["min_occurrences"]
        self.min_confidence = self.config["min_confidence"]
        self.analyzer = PatternAnalyzer(self.config)

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def detect(
        self,
        transactions: pd.DataFrame | Iterable[TransactionRecord],
        tracked_merchants: Iterable[str] = (),
        lookback_days: int | None = None,
        as_of: datetime | None = None,
    ) -> List[DetectedPattern]:
        """
        Run pattern detection on a transaction batch.

        Args:
            transactions: DataFrame with columns transaction_id,
                transaction_date, amount, description and optionally
                merchant, currency, recurring_id, pending. A list of
                TransactionRecord is accepted as well.
            tracked_merchants: Merchant names of patterns already tracked
                (status confirmed or detected). Their groups are skipped.
            lookback_days: Override the default lookback window.
            as_of: End of the lookback window. Defaults to the latest
                transaction date.

        Returns:
            DetectedPattern list, highest confidence first.
        """
        df = self._prepare(transactions, lookback_days, as_of)

        if df.empty:
            return []

        tracked_keys = {normalize_merchant(name) for name in tracked_merchants if name}

        results: List[DetectedPattern] = []
        for group in self._group_by_merchant(df):
            if group.key in tracked_keys:
                logger.debug(f"Skipping '{group.display_name}': already tracked.")
                continue

            # Filter: minimum occurrences gate
            if len(group.transactions) < self.min_occurrences:
                continue

            pattern = self.analyzer.analyze(group)
            if pattern is not None and pattern.confidence >= self.min_confidence:
                results.append(pattern)

        # Stable: equal confidences keep grouping order
        results.sort(key=lambda p: p.confidence, reverse=True)

        logger.info(
            f"Detected {len(results):,} recurring patterns from {len(df):,} transactions."
        )
        return results

    # -------------------------------------------------------------------------
    # INTERNAL: DATA PREPARATION
    # -------------------------------------------------------------------------

    def _prepare(
        self,
        transactions: pd.DataFrame | Iterable[TransactionRecord],
        lookback_days: int | None,
        as_of: datetime | None,
    ) -> pd.DataFrame:
        """
        Validates input, parses dates, drops linked and pending rows, and
        applies the lookback window.
        """
        if isinstance(transactions, pd.DataFrame):
            df = transactions.copy()
        else:
            df = pd.DataFrame([asdict(t) for t in transactions], columns=[
                *REQUIRED_COLUMNS, *OPTIONAL_COLUMN_DEFAULTS.keys()
            ])

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Missing required columns: {missing}")

        for column, default in OPTIONAL_COLUMN_DEFAULTS.items():
            if column not in df.columns:
                df[column] = default

        if df.empty:
            return df

        # Parse dates if not already datetime
        if not pd.api.types.is_datetime64_any_dtype(df["transaction_date"]):
            df["transaction_date"] = pd.to_datetime(df["transaction_date"])

        df = df[~df["pending"].fillna(False).astype(bool)]
        df = df[df["recurring_id"].isna()]

        if df.empty:
            return df

        # Apply lookback window
        if lookback_days is None:
            lookback_days = self.config["default_lookback_days"]

        if as_of is not None:
            window_end = _align_to_column(as_of, df["transaction_date"])
        else:
            window_end = df["transaction_date"].max()
        cutoff = window_end - pd.Timedelta(days=lookback_days)
        df = df[(df["transaction_date"] >= cutoff) & (df["transaction_date"] <= window_end)]

        return df.sort_values("transaction_date", kind="mergesort").reset_index(drop=True)

    # -------------------------------------------------------------------------
    # INTERNAL: GROUPING
    # -------------------------------------------------------------------------

    def _group_by_merchant(self, df: pd.DataFrame) -> List[MerchantGroup]:
        """
        Groups rows by normalized merchant key, in first-seen order.

        The group's display name and currency come from its first row.
        """
        df = df.copy()
        df["merchant_name"] = [
            resolve_merchant(_clean_text(merchant), _clean_text(description))
            for merchant, description in zip(df["merchant"], df["description"])
        ]
        df = df[df["merchant_name"].notna()]
        if df.empty:
            return []
        df["merchant_key"] = df["merchant_name"].map(normalize_merchant)

        groups: List[MerchantGroup] = []
        for key, rows in df.groupby("merchant_key", sort=False):
            first = rows.iloc[0]
            groups.append(MerchantGroup(
                key=key,
                display_name=first["merchant_name"],
                currency=_clean_text(first["currency"]) or "USD",
                transactions=[_row_to_record(row) for row in rows.itertuples(index=False)],
            ))
        return groups


def to_recurring_pattern(pattern: DetectedPattern, pattern_id: str) -> RecurringPattern:
    """
    Builds the `detected` RecurringPattern a caller stores for a new candidate.
    """
    return RecurringPattern(
        pattern_id=pattern_id,
        merchant_name=pattern.merchant_name,
        expected_amount=pattern.average_amount,
        amount_variance=pattern.amount_variance,
        frequency=pattern.suggested_frequency,
        status="detected",
        currency=pattern.currency,
        last_occurrence=pattern.last_occurrence,
        next_expected=calculate_next_expected(pattern.last_occurrence, pattern.suggested_frequency),
        occurrence_count=pattern.occurrence_count,
        confidence=pattern.confidence,
    )


def _align_to_column(value: datetime, dates: pd.Series) -> pd.Timestamp:
    """
    Brings a window bound into the timezone of the date column.

    A naive bound on a tz-aware column is read as wall time in that zone; an
    aware bound on a naive column is converted to naive UTC.
    """
    ts = pd.Timestamp(value)
    column_tz = dates.dt.tz
    if column_tz is not None:
        return ts.tz_localize(column_tz) if ts.tzinfo is None else ts.tz_convert(column_tz)
    return ts.tz_convert(None) if ts.tzinfo is not None else ts


def _clean_text(value) -> str | None:
    """Empty strings and NaN cells read as missing."""
    if value is None or (isinstance(value, float) and pd.isna(value)) or value == "":
        return None
    return str(value)


def _row_to_record(row) -> TransactionRecord:
    return TransactionRecord(
        transaction_id=str(row.transaction_id),
        transaction_date=row.transaction_date.to_pydatetime(),
        amount=float(row.amount),
        description=_clean_text(row.description) or "",
        merchant=_clean_text(row.merchant),
        currency=_clean_text(row.currency) or "USD",
        recurring_id=None,
        pending=False,
    )
