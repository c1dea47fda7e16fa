"""
frequency_detector.py
----------------------
Infers a canonical recurrence frequency from the gaps between occurrences.

Canonical frequencies are fixed day-counts, not calendar-aware: "monthly" is
exactly 30 days and "yearly" exactly 365.

Scoring, per frequency with expected day-count E:
    window        = [E - E * tolerance, E + E * tolerance]
    match_score   = share of intervals inside the window
    average_score = max(0, 1 - |mean(intervals) - E| / E)
    combined      = match_weight * match_score + average_weight * average_score

The highest combined score wins. Ties keep the earlier frequency in
CANONICAL_FREQUENCIES.
"""

from datetime import datetime, timedelta
from typing import Sequence

import numpy as np

from core.models import FrequencyResult
from config.config_loader import get_recurring_detection_config


# Declaration order is the tie-break order.
CANONICAL_FREQUENCIES: tuple[tuple[str, int], ...] = (
    ("daily", 1),
    ("weekly", 7),
    ("biweekly", 14),
    ("monthly", 30),
    ("quarterly", 90),
    ("yearly", 365),
)
_FREQUENCY_DAYS = dict(CANONICAL_FREQUENCIES)


def canonical_days(frequency: str) -> int:
    """
    Expected days between occurrences for a canonical frequency.

    Raises:
        ValueError: If frequency is not canonical.
    """
    if frequency not in _FREQUENCY_DAYS:
        raise ValueError(
            f"Unknown frequency '{frequency}'. "
            f"Available: {[name for name, _ in CANONICAL_FREQUENCIES]}"
        )
    return _FREQUENCY_DAYS[frequency]


def calculate_next_expected(last_occurrence: datetime, frequency: str) -> datetime:
    """last_occurrence plus exactly the canonical day-count."""
    return last_occurrence + timedelta(days=canonical_days(frequency))


class FrequencyDetector:
    """
    Scores interval lists against every canonical frequency.

    Usage:
        detector = FrequencyDetector()
        result = detector.detect([30.0, 31.0, 29.0])   # -> monthly
    """

    def __init__(self, config: dict | None = None):
        self.config = config or get_recurring_detection_config()
        self.tolerance = self.config["frequency_tolerance"]
        self.match_weight = self.config["frequency_scoring"]["match_weight"]
        self.average_weight = self.config["frequency_scoring"]["average_weight"]

    def detect(self, intervals: Sequence[float]) -> FrequencyResult | None:
        """
        Returns:
            Best-scoring FrequencyResult, or None for an empty interval list
            or when no frequency scores above zero.
        """
        gaps = np.asarray(intervals, dtype=float)
        if gaps.size == 0:
            return None

        average_interval = float(gaps.mean())
        best: FrequencyResult | None = None
        best_score = 0.0

        for frequency, expected_days in CANONICAL_FREQUENCIES:
            tolerance = expected_days * self.tolerance
            min_days = expected_days - tolerance
            max_days = expected_days + tolerance

            in_window = np.sum((gaps >= min_days) & (gaps <= max_days))
            match_score = float(in_window) / gaps.size

            average_deviation = abs(average_interval - expected_days) / expected_days
            average_score = max(0.0, 1.0 - average_deviation)

            combined = self.match_weight * match_score + self.average_weight * average_score

            # Strict comparison keeps the first-declared frequency on ties
            if combined > best_score:
                best_score = combined
                best = FrequencyResult(
                    frequency=frequency,
                    score=combined,
                    average_interval_days=average_interval,
                )

        return best
