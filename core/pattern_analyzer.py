"""
pattern_analyzer.py
--------------------
Decides whether one merchant group is a recurring pattern.

Steps:
    1. Sort by date, compute consecutive gaps in fractional days.
    2. Frequency detection; reject below min_frequency_score.
    3. Amount consistency as the coefficient of variation of absolute
       amounts; reject above max_amount_variance.
    4. Confidence = 0.5 * frequency score
                  + 0.3 * (1 - min(cv, 1))
                  + 0.2 * min(occurrences / 12, 1)
    5. Round amount, variance and confidence to cents, half away from zero.

Weights and thresholds come from config.yaml.
"""

import logging

import numpy as np

from core.billing import round_half_up
from core.frequency_detector import FrequencyDetector
from core.models import DetectedPattern, MerchantGroup
from config.config_loader import get_recurring_detection_config

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


def coefficient_of_variation(values: np.ndarray) -> float:
    """Population std / mean. A zero mean (or no values) counts as maximal variance, 1.0."""
    if values.size == 0:
        return 1.0
    mean = float(values.mean())
    if mean == 0:
        return 1.0
    return float(values.std()) / mean


class PatternAnalyzer:
    """
    Turns a MerchantGroup into a DetectedPattern, or rejects it.

    Usage:
        analyzer = PatternAnalyzer()
        pattern = analyzer.analyze(group)   # None when not recurring
    """

    def __init__(self, config: dict | None = None):
        self.config = config or get_recurring_detection_config()
        self.min_occurrences = self.config["min_occurrences"]
        self.min_frequency_score = self.config["min_frequency_score"]
        self.max_amount_variance = self.config["max_amount_variance"]
        self.weights = self.config["confidence_scoring"]
        self.occurrence_saturation = self.config["occurrence_saturation"]
        self.frequency_detector = FrequencyDetector(self.config)

    def analyze(self, group: MerchantGroup) -> DetectedPattern | None:
        if len(group.transactions) < self.min_occurrences:
            return None

        ordered = sorted(group.transactions, key=lambda t: t.transaction_date)

        intervals = [
            (later.transaction_date - earlier.transaction_date).total_seconds() / SECONDS_PER_DAY
            for earlier, later in zip(ordered, ordered[1:])
        ]

        frequency = self.frequency_detector.detect(intervals)
        if frequency is None or frequency.score < self.min_frequency_score:
            logger.debug(f"Rejected '{group.display_name}': no regular frequency.")
            return None

        amounts = np.abs(np.array([t.amount for t in ordered], dtype=float))
        average_amount = float(amounts.mean())
        amount_variance = coefficient_of_variation(amounts)

        if amount_variance > self.max_amount_variance:
            logger.debug(
                f"Rejected '{group.display_name}': amount variance {amount_variance:.2f}."
            )
            return None

        confidence = self._compute_confidence(frequency.score, amount_variance, len(ordered))

        return DetectedPattern(
            merchant_name=group.display_name,
            transactions=tuple(ordered),
            suggested_frequency=frequency.frequency,
            average_amount=round_half_up(average_amount),
            amount_variance=round_half_up(amount_variance),
            confidence=round_half_up(confidence),
            first_occurrence=ordered[0].transaction_date,
            last_occurrence=ordered[-1].transaction_date,
            occurrence_count=len(ordered),
            currency=group.currency,
        )

    def _compute_confidence(
        self, frequency_score: float, amount_variance: float, occurrence_count: int
    ) -> float:
        w = self.weights
        occurrence_score = min(occurrence_count / self.occurrence_saturation, 1.0)

        confidence = (
            w["frequency_weight"] * frequency_score
            + w["amount_weight"] * (1.0 - min(amount_variance, 1.0))
            + w["occurrence_weight"] * occurrence_score
        )
        return min(confidence, 1.0)
