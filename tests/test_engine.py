"""
test_engine.py
---------------
Test suite for the recurring pattern engine.

Run from the project root:
    python -m pytest tests/test_engine.py -v

Tests are organized by layer:
    - Config
    - Merchant Normalizer
    - Frequency Detector
    - Pattern Analyzer
    - Recurring Pattern Detector
    - Pattern Matcher
    - Full Pipeline (integration)
    - CLI
"""

import sys
import os
from dataclasses import replace
import pytest
import pandas as pd
import numpy as np
from datetime import datetime, timedelta, timezone

# Ensure the project root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from config.config_loader import load_config, get_recurring_detection_config, reset_config
from core.models import MerchantGroup, RecurringPattern, TransactionRecord
from core.merchant_normalizer import (
    extract_merchant_from_description,
    normalize_merchant,
    resolve_merchant,
)
from core.frequency_detector import FrequencyDetector, calculate_next_expected, canonical_days
from core.pattern_analyzer import PatternAnalyzer, coefficient_of_variation
from core.recurring_pattern_detector import RecurringPatternDetector, _clean_text, to_recurring_pattern
from core.pattern_matcher import PatternMatcher
from pipeline import SubscriptionEnginePipeline, PATTERN_COLUMNS
import main as cli


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def reset_config_cache():
    """Clears config cache before each test for isolation."""
    reset_config()
    yield
    reset_config()


END_DATE = datetime(2024, 6, 30)


def _make_txns(
    merchant: str | None = "Netflix",
    amounts: list[float] = (50.0, 50.0, 50.0, 50.0),
    offsets: list[int] = (-90, -60, -30, 0),
    end_date: datetime = END_DATE,
    description: str | None = None,
    start_txn_id: int = 1,
) -> pd.DataFrame:
    """Helper: one merchant's transactions at the given day offsets from end_date."""
    rows = []
    for i, (amount, offset) in enumerate(zip(amounts, offsets)):
        rows.append({
            "transaction_id": f"txn-{start_txn_id + i}",
            "transaction_date": end_date + timedelta(days=offset),
            "amount": amount,
            "description": description or (merchant.upper() + " PMT" if merchant else ""),
            "merchant": merchant,
        })
    return pd.DataFrame(rows)


def _make_txn(
    merchant: str | None = "Netflix",
    amount: float = 15.99,
    date: datetime = END_DATE,
    description: str = "NETFLIX.COM",
    transaction_id: str = "txn-new",
) -> TransactionRecord:
    """Helper: a single incoming transaction for matcher tests."""
    return TransactionRecord(
        transaction_id=transaction_id,
        transaction_date=date,
        amount=amount,
        description=description,
        merchant=merchant,
    )


def _make_pattern(
    pattern_id: str = "pat-1",
    merchant_name: str = "Netflix",
    expected_amount: float = 15.99,
    amount_variance: float = 0.1,
    frequency: str = "monthly",
    status: str = "confirmed",
    occurrence_count: int = 5,
    confidence: float = 0.85,
) -> RecurringPattern:
    """Helper: creates a RecurringPattern directly for matcher tests."""
    return RecurringPattern(
        pattern_id=pattern_id,
        merchant_name=merchant_name,
        expected_amount=expected_amount,
        amount_variance=amount_variance,
        frequency=frequency,
        status=status,
        last_occurrence=datetime(2024, 5, 31),
        next_expected=datetime(2024, 6, 30),
        occurrence_count=occurrence_count,
        confidence=confidence,
    )


# =============================================================================
# CONFIG TESTS
# =============================================================================

class TestConfig:
    def test_config_loads_successfully(self):
        config = load_config()
        assert "recurring_detection" in config
        assert "subscription_classification" in config
        assert "known_services" in config
        assert "billing" in config
        assert "reporting" in config

    def test_detection_weights_sum_to_one(self):
        cfg = get_recurring_detection_config()
        assert sum(cfg["confidence_scoring"].values()) == pytest.approx(1.0)
        assert sum(cfg["frequency_scoring"].values()) == pytest.approx(1.0)

    def test_missing_config_file_raises(self):
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")

    def test_config_is_cached(self):
        assert load_config() is load_config()


# =============================================================================
# MERCHANT NORMALIZER TESTS
# =============================================================================

class TestMerchantNormalizer:
    def test_strips_rail_prefix_and_reference_number(self):
        assert extract_merchant_from_description("POS SPOTIFY USA 123456") == "SPOTIFY USA"

    def test_strips_state_code_suffix(self):
        # Digits before the state code survive: each strip runs once, in order
        assert extract_merchant_from_description("NETFLIX.COM 8884567 CA") == "NETFLIX.COM 8884567"

    def test_lowercase_state_code_is_kept(self):
        assert extract_merchant_from_description("Corner Shop ca") == "Corner Shop ca"

    def test_strips_trailing_rail_word(self):
        assert extract_merchant_from_description("HULU DEBIT") == "HULU"

    def test_too_short_returns_none(self):
        assert extract_merchant_from_description("POS AB") is None
        assert extract_merchant_from_description("ab") is None

    def test_empty_description_returns_none(self):
        assert extract_merchant_from_description("") is None
        assert extract_merchant_from_description(None) is None

    def test_resolve_prefers_explicit_merchant(self):
        assert resolve_merchant("Netflix", "POS SPOTIFY USA 123456") == "Netflix"
        assert resolve_merchant(None, "POS SPOTIFY USA 123456") == "SPOTIFY USA"

    def test_normalize_lowercases_and_strips_punctuation(self):
        assert normalize_merchant("Netflix.com") == "netflixcom"
        assert normalize_merchant("DISNEY+ Plus") == "disneyplus"

    def test_normalize_truncates_to_twenty_characters(self):
        key = normalize_merchant("Acme Insurance Company Auto")
        assert key == "acmeinsurancecompany"
        assert len(key) == 20

    def test_long_names_collide_on_prefix(self):
        assert normalize_merchant("Acme Insurance Company Auto") == \
            normalize_merchant("Acme Insurance Company Home")


# =============================================================================
# FREQUENCY DETECTOR TESTS
# =============================================================================

class TestFrequencyDetector:
    def test_detects_monthly(self):
        result = FrequencyDetector().detect([30.0, 31.0, 29.0])
        assert result is not None
        assert result.frequency == "monthly"
        assert result.score == pytest.approx(1.0)
        assert result.average_interval_days == pytest.approx(30.0)

    def test_detects_weekly(self):
        result = FrequencyDetector().detect([7.0, 7.0, 7.0, 7.0])
        assert result.frequency == "weekly"

    def test_detects_yearly(self):
        result = FrequencyDetector().detect([365.0, 366.0])
        assert result.frequency == "yearly"

    def test_partial_match_scores_below_one(self):
        result = FrequencyDetector().detect([30.0, 30.0, 60.0])
        assert result.frequency == "monthly"
        assert result.score < 1.0

    def test_empty_intervals_returns_none(self):
        assert FrequencyDetector().detect([]) is None

    def test_no_positive_score_returns_none(self):
        # Far beyond every window and more than 2x the longest day-count
        assert FrequencyDetector().detect([5000.0]) is None

    @pytest.mark.parametrize("frequency, days", [
        ("daily", 1),
        ("weekly", 7),
        ("biweekly", 14),
        ("monthly", 30),
        ("quarterly", 90),
        ("yearly", 365),
    ])
    def test_next_expected_adds_canonical_days(self, frequency, days):
        last = datetime(2024, 1, 31, 9, 30)
        assert canonical_days(frequency) == days
        assert calculate_next_expected(last, frequency) == last + timedelta(days=days)

    def test_unknown_frequency_raises(self):
        with pytest.raises(ValueError, match="Unknown frequency"):
            canonical_days("fortnightly")


# =============================================================================
# PATTERN ANALYZER TESTS
# =============================================================================

class TestPatternAnalyzer:
    def _group(self, amounts, offsets, name="Netflix") -> MerchantGroup:
        txns = [
            TransactionRecord(
                transaction_id=f"txn-{i}",
                transaction_date=END_DATE + timedelta(days=offset),
                amount=amount,
                description=name,
                merchant=name,
            )
            for i, (amount, offset) in enumerate(zip(amounts, offsets))
        ]
        return MerchantGroup(key=normalize_merchant(name), display_name=name,
                             currency="USD", transactions=txns)

    def test_coefficient_of_variation(self):
        assert coefficient_of_variation(np.array([50.0, 50.0, 50.0])) == pytest.approx(0.0)
        assert coefficient_of_variation(np.array([10.0, 100.0, 50.0])) == pytest.approx(0.69, abs=0.01)

    def test_coefficient_of_variation_degenerate_inputs(self):
        assert coefficient_of_variation(np.array([])) == 1.0
        assert coefficient_of_variation(np.array([0.0, 0.0])) == 1.0

    def test_confidence_formula(self):
        pattern = PatternAnalyzer().analyze(self._group([50.0] * 4, [-90, -60, -30, 0]))
        # 0.5 * 1.0 + 0.3 * 1.0 + 0.2 * (4 / 12)
        assert pattern.confidence == pytest.approx(0.87)
        assert pattern.amount_variance == pytest.approx(0.0)

    def test_confidence_saturates_with_occurrences(self):
        offsets = [-30 * i for i in range(14, -1, -1)]
        pattern = PatternAnalyzer().analyze(self._group([50.0] * 15, offsets))
        assert pattern.confidence == pytest.approx(1.0)

    def test_sorts_unordered_transactions(self):
        pattern = PatternAnalyzer().analyze(self._group([50.0] * 3, [0, -60, -30]))
        assert pattern.first_occurrence == END_DATE - timedelta(days=60)
        assert pattern.last_occurrence == END_DATE
        assert [t.transaction_date for t in pattern.transactions] == sorted(
            t.transaction_date for t in pattern.transactions
        )

    def test_uses_absolute_amounts(self):
        pattern = PatternAnalyzer().analyze(self._group([-15.99] * 3, [-60, -30, 0]))
        assert pattern.average_amount == pytest.approx(15.99)

    def test_rejects_high_amount_variance(self):
        assert PatternAnalyzer().analyze(self._group([10.0, 100.0, 50.0], [-60, -30, 0])) is None

    def test_rejects_irregular_intervals(self):
        assert PatternAnalyzer().analyze(self._group([20.0] * 3, [-4900, -100, 0])) is None

    def test_weak_candidate_keeps_low_confidence(self):
        # Half the gaps are monthly and the amounts drift: passes every gate but scores low
        pattern = PatternAnalyzer().analyze(self._group([10.0, 10.0, 25.0], [-90, -60, 0], "Acme"))
        assert pattern is not None
        assert pattern.suggested_frequency == "monthly"
        assert pattern.confidence == pytest.approx(0.46)

    def test_rejects_too_few_transactions(self):
        assert PatternAnalyzer().analyze(self._group([50.0] * 2, [-30, 0])) is None


# =============================================================================
# RECURRING PATTERN DETECTOR TESTS
# =============================================================================

class TestRecurringPatternDetector:
    def test_detects_monthly_netflix(self):
        results = RecurringPatternDetector().detect(_make_txns())
        assert len(results) == 1
        pattern = results[0]
        assert pattern.merchant_name == "Netflix"
        assert pattern.suggested_frequency == "monthly"
        assert pattern.average_amount == 50.0
        assert pattern.occurrence_count == 4
        assert pattern.confidence >= 0.6
        assert pattern.transaction_ids == ["txn-1", "txn-2", "txn-3", "txn-4"]

    def test_small_amount_jitter_still_monthly(self):
        txns = _make_txns(amounts=[49.5, 50.0, 51.0, 50.25], offsets=[-92, -61, -30, 0])
        results = RecurringPatternDetector().detect(txns)
        assert len(results) == 1
        assert results[0].suggested_frequency == "monthly"
        assert results[0].confidence >= 0.6

    def test_high_amount_variance_filtered(self):
        txns = _make_txns(amounts=[10.0, 100.0, 50.0], offsets=[-60, -30, 0])
        assert RecurringPatternDetector().detect(txns) == []

    def test_filters_out_insufficient_occurrences(self):
        # Only 2 transactions, below min_occurrences (3)
        txns = _make_txns(amounts=[50.0, 50.0], offsets=[-30, 0])
        assert RecurringPatternDetector().detect(txns) == []

    def test_detects_weekly(self):
        txns = _make_txns(merchant="City Gym", amounts=[12.0] * 6,
                          offsets=[-35, -28, -21, -14, -7, 0])
        results = RecurringPatternDetector().detect(txns)
        assert len(results) == 1
        assert results[0].suggested_frequency == "weekly"

    def test_skips_tracked_merchants(self):
        results = RecurringPatternDetector().detect(_make_txns(), tracked_merchants=["NETFLIX"])
        assert results == []

    def test_ignores_pending_transactions(self):
        txns = _make_txns()
        txns["pending"] = [False, False, False, True]
        results = RecurringPatternDetector().detect(txns)
        assert len(results) == 1
        assert results[0].occurrence_count == 3

    def test_ignores_linked_transactions(self):
        txns = _make_txns(amounts=[50.0] * 3, offsets=[-60, -30, 0])
        txns["recurring_id"] = [None, "pat-9", None]
        assert RecurringPatternDetector().detect(txns) == []

    def test_lookback_window_excludes_old_transactions(self):
        old = _make_txns(merchant="Old Gym", amounts=[30.0] * 3,
                         offsets=[-560, -530, -500], start_txn_id=100)
        txns = pd.concat([_make_txns(), old], ignore_index=True)
        results = RecurringPatternDetector().detect(txns)
        assert [p.merchant_name for p in results] == ["Netflix"]

    def test_lookback_override(self):
        results = RecurringPatternDetector().detect(_make_txns(), lookback_days=60)
        assert len(results) == 1
        assert results[0].occurrence_count == 3

    def test_as_of_sets_window_end(self):
        results = RecurringPatternDetector().detect(
            _make_txns(), as_of=END_DATE - timedelta(days=1)
        )
        assert len(results) == 1
        assert results[0].occurrence_count == 3

    def test_falls_back_to_description(self):
        txns = _make_txns(merchant=None, amounts=[9.99] * 3, offsets=[-60, -30, 0],
                          description="POS SPOTIFY USA 123456")
        results = RecurringPatternDetector().detect(txns)
        assert len(results) == 1
        assert results[0].merchant_name == "SPOTIFY USA"

    def test_drops_rows_without_merchant(self):
        txns = _make_txns(merchant=None, amounts=[9.99] * 3, offsets=[-60, -30, 0],
                          description="AB")
        assert RecurringPatternDetector().detect(txns) == []

    def test_colliding_merchants_grouped_together(self):
        auto = _make_txns(merchant="Acme Insurance Company Auto", amounts=[80.0, 80.0],
                          offsets=[-60, -30])
        home = _make_txns(merchant="Acme Insurance Company Home", amounts=[80.0],
                          offsets=[0], start_txn_id=10)
        txns = pd.concat([home, auto], ignore_index=True)
        results = RecurringPatternDetector().detect(txns)
        assert len(results) == 1
        assert results[0].occurrence_count == 3
        # Display name comes from the earliest transaction
        assert results[0].merchant_name == "Acme Insurance Company Auto"

    def test_results_sorted_by_confidence(self):
        spotify = _make_txns(merchant="Spotify", amounts=[9.99] * 3,
                             offsets=[-60, -30, 0], start_txn_id=100)
        txns = pd.concat([spotify, _make_txns()], ignore_index=True)
        results = RecurringPatternDetector().detect(txns)
        assert [p.merchant_name for p in results] == ["Netflix", "Spotify"]
        assert results[0].confidence >= results[1].confidence

    def test_accepts_transaction_records(self):
        records = [
            TransactionRecord(
                transaction_id=f"txn-{i}",
                transaction_date=END_DATE + timedelta(days=offset),
                amount=-15.99,
                description="NETFLIX.COM",
                merchant="Netflix",
            )
            for i, offset in enumerate([-60, -30, 0])
        ]
        results = RecurringPatternDetector().detect(records)
        assert len(results) == 1
        assert results[0].average_amount == pytest.approx(15.99)

    def test_empty_input_returns_empty(self):
        empty_df = pd.DataFrame(columns=["transaction_id", "transaction_date", "amount", "description"])
        assert RecurringPatternDetector().detect(empty_df) == []
        assert RecurringPatternDetector().detect([]) == []

    def test_low_confidence_candidate_filtered(self):
        """A candidate scoring below min_confidence (0.6) is dropped."""
        txns = _make_txns(merchant="Acme", amounts=[10.0, 10.0, 25.0], offsets=[-90, -60, 0])
        assert RecurringPatternDetector().detect(txns) == []

    def test_utc_dates_with_naive_as_of(self):
        txns = _make_txns()
        txns["transaction_date"] = txns["transaction_date"].dt.tz_localize("UTC")
        results = RecurringPatternDetector().detect(txns, as_of=datetime(2024, 7, 1))
        assert len(results) == 1
        assert results[0].occurrence_count == 4
        assert results[0].last_occurrence == datetime(2024, 6, 30, tzinfo=timezone.utc)

    def test_iso_utc_strings_with_naive_as_of(self):
        txns = _make_txns()
        txns["transaction_date"] = txns["transaction_date"].dt.strftime("%Y-%m-%dT%H:%M:%SZ")
        results = SubscriptionEnginePipeline().detect(txns, as_of=datetime(2024, 7, 1))
        assert len(results) == 1
        assert results[0].suggested_frequency == "monthly"

    def test_aware_as_of_with_naive_dates(self):
        # 02:00 at UTC+2 is midnight UTC, the last transaction's timestamp
        as_of = datetime(2024, 6, 30, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        results = RecurringPatternDetector().detect(_make_txns(), as_of=as_of)
        assert len(results) == 1
        assert results[0].occurrence_count == 4

    def test_empty_merchant_reads_as_missing(self):
        assert _clean_text("") is None
        assert _clean_text(float("nan")) is None
        assert _clean_text("Netflix") == "Netflix"

        txns = _make_txns(merchant="", amounts=[9.99] * 3, offsets=[-60, -30, 0],
                          description="POS SPOTIFY USA 123456")
        results = RecurringPatternDetector().detect(txns)
        assert results[0].merchant_name == "SPOTIFY USA"
        assert all(t.merchant is None for t in results[0].transactions)

    def test_missing_columns_raises(self):
        bad_df = pd.DataFrame({"transaction_id": ["t1"], "amount": [100.0]})
        with pytest.raises(ValueError, match="Missing required columns"):
            RecurringPatternDetector().detect(bad_df)

    def test_detection_is_deterministic(self):
        txns = _make_txns()
        first = RecurringPatternDetector().detect(txns)
        second = RecurringPatternDetector().detect(txns)
        assert first == second

    def test_to_recurring_pattern(self):
        detected = RecurringPatternDetector().detect(_make_txns())[0]
        pattern = to_recurring_pattern(detected, "pat-42")
        assert pattern.pattern_id == "pat-42"
        assert pattern.status == "detected"
        assert pattern.expected_amount == 50.0
        assert pattern.frequency == "monthly"
        assert pattern.next_expected == END_DATE + timedelta(days=30)
        assert pattern.occurrence_count == 4


# =============================================================================
# PATTERN MATCHER TESTS
# =============================================================================

class TestPatternMatcher:
    def test_matches_confirmed_pattern_and_increments(self):
        pattern = _make_pattern(occurrence_count=5)
        match = PatternMatcher().match(_make_txn(), [pattern])
        assert match is not None
        assert match.pattern_id == "pat-1"
        assert match.transaction_id == "txn-new"
        assert match.occurrence_count == 6
        assert match.last_occurrence == END_DATE
        assert match.next_expected == END_DATE + timedelta(days=30)
        assert match.updated_pattern.occurrence_count == 6
        # Input pattern is left untouched
        assert pattern.occurrence_count == 5

    def test_amount_outside_range_returns_none(self):
        assert PatternMatcher().match(_make_txn(amount=20.0), [_make_pattern()]) is None

    def test_amount_bounds_are_inclusive(self):
        pattern = _make_pattern(expected_amount=100.0, amount_variance=0.5)
        matcher = PatternMatcher()
        assert matcher.match(_make_txn(amount=50.0), [pattern]) is not None
        assert matcher.match(_make_txn(amount=150.0), [pattern]) is not None
        assert matcher.match(_make_txn(amount=150.01), [pattern]) is None

    def test_negative_amount_matches(self):
        assert PatternMatcher().match(_make_txn(amount=-15.99), [_make_pattern()]) is not None

    def test_skips_unconfirmed_patterns(self):
        for status in ("detected", "paused", "dismissed"):
            pattern = _make_pattern(status=status)
            assert PatternMatcher().match(_make_txn(), [pattern]) is None

    def test_first_match_wins(self):
        patterns = [_make_pattern(pattern_id="pat-a"), _make_pattern(pattern_id="pat-b")]
        assert PatternMatcher().match(_make_txn(), patterns).pattern_id == "pat-a"

    def test_amount_mismatch_moves_to_next_pattern(self):
        patterns = [
            _make_pattern(pattern_id="pat-premium", expected_amount=22.99, amount_variance=0.05),
            _make_pattern(pattern_id="pat-standard", expected_amount=15.99),
        ]
        assert PatternMatcher().match(_make_txn(), patterns).pattern_id == "pat-standard"

    def test_substring_match_is_bidirectional(self):
        pattern = _make_pattern(merchant_name="Amazon Prime Video", expected_amount=8.99)
        txn = _make_txn(merchant="Prime", amount=8.99)
        assert PatternMatcher().match(txn, [pattern]) is not None

        pattern = _make_pattern(merchant_name="Prime", expected_amount=8.99)
        txn = _make_txn(merchant="Amazon Prime Video", amount=8.99)
        assert PatternMatcher().match(txn, [pattern]) is not None

    def test_falls_back_to_description(self):
        txn = _make_txn(merchant=None, description="POS NETFLIX 123456")
        assert PatternMatcher().match(txn, [_make_pattern()]) is not None

    def test_no_merchant_returns_none(self):
        txn = _make_txn(merchant=None, description="AB")
        assert PatternMatcher().match(txn, [_make_pattern()]) is None

    def test_unrelated_merchant_returns_none(self):
        txn = _make_txn(merchant="Spotify")
        assert PatternMatcher().match(txn, [_make_pattern()]) is None

    def test_rematching_same_transaction_still_matches(self):
        matcher = PatternMatcher()
        patterns = [_make_pattern()]
        first = matcher.match(_make_txn(), patterns)
        second = matcher.match(_make_txn(), patterns)
        assert first.pattern_id == second.pattern_id

    def test_empty_pattern_list_returns_none(self):
        assert PatternMatcher().match(_make_txn(), []) is None


# =============================================================================
# FULL PIPELINE INTEGRATION TESTS
# =============================================================================

class TestPipeline:
    def test_pipeline_detects_end_to_end(self):
        pipeline = SubscriptionEnginePipeline()
        patterns = pipeline.detect(_make_txns())
        assert len(patterns) == 1
        assert patterns[0].suggested_frequency == "monthly"

    def test_existing_patterns_block_detection(self):
        pipeline = SubscriptionEnginePipeline()
        for status in ("confirmed", "detected"):
            existing = [_make_pattern(status=status)]
            assert pipeline.detect(_make_txns(), existing) == []

    def test_dismissed_patterns_do_not_block_detection(self):
        pipeline = SubscriptionEnginePipeline()
        existing = [_make_pattern(status="dismissed")]
        assert len(pipeline.detect(_make_txns(), existing)) == 1

    def test_lookback_override(self):
        pipeline = SubscriptionEnginePipeline(lookback_days=60)
        assert pipeline.detect(_make_txns())[0].occurrence_count == 3

    def test_detect_confirm_then_match(self):
        pipeline = SubscriptionEnginePipeline()
        detected = pipeline.detect(_make_txns())[0]
        pattern = replace(to_recurring_pattern(detected, "pat-1"), status="confirmed")

        txn = _make_txn(amount=50.0, date=END_DATE + timedelta(days=30))
        match = pipeline.match(txn, [pattern])
        assert match.pattern_id == "pat-1"
        assert match.occurrence_count == 5
        assert match.next_expected == END_DATE + timedelta(days=60)

    def test_patterns_to_frame_schema(self):
        pipeline = SubscriptionEnginePipeline()
        output = pipeline.patterns_to_frame(pipeline.detect(_make_txns()))
        assert isinstance(output, pd.DataFrame)
        assert list(output.columns) == PATTERN_COLUMNS
        assert output.iloc[0]["transaction_ids"] == "txn-1|txn-2|txn-3|txn-4"
        assert output.iloc[0]["last_occurrence"] == "2024-06-30"

    def test_patterns_to_frame_empty(self):
        output = SubscriptionEnginePipeline.patterns_to_frame([])
        assert len(output) == 0
        assert list(output.columns) == PATTERN_COLUMNS

    def test_noise_only_produces_no_detections(self):
        """Irregular retail spend should not be reported as recurring."""
        np.random.seed(42)
        rows = []
        for i in range(30):
            rows.append({
                "transaction_id": f"txn-{i}",
                "transaction_date": datetime(2024, 1, 1) + timedelta(days=int(np.random.uniform(0, 180))),
                # Alternating basket sizes keep the amount CV far above 0.5
                "amount": round(np.random.uniform(5, 15) if i % 2 else np.random.uniform(250, 400), 2),
                "description": "AMAZON MKTPLACE",
                "merchant": "Amazon Marketplace",
            })
        output = SubscriptionEnginePipeline().detect(pd.DataFrame(rows))
        assert output == []


# =============================================================================
# CLI TESTS
# =============================================================================

class TestCli:
    def test_load_patterns_reads_tracked_merchants(self, tmp_path):
        path = tmp_path / "patterns.csv"
        pd.DataFrame({"merchant_name": ["Netflix", "Spotify"],
                      "status": ["confirmed", "dismissed"]}).to_csv(path, index=False)
        patterns = cli._load_patterns(str(path))
        assert [(p.merchant_name, p.status) for p in patterns] == [
            ("Netflix", "confirmed"), ("Spotify", "dismissed"),
        ]

    def test_load_patterns_rejects_unknown_status(self, tmp_path):
        path = tmp_path / "patterns.csv"
        pd.DataFrame({"merchant_name": ["Netflix"], "status": ["active"]}).to_csv(path, index=False)
        with pytest.raises(ValueError, match="Unknown pattern statuses"):
            cli._load_patterns(str(path))

    def test_main_writes_detections(self, tmp_path):
        input_path = tmp_path / "transactions.csv"
        _make_txns().to_csv(input_path, index=False)
        output = cli.main(["--input", str(input_path), "--output-dir", str(tmp_path / "out")])
        assert len(output) == 1
        assert len(list((tmp_path / "out").glob("detections_*.csv"))) == 1

    def test_main_missing_input_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            cli.main(["--input", str(tmp_path / "missing.csv")])
        assert exc.value.code == 1


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    pytest.main([__file__, "-v"])
