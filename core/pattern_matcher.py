"""
pattern_matcher.py
-------------------
Links one incoming transaction to at most one confirmed RecurringPattern.

Matching rules:
    - Merchant: the normalized pattern merchant contains the normalized
      transaction merchant, or the other way round. This is permissive on
      purpose and over-matches names that are substrings of each other
      ("prime" vs "amazonprimevideo").
    - Amount: |amount| within [expected * (1 - variance), expected * (1 + variance)],
      inclusive. Detection stores absolute amounts, so the transaction's sign
      is ignored.
    - Patterns are tried in the order supplied; the first one passing both
      tests wins. An amount mismatch moves on to the next pattern.

The matcher never mutates the pattern it matches. Deltas come back in a
PatternMatch, including an updated copy of the pattern, for the caller to
persist. Detection and matching must not run concurrently for one scope.
"""

import logging
from dataclasses import replace
from typing import Iterable

from core.frequency_detector import calculate_next_expected
from core.merchant_normalizer import normalize_merchant, resolve_merchant
from core.models import PatternMatch, RecurringPattern, TransactionRecord

logger = logging.getLogger(__name__)


class PatternMatcher:
    """
    Usage:
        matcher = PatternMatcher()
        match = matcher.match(transaction, confirmed_patterns)
        if match:
            store(match.updated_pattern)
    """

    def match(
        self, transaction: TransactionRecord, patterns: Iterable[RecurringPattern]
    ) -> PatternMatch | None:
        """
        Returns:
            PatternMatch for the first matching confirmed pattern, or None.
        """
        merchant = resolve_merchant(transaction.merchant, transaction.description)
        if not merchant:
            return None

        transaction_key = normalize_merchant(merchant)
        amount = abs(transaction.amount)

        for pattern in patterns:
            if pattern.status != "confirmed":
                continue

            if not self._merchant_matches(normalize_merchant(pattern.merchant_name), transaction_key):
                continue

            if not self._amount_matches(pattern, amount):
                continue

            return self._build_match(transaction, pattern)

        return None

    @staticmethod
    def _merchant_matches(pattern_key: str, transaction_key: str) -> bool:
        return transaction_key in pattern_key or pattern_key in transaction_key

    @staticmethod
    def _amount_matches(pattern: RecurringPattern, amount: float) -> bool:
        min_amount = pattern.expected_amount * (1 - pattern.amount_variance)
        max_amount = pattern.expected_amount * (1 + pattern.amount_variance)
        return min_amount <= amount <= max_amount

    @staticmethod
    def _build_match(transaction: TransactionRecord, pattern: RecurringPattern) -> PatternMatch:
        last_occurrence = transaction.transaction_date
        next_expected = calculate_next_expected(last_occurrence, pattern.frequency)
        occurrence_count = pattern.occurrence_count + 1

        logger.debug(
            f"Matched transaction {transaction.transaction_id} to pattern {pattern.pattern_id}."
        )

        return PatternMatch(
            pattern_id=pattern.pattern_id,
            transaction_id=transaction.transaction_id,
            last_occurrence=last_occurrence,
            next_expected=next_expected,
            occurrence_count=occurrence_count,
            updated_pattern=replace(
                pattern,
                last_occurrence=last_occurrence,
                next_expected=next_expected,
                occurrence_count=occurrence_count,
            ),
        )
