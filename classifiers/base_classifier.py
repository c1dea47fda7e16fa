"""
base_classifier.py
---------------------
Abstract base class for all subscription classifiers.

Each concrete classifier (catalog, heuristic) inherits from this. Shared
logic (service-name formatting, annual cost, savings recommendation and
SubscriptionClassification construction) lives here so it's never
duplicated.

Concrete classifiers only need to implement:
    - _identify(): return the service identity for a pattern, or None.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional

from core.billing import calculate_annual_cost, generate_savings_recommendation
from core.models import RecurringPattern, SubscriptionClassification
from config.config_loader import get_subscription_classification_config

_NAME_SEPARATORS = re.compile(r"[\s_-]+")


class BaseSubscriptionClassifier(ABC):
    """
    Abstract base for subscription classifiers.

    Subclasses implement _identify(). This class handles the confirmed-status
    gate, cost analytics and SubscriptionClassification construction.
    """

    def __init__(self, source: str):
        self.source = source
        self.config = get_subscription_classification_config()

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def classify(
        self, pattern: RecurringPattern, usage_frequency: Optional[str] = None
    ) -> SubscriptionClassification | None:
        """
        Attempt to classify a confirmed RecurringPattern as a subscription.

        Args:
            pattern: The confirmed pattern.
            usage_frequency: Optional usage label ("low" | "medium" | "high"
                | "unknown") used for the savings recommendation.

        Returns:
            SubscriptionClassification if this classifier recognises the
            pattern, None otherwise.
        """
        if pattern.status != "confirmed":
            return None

        identity = self._identify(pattern)
        if identity is None:
            return None

        annual_cost = calculate_annual_cost(pattern.expected_amount, pattern.frequency)
        service_name = self.format_service_name(identity["service_name"])

        return SubscriptionClassification(
            recurring_id=pattern.pattern_id,
            service_name=service_name,
            amount=pattern.expected_amount,
            currency=pattern.currency,
            billing_cycle=pattern.frequency,
            category=identity["category"],
            confidence=identity["confidence"],
            annual_cost=annual_cost,
            source=self.source,
            service_url=identity.get("service_url"),
            service_icon=identity.get("service_icon"),
            last_billing_date=pattern.last_occurrence,
            next_billing_date=pattern.next_expected,
            savings_recommendation=generate_savings_recommendation(
                service_name, usage_frequency, annual_cost
            ),
        )

    # -------------------------------------------------------------------------
    # ABSTRACT METHODS
    # -------------------------------------------------------------------------

    @abstractmethod
    def _identify(self, pattern: RecurringPattern) -> dict | None:
        """
        Identify the service behind a pattern.

        Returns:
            Dict with service_name, category, confidence and optionally
            service_url / service_icon, or None if unrecognised.
        """
        ...

    # -------------------------------------------------------------------------
    # SHARED HELPERS
    # -------------------------------------------------------------------------

    @staticmethod
    def format_service_name(name: str) -> str:
        """'amazon prime' -> 'Amazon Prime', 'DISNEY_PLUS-app' -> 'Disney Plus App'."""
        words = _NAME_SEPARATORS.split(name)
        return " ".join(word[:1].upper() + word[1:].lower() for word in words)
