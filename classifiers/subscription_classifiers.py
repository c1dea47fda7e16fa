"""
subscription_classifiers.py
-----------------------------
Concrete subscription classifiers, tried in registry order:

    1. KnownServiceClassifier: catalog hit. Catalog category, icon and url;
       the pattern's confidence is kept.
    2. HeuristicServiceClassifier: unknown merchant that still looks like a
       subscription. Category guessed from keywords; confidence discounted.

Thresholds, indicator words and the category keyword table come from
config.yaml. Only the decision structure lives in code.
"""

from core.models import RecurringPattern
from core.service_catalog import ServiceCatalog
from classifiers.base_classifier import BaseSubscriptionClassifier


# =============================================================================
# KNOWN SERVICE (CATALOG)
# =============================================================================
class KnownServiceClassifier(BaseSubscriptionClassifier):
    """
    Matches the merchant against the known-service catalog.

    The display name comes from the catalog entry, so "NETFLIX.COM 866-579"
    becomes "Netflix".
    """

    def __init__(self):
        super().__init__("catalog")
        self.catalog = ServiceCatalog()

    def _identify(self, pattern: RecurringPattern) -> dict | None:
        entry = self.catalog.lookup(pattern.merchant_name)
        if entry is None:
            return None

        return {
            "service_name": entry["name"],
            "category": entry["category"],
            "confidence": pattern.confidence,
            "service_url": entry.get("url"),
            "service_icon": entry.get("icon"),
        }


# =============================================================================
# HEURISTIC (UNKNOWN SERVICE)
# =============================================================================
class HeuristicServiceClassifier(BaseSubscriptionClassifier):
    """
    Recognises unknown subscriptions.

    Hard gates: billing cycle in heuristic_frequencies (monthly, yearly),
    confidence >= heuristic_min_confidence, and at least one subscription
    indicator word in the merchant name.
    """

    def __init__(self):
        super().__init__("heuristic")
        self.frequencies = set(self.config["heuristic_frequencies"])
        self.min_confidence = self.config["heuristic_min_confidence"]
        self.confidence_factor = self.config["heuristic_confidence_factor"]
        self.indicators = tuple(self.config["subscription_indicators"])
        self.category_keywords = tuple(
            (row["category"], tuple(row["keywords"])) for row in self.config["category_keywords"]
        )
        self.default_category = self.config["default_category"]

    def _identify(self, pattern: RecurringPattern) -> dict | None:
        merchant_lower = pattern.merchant_name.lower()

        # --- Hard gates ---
        if pattern.frequency not in self.frequencies:
            return None
        if pattern.confidence < self.min_confidence:
            return None
        if not self.looks_like_subscription(merchant_lower):
            return None

        return {
            "service_name": pattern.merchant_name,
            "category": self.guess_category(merchant_lower),
            "confidence": pattern.confidence * self.confidence_factor,
        }

    def looks_like_subscription(self, merchant_lower: str) -> bool:
        return any(indicator in merchant_lower for indicator in self.indicators)

    def guess_category(self, merchant_lower: str) -> str:
        """First category whose keywords appear in the merchant text."""
        for category, keywords in self.category_keywords:
            if any(keyword in merchant_lower for keyword in keywords):
                return category
        return self.default_category


# =============================================================================
# CLASSIFIER REGISTRY
# =============================================================================
# Order is priority: the catalog is consulted before the heuristic.

CLASSIFIER_REGISTRY: tuple[type[BaseSubscriptionClassifier], ...] = (
    KnownServiceClassifier,
    HeuristicServiceClassifier,
)


def get_all_classifiers() -> list[BaseSubscriptionClassifier]:
    """Instantiates and returns all registered classifiers, in priority order."""
    return [cls() for cls in CLASSIFIER_REGISTRY]
