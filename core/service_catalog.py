"""
service_catalog.py
-------------------
Known subscription service lookup.

Loads the known_services list from config.yaml. Each entry carries a
category, optional icon and url, and alias substrings. A merchant matches
an entry when its lowercased name contains the entry name or any alias.

The catalog is scanned in config order and the first match wins, so an
entry listed earlier shadows later ones ("google youtube" hits youtube
before google only because youtube is listed first).

Catalog updates happen in config.yaml; no code changes required.
"""

from typing import Optional, Dict

from config.config_loader import get_known_services


class ServiceCatalog:
    """
    Ordered lookup from merchant text to a known service entry.

    Built once at init from the config catalog. Read-only afterwards.
    """

    def __init__(self):
        self._entries: tuple[Dict, ...] = ()
        self._load_catalog()

    def _load_catalog(self) -> None:
        """Lowercases names and aliases once, keeping config order."""
        entries = []
        for entry in get_known_services():
            entries.append({
                **entry,
                "name": entry["name"].lower(),
                "aliases": tuple(alias.lower() for alias in entry.get("aliases", [])),
            })
        self._entries = tuple(entries)

    def lookup(self, merchant_name: str) -> Optional[Dict]:
        """
        Find the first catalog entry matching a merchant name.

        Returns:
            Dict with name, category, icon, url and aliases, or None.
        """
        merchant_lower = merchant_name.lower()
        for entry in self._entries:
            if entry["name"] in merchant_lower:
                return entry
            if any(alias in merchant_lower for alias in entry["aliases"]):
                return entry
        return None

    def get_category(self, merchant_name: str) -> Optional[str]:
        """Shortcut: returns just the category string or None."""
        entry = self.lookup(merchant_name)
        return entry["category"] if entry else None

    def get_all_categories(self) -> set[str]:
        return {entry["category"] for entry in self._entries}

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ServiceCatalog(entries={len(self)}, categories={self.get_all_categories()})"
