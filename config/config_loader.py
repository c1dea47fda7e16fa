"""
config_loader.py
-----------------
Singleton config loader. Reads config.yaml once and caches it.
All modules access thresholds and lookup tables through this. The cache is
read-only after load, so concurrent runs for different scopes share it safely.
"""

import os
import yaml
from typing import Any, Dict


_CONFIG_CACHE: Dict[str, Any] = {}


def load_config(config_path: str | None = None) -> Dict[str, Any]:
    """
    Load and cache the YAML configuration file.

    Args:
        config_path: Path to config.yaml. Defaults to config/ relative to this file.

    Returns:
        Full config dictionary.
    """
    global _CONFIG_CACHE

    if _CONFIG_CACHE:
        return _CONFIG_CACHE

    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), "config.yaml")

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        _CONFIG_CACHE = yaml.safe_load(f)

    return _CONFIG_CACHE


def get_recurring_detection_config() -> Dict[str, Any]:
    """Returns the recurring_detection block."""
    return load_config()["recurring_detection"]


def get_subscription_classification_config() -> Dict[str, Any]:
    """Returns the subscription_classification block."""
    return load_config()["subscription_classification"]


def get_known_services() -> list[Dict[str, Any]]:
    """Returns the ordered known-service catalog."""
    return load_config()["known_services"]


def get_billing_config() -> Dict[str, Any]:
    """Returns the billing block."""
    return load_config()["billing"]


def get_reporting_config() -> Dict[str, Any]:
    """Returns the reporting block."""
    return load_config()["reporting"]


def reset_config() -> None:
    """Clears cached config. Useful for testing."""
    global _CONFIG_CACHE
    _CONFIG_CACHE = {}
