"""Typed accessors for the console settings.

Every accessor reads through :data:`settings_store`, so values changed with
``settings_store.update()`` or ``reload()`` apply on the next call.
"""
from typing import List

from .settings_store import settings_store


def load_config():
    """Return the current settings namespace."""
    return settings_store.settings


def db_path() -> str:
    return settings_store.settings.DB_PATH


def product_status_options() -> List[str]:
    """Unit statuses an operator may assign, from ``PRODUCT_STATUS_OPTIONS``."""
    raw = settings_store.settings.PRODUCT_STATUS_OPTIONS or ""
    return [opt.strip() for opt in raw.split(",") if opt.strip()]


def keep_cancelled_stock_takes() -> bool:
    """Whether cancelled stock takes are kept instead of deleted."""
    return settings_store.settings.ENABLE_CANCELLED_STOCK_TAKE_HISTORY


def low_accuracy_threshold() -> int:
    """Accuracy percentage below which a completed stock take is a warning."""
    return settings_store.settings.LOW_ACCURACY_THRESHOLD


__all__ = [
    "load_config",
    "db_path",
    "product_status_options",
    "keep_cancelled_stock_takes",
    "low_accuracy_threshold",
]
