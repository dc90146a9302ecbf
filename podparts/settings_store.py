"""Settings service merging ``.env`` files, defaults and the process environment."""

from __future__ import annotations

import logging
import os
from collections import OrderedDict
from pathlib import Path
from threading import RLock
from types import SimpleNamespace
from typing import Mapping, Optional

from . import settings_io

LOGGER = logging.getLogger(__name__)


def _default_db_path() -> Path:
    return Path(os.path.join(os.path.dirname(__file__), "database.db"))


# Used when a key is absent from both ``.env.example`` and ``.env``.
DEFAULTS: "OrderedDict[str, str]" = OrderedDict(
    [
        ("DB_PATH", str(_default_db_path())),
        ("LOG_LEVEL", "INFO"),
        ("LOG_FILE", os.path.join(os.path.dirname(__file__), "podparts.log")),
        ("SECRET_KEY", "change-me"),
        ("FLASK_DEBUG", "0"),
        (
            "PRODUCT_STATUS_OPTIONS",
            "in_stock,active,pending,sold,delivered_no_warranty,returned,faulty,written_off",
        ),
        ("ENABLE_CANCELLED_STOCK_TAKE_HISTORY", "0"),
        ("LOW_ACCURACY_THRESHOLD", "95"),
    ]
)


class SettingsStore:
    """Cache configuration values and expose them as a typed namespace."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._values: "OrderedDict[str, str]" = OrderedDict()
        self._namespace: Optional[SimpleNamespace] = None
        self._loaded = False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        with self._lock:
            if self._loaded:
                return

            file_values = settings_io.load_settings(
                example_path=settings_io.EXAMPLE_PATH,
                env_path=settings_io.ENV_PATH,
            )
            values: "OrderedDict[str, str]" = OrderedDict(DEFAULTS)
            for key, value in file_values.items():
                if value != "" or key not in values:
                    values[key] = value

            # Process environment wins over files for known keys.
            for key in list(values.keys()):
                env_value = os.environ.get(key)
                if env_value is not None:
                    values[key] = env_value

            self._values = OrderedDict(
                (key, "" if value is None else str(value)) for key, value in values.items()
            )
            self._namespace = self._build_namespace(self._values)
            self._loaded = True

    def _build_namespace(self, values: Mapping[str, str]) -> SimpleNamespace:
        processed_values = {}
        for key, value in values.items():
            if key.startswith("ENABLE_") or key.endswith("_ENABLED") or key == "FLASK_DEBUG":
                processed_values[key] = (value or "0") == "1"
            elif "THRESHOLD" in key or "PORT" in key:
                try:
                    processed_values[key] = int(value)
                except (ValueError, TypeError):
                    LOGGER.warning("Setting %s=%r is not an integer", key, value)
                    processed_values[key] = int(DEFAULTS.get(key, "0"))
            else:
                processed_values[key] = value

        return SimpleNamespace(**processed_values)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def settings(self) -> SimpleNamespace:
        self._ensure_loaded()
        assert self._namespace is not None
        return self._namespace

    def as_ordered_dict(self) -> "OrderedDict[str, str]":
        self._ensure_loaded()
        return OrderedDict(self._values)

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        """Override values for the lifetime of the process."""
        self._ensure_loaded()
        with self._lock:
            for key, value in values.items():
                if value is None:
                    self._values.pop(key, None)
                else:
                    self._values[key] = str(value)
            self._namespace = self._build_namespace(self._values)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return a raw configuration value."""

        self._ensure_loaded()
        return self._values.get(key, default)

    def reload(self) -> None:
        """Force reload settings from files and the environment."""
        with self._lock:
            self._loaded = False
        self._ensure_loaded()


settings_store = SettingsStore()

__all__ = ["settings_store", "SettingsStore", "DEFAULTS"]
