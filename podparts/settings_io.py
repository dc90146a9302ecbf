"""Read ``.env.example`` and ``.env`` with python-dotenv."""

from __future__ import annotations

import logging
from collections import OrderedDict
from pathlib import Path

from dotenv import dotenv_values

LOGGER = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[1]
ENV_PATH = ROOT_DIR / ".env"
EXAMPLE_PATH = ROOT_DIR / ".env.example"


def load_settings(
    *,
    example_path: Path = EXAMPLE_PATH,
    env_path: Path = ENV_PATH,
) -> "OrderedDict[str, str]":
    """Return ``.env.example`` values overridden by ``.env``.

    Keys keep the template's order; keys only present in ``.env`` follow.
    Missing or unreadable files contribute nothing.
    """
    values: "OrderedDict[str, str]" = OrderedDict()
    for path in (example_path, env_path):
        if not path.exists():
            LOGGER.debug("Settings file %s not found, skipping", path)
            continue
        try:
            loaded = dotenv_values(path)
        except OSError as exc:
            LOGGER.warning("Failed to read settings file %s: %s", path, exc)
            continue
        for key, value in loaded.items():
            values[key] = value or ""
    return values


__all__ = ["ENV_PATH", "EXAMPLE_PATH", "load_settings"]
