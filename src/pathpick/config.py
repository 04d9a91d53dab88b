# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Environment-backed settings.

Every knob has a ``PATHPICK_*`` environment variable; the CLI overrides
individual values with flags.  Invalid values fall back to the default
with a warning rather than aborting startup.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger("pathpick.config")

DEFAULT_FLASH_SECONDS = 3.0
DEFAULT_BROWSER_TIMEOUT_MS = 30_000

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration shared by the extractor, browser loader and CLI."""

    flash_seconds: float = DEFAULT_FLASH_SECONDS
    log_level: str = "INFO"
    log_json: bool = False
    browser_timeout_ms: int = DEFAULT_BROWSER_TIMEOUT_MS
    headless: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            flash_seconds=_float(env, "PATHPICK_FLASH_SECONDS", DEFAULT_FLASH_SECONDS, minimum=0.0),
            log_level=env.get("PATHPICK_LOG_LEVEL", "").strip().upper() or "INFO",
            log_json=_flag(env, "PATHPICK_LOG_JSON", False),
            browser_timeout_ms=int(
                _float(env, "PATHPICK_BROWSER_TIMEOUT_MS", DEFAULT_BROWSER_TIMEOUT_MS, minimum=1.0)
            ),
            headless=_flag(env, "PATHPICK_HEADLESS", True),
        )


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    logger.warning("Ignoring %s=%r (expected a boolean)", name, raw)
    return default


def _float(env: Mapping[str, str], name: str, default: float, *, minimum: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not a number)", name, raw)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%r (must be >= %s)", name, raw, minimum)
        return default
    return value
