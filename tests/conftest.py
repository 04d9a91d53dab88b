# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import pathpick  # noqa: F401
except ImportError:
    raise ImportError("pathpick is not installed. Run: pip install -e '.[dev]'") from None

import os

import pytest

from pathpick.channel import MessageChannel
from pathpick.config import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep PATHPICK_* variables from the developer shell out of the tests."""
    for name in [k for k in os.environ if k.startswith("PATHPICK_")]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def channel() -> MessageChannel:
    return MessageChannel()


@pytest.fixture
def settings() -> Settings:
    return Settings(flash_seconds=0.0)
