# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for pathpick.

Console output by default, JSON lines with ``--json-logs``. Leaf module:
no pathpick imports, safe to call before anything else is loaded.

Structured fields bound to records (``text=``, ``matches=``) can carry whole
element texts or match lists; they are clipped so one record stays one line.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from collections.abc import Iterator
from typing import Any, TextIO

import structlog

# Third-party loggers that are noisy at INFO during browser rendering
_QUIET_LOGGERS = ("asyncio", "playwright")

MAX_FIELD_CHARS = 200
MAX_FIELD_ITEMS = 10

# keys structlog itself owns; never clipped
_RESERVED = frozenset({"event", "exception", "logger", "level", "timestamp"})


def clip_long_values(_logger: Any, _method: str, event_dict: dict) -> dict:
    """Shorten long strings and sequences in bound fields."""
    for key, value in event_dict.items():
        if key in _RESERVED or key.startswith("_"):
            continue
        if isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
            event_dict[key] = f"{value[:MAX_FIELD_CHARS]}… (+{len(value) - MAX_FIELD_CHARS} chars)"
        elif isinstance(value, list | tuple) and len(value) > MAX_FIELD_ITEMS:
            event_dict[key] = [*value[:MAX_FIELD_ITEMS], f"… (+{len(value) - MAX_FIELD_ITEMS} more)"]
    return event_dict


def resolve_level(level: str | int) -> int:
    """Level name (``"debug"``) or number (``"10"``, ``10``); INFO when unrecognised."""
    if isinstance(level, int):
        return level
    text = level.strip()
    if text.isdigit():
        return int(text)
    value = logging.getLevelName(text.upper())
    return value if isinstance(value, int) else logging.INFO


def _pre_chain() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        clip_long_values,
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def build_formatter(*, json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=_pre_chain(),
    )


def configure(*, json_output: bool = False, level: str | int = "INFO", stream: TextIO | None = None) -> None:
    """Route stdlib and structlog records through one stderr handler.

    Args:
        json_output: JSON lines when True, human-readable console output otherwise.
        level: Root level as a name or number; unknown values fall back to INFO.
        stream: Output stream (default ``sys.stderr`` so stdout stays clean for JSON results).
    """
    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(build_formatter(json_output=json_output))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root_level = resolve_level(level)
    root.setLevel(root_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))


@contextlib.contextmanager
def bound_context(**values: object) -> Iterator[None]:
    """Attach *values* (e.g. ``url=``, ``key=``) to every record logged inside the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield
