# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PathPick exception hierarchy.

All PathPick-specific errors inherit from PathPickError, allowing callers
to catch the base class for any failure or specific subclasses for
targeted handling.  Public entry points (activate/deactivate/find/extract/
request) convert these into definite results instead of raising.
"""

from __future__ import annotations


class PathPickError(Exception):
    """Base exception for all PathPick errors."""


class ResolutionError(PathPickError):
    """A path or selector resolved to no node."""

    def __init__(self, message: str, *, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class SelectorSyntaxError(PathPickError):
    """Malformed XPath expression or CSS selector."""

    def __init__(self, message: str, *, selector: str = "") -> None:
        super().__init__(message)
        self.selector = selector


class ProtocolError(PathPickError):
    """Channel message failed validation."""


class ChannelError(PathPickError):
    """Message channel counterpart unreachable or unresponsive."""


class DocumentLoadError(PathPickError):
    """HTML source could not be read or parsed."""


class BrowserError(DocumentLoadError):
    """Browser launch or navigation failure while rendering a page."""
