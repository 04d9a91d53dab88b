# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PathPick: selector synthesis and pattern-based record extraction for HTML.

Point at elements in an unknown document and derive:
- a stable identifying path for one element (CSS selector, specific XPath, full XPath)
- a generic relative pattern matching every sibling-like element of a repeating list

Stored selectors are replayed later by the extractor to rebuild a flat record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True, slots=True)
class NodeDescriptor:
    """Identity of one selected element. Immutable once produced."""

    tag_name: str
    id: str | None
    classes: frozenset[str]
    attributes: tuple[tuple[str, str], ...]  # source order
    text_content: str
    css_selector: str
    specific_xpath: str
    full_xpath: str

    def to_payload(self) -> dict:
        """camelCase wire form used in channel messages."""
        return {
            "tagName": self.tag_name,
            "id": self.id,
            "classes": sorted(self.classes),
            "attributes": [{"name": n, "value": v} for n, v in self.attributes],
            "text": self.text_content,
            "cssSelector": self.css_selector,
            "xpath": self.specific_xpath,
            "fullXPath": self.full_xpath,
        }


@dataclass
class ExtractionRecord:
    """Output of one extractor run."""

    url: str
    data: dict[str, str | list[str]]
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict:
        return {"url": self.url, "timestamp": self.timestamp, "data": dict(self.data)}

    @property
    def total_values(self) -> int:
        return sum(len(v) if isinstance(v, list) else 1 for v in self.data.values())
