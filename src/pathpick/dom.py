# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""In-page environment around an lxml document.

``Page`` stands in for the browser side of the selection agent:
listener registry with capture semantics, cursor affordance, element
geometry, and transient style flashes.  Geometry is supplied by the caller
(``set_box``) from a browser snapshot or a test fixture, since a parsed
tree has no layout of its own.

Element helpers here skip comments and processing instructions so that
every walk in the package sees the same element-only tree.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import ClassVar

import lxml.html
from lxml import etree

from .errors import DocumentLoadError

logger = logging.getLogger("pathpick.dom")

OVERLAY_TAG = "pathpick-overlay"

_STRING = etree.XPath("string()")

_FLASH_STYLE = "outline: 2px solid #4CAF50; background-color: rgba(76, 175, 80, 0.3)"


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------


def is_element(node: object) -> bool:
    """True for real elements (not comments, PIs or entities)."""
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def element_children(el: etree._Element) -> list[etree._Element]:
    return [c for c in el if isinstance(c.tag, str)]


def first_element_child(el: etree._Element) -> etree._Element | None:
    for child in el:
        if isinstance(child.tag, str):
            return child
    return None


def tag_of(el: etree._Element) -> str:
    return el.tag.lower() if isinstance(el.tag, str) else ""


def text_of(el: etree._Element) -> str:
    """DOM ``textContent`` equivalent (comments excluded)."""
    return str(_STRING(el))


def contains(ancestor: etree._Element, node: etree._Element) -> bool:
    """DOM ``Node.contains``: inclusive descendant check."""
    if node is ancestor:
        return True
    return any(a is ancestor for a in node.iterancestors())


def is_overlay(el: etree._Element) -> bool:
    return tag_of(el) == OVERLAY_TAG


def parse_html(text: str | bytes, *, base_url: str | None = None) -> lxml.html.HtmlElement:
    """Parse a full HTML document. ``<html>`` and ``<body>`` always exist afterwards."""
    if not text or not (text.strip() if isinstance(text, str) else text.strip()):
        raise DocumentLoadError("Empty HTML document")
    try:
        return lxml.html.document_fromstring(text, base_url=base_url)
    except (etree.ParserError, ValueError) as e:
        raise DocumentLoadError(f"Unparseable HTML: {e}") from e


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Rect:
    """Page-coordinate bounding box (scroll offsets already applied)."""

    x: float
    y: float
    width: float
    height: float

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height

    def to_style(self) -> str:
        return f"top: {self.y:g}px; left: {self.x:g}px; width: {self.width:g}px; height: {self.height:g}px"


# ---------------------------------------------------------------------------
# Input events
# ---------------------------------------------------------------------------


@dataclass
class InputEvent:
    """Base pointer/wheel event.  ``type`` matches the DOM event name."""

    type: ClassVar[str] = ""

    target: etree._Element
    default_prevented: bool = field(default=False, init=False)

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass
class PointerOver(InputEvent):
    type: ClassVar[str] = "pointerover"


@dataclass
class Click(InputEvent):
    type: ClassVar[str] = "click"

    x: float = 0.0
    y: float = 0.0


@dataclass
class Wheel(InputEvent):
    type: ClassVar[str] = "wheel"

    delta_y: float = 0.0


Listener = Callable[[InputEvent], None]


@dataclass(slots=True)
class _Flash:
    original_style: str | None
    deadline: float


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------


class Page:
    """A document plus the in-page state the selection agent needs."""

    def __init__(self, document: etree._Element, *, url: str = "") -> None:
        root = document.getroot() if isinstance(document, etree._ElementTree) else document
        self.document: etree._Element = root.getroottree().getroot()
        self.url = url
        self.cursor = ""
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}
        self._boxes: dict[etree._Element, Rect] = {}
        self._flashes: dict[etree._Element, _Flash] = {}
        self._clock: Callable[[], float] = time.monotonic

    @classmethod
    def from_html(cls, text: str | bytes, *, url: str = "") -> Page:
        return cls(parse_html(text, base_url=url or None), url=url)

    @property
    def body(self) -> etree._Element:
        body = self.document.find("body")
        return body if body is not None else self.document

    # -- Listeners --

    def add_event_listener(self, event_type: str, listener: Listener, *, capture: bool = True) -> None:
        entries = self._listeners.setdefault(event_type, [])
        if (listener, capture) not in entries:
            entries.append((listener, capture))

    def remove_event_listener(self, event_type: str, listener: Listener, *, capture: bool = True) -> None:
        entries = self._listeners.get(event_type)
        if entries and (listener, capture) in entries:
            entries.remove((listener, capture))

    def listener_count(self, event_type: str | None = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, ()))
        return sum(len(v) for v in self._listeners.values())

    def dispatch(self, event: InputEvent) -> bool:
        """Deliver *event* to its listeners in registration order.

        Returns False when a listener called ``prevent_default()``.
        Overlay targets are transparent to input (pointer-events: none).
        """
        self.expire_flashes()
        if not is_element(event.target) or is_overlay(event.target):
            return True
        entries = self._listeners.get(event.type, [])
        for listener, capture in list(entries):
            # a listener removed by an earlier one in this dispatch must not fire
            if (listener, capture) not in entries:
                continue
            try:
                listener(event)
            except Exception:
                logger.exception("Unhandled error in %s listener", event.type)
        return not event.default_prevented

    # -- Geometry --

    def set_box(self, el: etree._Element, rect: Rect) -> None:
        self._boxes[el] = rect

    def bounding_box(self, el: etree._Element) -> Rect | None:
        return self._boxes.get(el)

    def contains_point(self, el: etree._Element, x: float, y: float) -> bool | None:
        """Point-in-box test; None when the element has no known geometry."""
        rect = self._boxes.get(el)
        if rect is None:
            return None
        return rect.contains(x, y)

    # -- Transient highlight --

    def flash(self, elements: Iterable[etree._Element], duration: float) -> int:
        """Outline *elements* until *duration* seconds have passed. Returns count flashed."""
        deadline = self._clock() + duration
        count = 0
        for el in elements:
            pending = self._flashes.get(el)
            if pending is not None:
                pending.deadline = deadline
            else:
                original = el.get("style")
                self._flashes[el] = _Flash(original_style=original, deadline=deadline)
                el.set("style", f"{original.rstrip('; ')}; {_FLASH_STYLE}" if original else _FLASH_STYLE)
            count += 1
        return count

    def expire_flashes(self, now: float | None = None) -> int:
        """Restore styles of flashes whose deadline passed. Returns count restored."""
        now = self._clock() if now is None else now
        due = [el for el, f in self._flashes.items() if f.deadline <= now]
        for el in due:
            self._restore(el, self._flashes.pop(el))
        return len(due)

    def restore_styles(self) -> None:
        """Revert every pending flash immediately."""
        for el, flash in list(self._flashes.items()):
            self._restore(el, flash)
        self._flashes.clear()

    @property
    def pending_flashes(self) -> int:
        return len(self._flashes)

    @staticmethod
    def _restore(el: etree._Element, flash: _Flash) -> None:
        if flash.original_style is None:
            el.attrib.pop("style", None)
        else:
            el.set("style", flash.original_style)
