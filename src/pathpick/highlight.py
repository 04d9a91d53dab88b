# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Overlay rendering for the selection controller.

The renderer is the only writer of overlay nodes.  It keeps at most one
primary (hover/locked) overlay and one root overlay, plus one match overlay
per matched element.  ``render_matches`` diffs the previous and new match
sets: stale overlays are removed, kept ones repositioned and new ones added,
so repeated renders with the same input leave the tree unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import StrEnum

from lxml import etree

from .dom import OVERLAY_TAG, Page
from .paths import full_xpath

logger = logging.getLogger("pathpick.highlight")


class OverlayKind(StrEnum):
    PRIMARY = "primary"
    MATCH = "match"
    ROOT = "root"


_BASE_STYLE = "position: absolute; pointer-events: none"

_KIND_STYLE = {
    OverlayKind.PRIMARY: "border: 2px solid #1a73e8; background-color: rgba(26, 115, 232, 0.1); z-index: 10000",
    OverlayKind.MATCH: "border: 2px solid #4CAF50; background-color: rgba(76, 175, 80, 0.2); z-index: 9999",
    OverlayKind.ROOT: "border: 2px dashed rgba(106, 90, 205, 0.7); z-index: 9998",
}


class OverlayRenderer:
    """Owns every overlay node the controller puts into the page."""

    def __init__(self, page: Page) -> None:
        self._page = page
        self._primary: etree._Element | None = None
        self._root: etree._Element | None = None
        self._matches: dict[etree._Element, etree._Element] = {}

    # -- Primary --

    def show_primary(self, target: etree._Element) -> None:
        if self._primary is None:
            self._primary = self._create(OverlayKind.PRIMARY)
        self._position(self._primary, OverlayKind.PRIMARY, target)

    def hide_primary(self) -> None:
        self._remove(self._primary)
        self._primary = None

    # -- Root --

    def show_root(self, target: etree._Element) -> None:
        if self._root is None:
            self._root = self._create(OverlayKind.ROOT)
        self._position(self._root, OverlayKind.ROOT, target)

    def hide_root(self) -> None:
        self._remove(self._root)
        self._root = None

    # -- Matches --

    def render_matches(self, elements: Iterable[etree._Element]) -> None:
        wanted = list(dict.fromkeys(elements))
        wanted_set = set(wanted)
        for el in [el for el in self._matches if el not in wanted_set]:
            self._remove(self._matches.pop(el))
        for el in wanted:
            overlay = self._matches.get(el)
            if overlay is None:
                overlay = self._matches[el] = self._create(OverlayKind.MATCH)
            self._position(overlay, OverlayKind.MATCH, el)

    def clear_matches(self) -> None:
        for overlay in self._matches.values():
            self._remove(overlay)
        self._matches.clear()

    # -- Teardown --

    def clear(self) -> None:
        self.hide_primary()
        self.hide_root()
        self.clear_matches()

    @property
    def match_count(self) -> int:
        return len(self._matches)

    @property
    def overlay_count(self) -> int:
        return len(self._matches) + (self._primary is not None) + (self._root is not None)

    # -- Internals --

    def _create(self, kind: OverlayKind) -> etree._Element:
        body = self._page.body
        overlay = body.makeelement(OVERLAY_TAG, {"data-kind": kind.value})
        body.append(overlay)
        return overlay

    def _position(self, overlay: etree._Element, kind: OverlayKind, target: etree._Element) -> None:
        rect = self._page.bounding_box(target)
        geometry = rect.to_style() if rect is not None else "display: none"
        overlay.set("style", f"{_BASE_STYLE}; {_KIND_STYLE[kind]}; {geometry}")
        overlay.set("data-target", full_xpath(target))

    @staticmethod
    def _remove(overlay: etree._Element | None) -> None:
        if overlay is None:
            return
        parent = overlay.getparent()
        if parent is not None:
            parent.remove(overlay)
