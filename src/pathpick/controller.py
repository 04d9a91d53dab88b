# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Selection state machine.

    IDLE ──activate()──▶ HOVER ──click──▶ SCROLLING ──click inside──▶ finalize ─▶ IDLE
                           ▲                  │
                           └──click outside───┘      wheel: descend / ascend the locked node

``list_mode`` runs in parallel: ``activate_list()`` binds a root and every
hover/lock/wheel step re-derives the relative pattern and its matches.

All mode changes go through ``_transition``.  The session object is
replaced wholesale on deactivation so no field survives into the next run.
Handlers catch lookup failures locally and fall back to "no result";
they never leave a listener or overlay behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from lxml import etree

from .channel import MessageChannel
from .dom import Click, InputEvent, Page, PointerOver, Wheel, contains, first_element_child, is_overlay, text_of
from .highlight import OverlayRenderer
from .matcher import find_matches, promote_for_matches, resolve_xpath
from .paths import describe, full_xpath, relative_path
from .protocol import ScrollingModeActive, SelectionModeActive, preview_event, selection_event

logger = logging.getLogger("pathpick.controller")


class SelectionMode(StrEnum):
    IDLE = "idle"
    HOVER = "hover"
    SCROLLING = "scrolling"


@dataclass
class SelectionSession:
    """Transient state of one selection run. Never persisted."""

    mode: SelectionMode = SelectionMode.IDLE
    list_mode: bool = False
    root: etree._Element | None = None
    hovered: etree._Element | None = None
    locked: etree._Element | None = None
    pattern: str = ""
    matches: list[etree._Element] = field(default_factory=list)

    @property
    def root_bound(self) -> bool:
        return self.list_mode and self.root is not None


class SelectionController:
    """Turns pointer, click and wheel input on a ``Page`` into selection events."""

    def __init__(self, page: Page, channel: MessageChannel | None = None) -> None:
        self.page = page
        self.channel = channel if channel is not None else MessageChannel()
        self.session = SelectionSession()
        self._renderer = OverlayRenderer(page)

    @property
    def mode(self) -> SelectionMode:
        return self.session.mode

    @property
    def overlays(self) -> OverlayRenderer:
        return self._renderer

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def activate(self) -> bool:
        """Enter hover selection. Re-activation starts a fresh session."""
        try:
            if self.session.mode is not SelectionMode.IDLE:
                self._teardown()
            self._transition(SelectionMode.HOVER)
            return True
        except Exception:
            logger.exception("Selection activation failed")
            self.deactivate()
            return False

    def activate_list(self, root_path: str) -> bool:
        """Enter list selection scoped to the first node matching *root_path*."""
        if not self.activate():
            return False
        self.session.list_mode = True
        root = resolve_xpath(self.page.document.getroottree(), root_path)
        if root is None:
            logger.warning("List root not found: %s", root_path)
            self.deactivate()
            return False
        self.session.root = root
        self._renderer.show_root(root)
        logger.debug("List root bound: %s", full_xpath(root))
        return True

    def deactivate(self) -> None:
        """Return to IDLE from any state. Safe to call repeatedly."""
        try:
            self._transition(SelectionMode.IDLE)
        except Exception:
            logger.exception("Selection teardown failed")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, target: SelectionMode) -> None:
        previous = self.session.mode
        if target is SelectionMode.IDLE:
            self._teardown()
            self.channel.emit(SelectionModeActive(data=False))
            self.channel.emit(ScrollingModeActive(data=False))
            return

        if previous is SelectionMode.IDLE:
            self.page.add_event_listener("pointerover", self._on_pointer_over)
            self.page.add_event_listener("click", self._on_click)
            self.page.add_event_listener("wheel", self._on_wheel)
            self.page.cursor = "crosshair"
        self.session.mode = target

        if previous is SelectionMode.IDLE:
            self.channel.emit(SelectionModeActive(data=True))
        if target is SelectionMode.SCROLLING and previous is not SelectionMode.SCROLLING:
            self.channel.emit(ScrollingModeActive(data=True))
        elif target is SelectionMode.HOVER and previous is SelectionMode.SCROLLING:
            self.session.locked = None
            self.channel.emit(ScrollingModeActive(data=False))

    def _teardown(self) -> None:
        self.page.remove_event_listener("pointerover", self._on_pointer_over)
        self.page.remove_event_listener("click", self._on_click)
        self.page.remove_event_listener("wheel", self._on_wheel)
        self.page.cursor = ""
        self._renderer.clear()
        self.session = SelectionSession()

    # ------------------------------------------------------------------
    # Input handlers
    # ------------------------------------------------------------------

    def _on_pointer_over(self, event: InputEvent) -> None:
        if not isinstance(event, PointerOver) or self.session.mode is not SelectionMode.HOVER:
            return
        event.prevent_default()
        try:
            self._hover(event.target)
        except Exception:
            logger.warning("Hover handling failed", exc_info=True)
            self._clear_matches()

    def _on_click(self, event: InputEvent) -> None:
        if not isinstance(event, Click) or self.session.mode is SelectionMode.IDLE:
            return
        event.prevent_default()
        try:
            if self.session.mode is SelectionMode.HOVER:
                self._lock(self.session.hovered if self.session.hovered is not None else event.target)
            elif self._inside_locked(event):
                self._finalize()
            else:
                self._transition(SelectionMode.HOVER)
                self._hover(event.target)
        except Exception:
            logger.warning("Click handling failed", exc_info=True)
            self._clear_matches()

    def _on_wheel(self, event: InputEvent) -> None:
        if not isinstance(event, Wheel) or self.session.mode is not SelectionMode.SCROLLING:
            return
        locked = self.session.locked
        if locked is None:
            return
        event.prevent_default()
        if event.delta_y > 0:
            nxt = first_element_child(locked)
        elif event.delta_y < 0:
            nxt = locked.getparent()
        else:
            nxt = None
        if nxt is None or is_overlay(nxt):
            return
        try:
            self.session.locked = nxt
            self._renderer.show_primary(nxt)
            if self.session.root_bound:
                self._refresh_matches(nxt, promote=False)
            self._preview(nxt)
        except Exception:
            logger.warning("Wheel navigation failed", exc_info=True)
            self._clear_matches()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _hover(self, target: etree._Element) -> None:
        effective = target
        if self.session.root_bound:
            effective = self._refresh_matches(target, promote=True)
        self.session.hovered = effective
        self._renderer.show_primary(effective)
        self._preview(effective)

    def _lock(self, target: etree._Element) -> None:
        self.session.locked = target
        self._transition(SelectionMode.SCROLLING)
        self._renderer.show_primary(target)
        if self.session.root_bound:
            self._refresh_matches(target, promote=False)
        self._preview(target)

    def _finalize(self) -> None:
        locked = self.session.locked
        descriptor = describe(locked)
        if self.session.root_bound:
            matches = self.session.matches
            event = selection_event(
                descriptor,
                root_full_xpath=full_xpath(self.session.root),
                relative_xpath=self.session.pattern or None,
                matching_values=[text_of(m).strip() for m in matches],
                matching_paths=[full_xpath(m) for m in matches],
            )
        else:
            event = selection_event(descriptor)
        self.channel.emit(event)
        logger.info("Selected %s", descriptor.full_xpath)
        self.deactivate()

    def _refresh_matches(self, node: etree._Element, *, promote: bool) -> etree._Element:
        """Recompute pattern and matches for *node*; returns the effective node."""
        root = self.session.root
        pattern = relative_path(node, root)
        matches = find_matches(pattern, root) if pattern else []
        if promote and not matches:
            promotion = promote_for_matches(node, root, len(matches))
            if promotion is not None:
                node, pattern, matches = promotion.element, promotion.pattern, list(promotion.matches)
        self.session.pattern = pattern
        self.session.matches = matches
        self._renderer.render_matches(matches)
        return node

    def _clear_matches(self) -> None:
        self.session.pattern = ""
        self.session.matches = []
        self._renderer.clear_matches()

    def _preview(self, node: etree._Element) -> None:
        descriptor = describe(node)
        if self.session.root_bound:
            event = preview_event(
                descriptor,
                relative_xpath=self.session.pattern,
                matching_count=len(self.session.matches),
            )
        else:
            event = preview_event(descriptor)
        self.channel.emit(event)

    def _inside_locked(self, event: Click) -> bool:
        locked = self.session.locked
        if locked is None:
            return False
        inside = self.page.contains_point(locked, event.x, event.y)
        if inside is None:
            return contains(locked, event.target)
        return inside
