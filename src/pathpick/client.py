# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""UI-side request helpers.

Validates input before anything is sent (a key is required to start a
selection), tracks the "selection in progress" affordance and resets it
whenever the agent declines or does not answer.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from . import ExtractionRecord
from .channel import MessageChannel
from .protocol import (
    ActivateListItemSelectionMode,
    ActivateSelectionMode,
    CollectData,
    DeactivateSelectionMode,
    ElementHighlighted,
    ElementSelected,
    FoundElement,
    ListSelectorSpec,
    ScrollingModeActive,
    SearchWithSelector,
    SelectionModeActive,
    SingleSelectorSpec,
    selector_from_selection,
)

logger = logging.getLogger("pathpick.client")


class SelectionClient:
    """Drives one agent through a channel on behalf of a key/value panel."""

    def __init__(self, channel: MessageChannel) -> None:
        self.channel = channel
        self.current_key: str | None = None
        self.in_progress = False
        self.scrolling = False
        self.last_preview: ElementHighlighted | None = None
        self.last_selection: ElementSelected | None = None
        self.selectors: dict[str, SingleSelectorSpec | ListSelectorSpec] = {}
        channel.subscribe(self._on_event)

    def close(self) -> None:
        self.channel.unsubscribe(self._on_event)

    # -- Requests --

    def start_selection(self, key: str) -> bool:
        if not self._begin(key):
            return False
        return self._send(ActivateSelectionMode())

    def start_list_selection(self, key: str, root_xpath: str) -> bool:
        if not root_xpath.strip():
            logger.info("List selection needs a root path")
            return False
        if not self._begin(key):
            return False
        return self._send(ActivateListItemSelectionMode(root_xpath=root_xpath))

    def stop_selection(self) -> bool:
        response = self.channel.request(DeactivateSelectionMode())
        self._reset()
        return response.success

    def collect(self, selectors: Mapping[str, Any] | None = None, *, url: str = "") -> ExtractionRecord | None:
        payload = {
            k: v.model_dump(by_alias=True, exclude_none=True) if isinstance(v, BaseModel) else v
            for k, v in (selectors if selectors is not None else self.selectors).items()
        }
        if not payload:
            logger.info("No selectors to collect")
            return None
        response = self.channel.request(CollectData(selectors=payload, url=url))
        if not response.success or not isinstance(response.data, dict):
            logger.warning("Collect failed: %s", response.error)
            return None
        data = response.data
        return ExtractionRecord(url=data.get("url", url), data=data.get("data", {}), timestamp=data["timestamp"])

    def search(self, selector: str, *, selector_type: str = "css") -> FoundElement | None:
        """Ask the page to flash the first match of *selector*; None when nothing matches."""
        if not selector or not selector.strip():
            return None
        if selector_type not in ("css", "xpath"):
            logger.info("Unknown selector type %r", selector_type)
            return None
        response = self.channel.request(SearchWithSelector(selector_type=selector_type, selector=selector))
        if not response.success:
            logger.info("Search for %r failed: %s", selector, response.error)
            return None
        return FoundElement.model_validate(response.data)

    def search_last_selection(self, selector_type: str = "css") -> FoundElement | None:
        """Re-find the last picked element by its CSS selector or specific XPath."""
        if self.last_selection is None:
            logger.info("No element has been selected yet")
            return None
        data = self.last_selection.data
        selector = data.xpath if selector_type == "xpath" else data.css_selector
        return self.search(selector or "", selector_type=selector_type)

    # -- Internals --

    def _begin(self, key: str) -> bool:
        if not key or not key.strip():
            logger.info("A key is required before selecting")
            return False
        self.current_key = key.strip()
        self.in_progress = True
        return True

    def _send(self, message: BaseModel) -> bool:
        response = self.channel.request(message)
        if not response.success:
            logger.warning("%s declined: %s", getattr(message, "action", "request"), response.error)
            self._reset()
        return response.success

    def _reset(self) -> None:
        self.current_key = None
        self.in_progress = False
        self.scrolling = False

    def _on_event(self, event: BaseModel) -> None:
        match event:
            case SelectionModeActive(data=False):
                self.in_progress = False
            case ScrollingModeActive(data=active):
                self.scrolling = active
            case ElementHighlighted():
                self.last_preview = event
            case ElementSelected():
                self.last_selection = event
                if self.current_key:
                    self.selectors[self.current_key] = selector_from_selection(event)
                self.current_key = None
