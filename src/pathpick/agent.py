# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""In-page agent: routes channel requests to the controller and extractor."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from .channel import MessageChannel
from .config import Settings
from .controller import SelectionController
from .dom import Page, tag_of, text_of
from .extractor import extract_record
from .matcher import resolve_css, resolve_xpath
from .protocol import (
    ActivateListItemSelectionMode,
    ActivateSelectionMode,
    CollectData,
    DeactivateSelectionMode,
    FoundElement,
    Response,
    SearchWithSelector,
)

logger = logging.getLogger("pathpick.agent")


class PageAgent:
    """Everything that lives "inside the page": one controller plus the extractor."""

    def __init__(self, page: Page, channel: MessageChannel, *, settings: Settings | None = None) -> None:
        self.page = page
        self.channel = channel
        self.settings = settings or Settings.from_env()
        self.controller = SelectionController(page, channel)

    def attach(self) -> None:
        self.channel.serve(self.handle)

    def detach(self) -> None:
        self.controller.deactivate()
        self.channel.close()

    def handle(self, message: BaseModel) -> Response:
        match message:
            case ActivateSelectionMode():
                return Response(success=self.controller.activate())
            case ActivateListItemSelectionMode(root_xpath=root_xpath):
                if not root_xpath.strip():
                    return Response.fail("rootXPath is required")
                if self.controller.activate_list(root_xpath):
                    return Response.ok()
                return Response.fail(f"List root not found: {root_xpath}")
            case DeactivateSelectionMode():
                self.controller.deactivate()
                return Response.ok()
            case CollectData(selectors=selectors, url=url):
                record = extract_record(self.page, selectors, url=url, settings=self.settings)
                return Response.ok(record.to_dict())
            case SearchWithSelector(selector_type=selector_type, selector=selector):
                return self.search(selector_type, selector)
            case _:
                logger.warning("Unsupported request: %s", type(message).__name__)
                return Response.fail(f"unsupported request {type(message).__name__}")

    def search(self, selector_type: str, selector: str) -> Response:
        """Flash the first element matched by *selector* and report what it is."""
        if not selector.strip():
            return Response.fail("selector is required")
        if selector_type == "xpath":
            found = resolve_xpath(self.page.document.getroottree(), selector)
        else:
            found = resolve_css(self.page.document, selector)
        if found is None:
            logger.debug("No element for %s selector %r", selector_type, selector)
            return Response.fail("Element not found")
        if self.settings.flash_seconds > 0:
            self.page.flash([found], self.settings.flash_seconds)
        result = FoundElement(text=text_of(found).strip(), tag_name=tag_of(found))
        return Response.ok(result.model_dump(by_alias=True))
