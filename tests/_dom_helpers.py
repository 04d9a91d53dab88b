# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared builders for page/controller tests."""

from __future__ import annotations

from lxml import etree

from pathpick.channel import MessageChannel
from pathpick.dom import OVERLAY_TAG, Page, Rect
from pathpick.matcher import resolve_xpath

LIST_HTML = "<html><body><ul><li><a>A</a></li><li><a>B</a></li></ul></body></html>"

PRODUCT_HTML = """\
<html>
<head><title>Shop</title></head>
<body>
  <div id="main">
    <h1 class="title">  Spring Catalog  </h1>
    <ul class="products">
      <li class="product"><h3>Kettle</h3><span class="price">19.99</span></li>
      <li class="product"><h3>Toaster</h3><span class="price">24.50</span></li>
      <li class="product"><h3>Blender</h3><span class="price">39.00</span></li>
    </ul>
    <p>Footer text</p>
  </div>
</body>
</html>
"""


def make_page(html: str = LIST_HTML, *, url: str = "https://shop.example/list") -> Page:
    return Page.from_html(html, url=url)


def el(page: Page, xpath: str) -> etree._Element:
    found = resolve_xpath(page.document.getroottree(), xpath)
    assert found is not None, f"fixture xpath did not resolve: {xpath}"
    return found


def stack_boxes(page: Page, xpaths: list[str], *, height: float = 20.0, width: float = 200.0) -> None:
    """Give each element a row box stacked top to bottom."""
    for i, xpath in enumerate(xpaths):
        page.set_box(el(page, xpath), Rect(0, i * height, width, height))


def overlay_nodes(page: Page, kind: str | None = None) -> list[etree._Element]:
    nodes = page.document.iter(OVERLAY_TAG)
    return [n for n in nodes if kind is None or n.get("data-kind") == kind]


class EventLog:
    """Records every event emitted on a channel."""

    def __init__(self, channel: MessageChannel) -> None:
        self.events: list = []
        channel.subscribe(self.events.append)

    def actions(self) -> list[str]:
        return [e.action for e in self.events]

    def of(self, cls: type) -> list:
        return [e for e in self.events if isinstance(e, cls)]

    def last(self, cls: type):
        found = self.of(cls)
        assert found, f"no {cls.__name__} emitted"
        return found[-1]

    def clear(self) -> None:
        self.events.clear()
