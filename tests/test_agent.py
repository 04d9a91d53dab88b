# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for pathpick.agent — request routing inside the page."""

from __future__ import annotations

import pytest

from pathpick.agent import PageAgent
from pathpick.config import Settings
from pathpick.controller import SelectionMode
from tests._dom_helpers import PRODUCT_HTML, el, make_page


@pytest.fixture
def page():
    return make_page(PRODUCT_HTML)


@pytest.fixture
def agent(page, channel, settings):
    a = PageAgent(page, channel, settings=settings)
    a.attach()
    return a


class TestRouting:
    def test_activate(self, agent, channel):
        response = channel.request({"action": "activateSelectionMode"})
        assert response.success is True
        assert agent.controller.mode is SelectionMode.HOVER

    def test_list_activation(self, agent, channel, page):
        response = channel.request({"action": "activateListItemSelectionMode", "rootXPath": "/html/body/div/ul"})
        assert response.success is True
        assert agent.controller.session.root_bound

    @pytest.mark.parametrize("root", ["", "   "])
    def test_empty_root_is_rejected_without_state_change(self, agent, channel, page, root):
        response = channel.request({"action": "activateListItemSelectionMode", "rootXPath": root})
        assert response.success is False
        assert "rootXPath" in response.error
        assert agent.controller.mode is SelectionMode.IDLE
        assert page.listener_count() == 0

    def test_unresolved_root_fails(self, agent, channel, page):
        response = channel.request({"action": "activateListItemSelectionMode", "rootXPath": "/html/body/table"})
        assert response.success is False
        assert "not found" in response.error
        assert page.listener_count() == 0

    def test_deactivate(self, agent, channel, page):
        channel.request({"action": "activateSelectionMode"})
        assert channel.request({"action": "deactivateSelectionMode"}).success is True
        assert page.listener_count() == 0

    def test_collect(self, agent, channel):
        response = channel.request(
            {
                "action": "collectData",
                "url": "https://shop.example/spring",
                "selectors": {
                    "title": {"cssSelector": ".title"},
                    "names": {"type": "list", "rootFullXPath": "/html/body/div/ul", "relativeXPath": "li/h3"},
                    "bad": {"type": "single"},
                },
            }
        )
        assert response.success is True
        assert response.data["url"] == "https://shop.example/spring"
        assert response.data["data"] == {"title": "Spring Catalog", "names": ["Kettle", "Toaster", "Blender"]}

    def test_detach(self, agent, channel, page):
        channel.request({"action": "activateSelectionMode"})
        agent.detach()
        assert page.listener_count() == 0
        assert channel.request({"action": "activateSelectionMode"}).error == "no receiver"


def _search(channel, selector_type, selector):
    return channel.request({"action": "searchWithSelector", "selectorType": selector_type, "selector": selector})


class TestSearch:
    @pytest.mark.parametrize(
        ("selector_type", "selector"),
        [("css", "li.product > span.price"), ("xpath", '//span[contains(@class,"price")]')],
    )
    def test_first_match_is_reported(self, agent, channel, selector_type, selector):
        response = _search(channel, selector_type, selector)
        assert response.success is True
        assert response.data == {"text": "19.99", "tagName": "span"}

    def test_text_is_trimmed(self, agent, channel):
        response = _search(channel, "css", ".title")
        assert response.data == {"text": "Spring Catalog", "tagName": "h1"}

    @pytest.mark.parametrize(
        ("selector_type", "selector"),
        [("css", "table.prices"), ("xpath", "/html/body/table"), ("css", "li["), ("xpath", "//[")],
    )
    def test_miss_reports_not_found(self, agent, channel, page, selector_type, selector):
        response = _search(channel, selector_type, selector)
        assert response.success is False
        assert response.error == "Element not found"
        assert page.pending_flashes == 0

    def test_empty_selector_is_rejected(self, agent, channel):
        response = _search(channel, "css", "  ")
        assert response.success is False
        assert response.error == "selector is required"

    def test_found_element_is_flashed(self, page, channel):
        PageAgent(page, channel, settings=Settings(flash_seconds=3.0)).attach()
        _search(channel, "css", ".title")
        assert page.pending_flashes == 1
        assert "outline" in el(page, "/html/body/div/h1").get("style")

    def test_search_leaves_selection_idle(self, agent, channel):
        _search(channel, "css", ".title")
        assert agent.controller.mode is SelectionMode.IDLE
