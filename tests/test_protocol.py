# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for pathpick.protocol — typed messages and selector specs."""

from __future__ import annotations

import pytest

from pathpick.errors import ProtocolError
from pathpick.paths import describe
from pathpick.protocol import (
    ActivateListItemSelectionMode,
    CollectData,
    DeactivateSelectionMode,
    ElementSelected,
    ListSelectorSpec,
    Response,
    SearchWithSelector,
    SingleSelectorSpec,
    parse_event,
    parse_request,
    parse_selector,
    preview_event,
    selection_event,
    selector_from_selection,
    to_wire,
)
from tests._dom_helpers import PRODUCT_HTML, el, make_page


@pytest.fixture
def kettle():
    page = make_page(PRODUCT_HTML)
    return describe(el(page, "/html/body/div/ul/li[1]/h3"))


class TestSelectorSpecs:
    def test_type_is_inferred(self):
        assert isinstance(parse_selector({"cssSelector": ".title"}), SingleSelectorSpec)
        assert isinstance(parse_selector({"rootFullXPath": "/html/body/ul"}), ListSelectorSpec)

    def test_single_accepts_xpath_alias(self):
        spec = parse_selector({"type": "single", "xpath": "//h1"})
        assert spec.specific_xpath == "//h1"
        assert to_wire(spec) == {"type": "single", "xpath": "//h1"}

    def test_single_needs_a_locator(self):
        with pytest.raises(ProtocolError, match="Invalid selector spec"):
            parse_selector({"type": "single"})

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ProtocolError):
            parse_selector({"type": "table", "fullXPath": "/html"})

    def test_list_nested_form_is_flattened(self):
        spec = parse_selector(
            {"type": "list", "rootElement": {"fullXPath": "/html/body/ul"}, "itemSelector": {"relativeXPath": "li"}}
        )
        assert spec.root_full_xpath == "/html/body/ul"
        assert spec.relative_xpath == "li"

    def test_list_wire_form(self):
        spec = ListSelectorSpec(root_full_xpath="/html/body/ul", relative_xpath="li/a")
        assert to_wire(spec) == {"type": "list", "rootFullXPath": "/html/body/ul", "relativeXPath": "li/a"}

    def test_snake_case_input(self):
        spec = parse_selector({"type": "list", "root_full_xpath": "/html/body/ul", "relative_xpath": "li"})
        assert spec.relative_xpath == "li"


class TestRequests:
    def test_list_activation(self):
        req = parse_request({"action": "activateListItemSelectionMode", "rootXPath": "/html/body/ul"})
        assert isinstance(req, ActivateListItemSelectionMode)
        assert req.root_xpath == "/html/body/ul"

    def test_missing_root_defaults_to_empty(self):
        req = parse_request({"action": "activateListItemSelectionMode"})
        assert req.root_xpath == ""

    def test_collect_keeps_raw_selectors(self):
        req = parse_request({"action": "collectData", "selectors": {"x": {"bogus": True}}})
        assert isinstance(req, CollectData)
        assert req.selectors == {"x": {"bogus": True}}

    def test_search_request(self):
        req = parse_request({"action": "searchWithSelector", "selectorType": "xpath", "selector": "//h1"})
        assert isinstance(req, SearchWithSelector)
        assert (req.selector_type, req.selector) == ("xpath", "//h1")

    def test_search_rejects_unknown_selector_type(self):
        with pytest.raises(ProtocolError):
            parse_request({"action": "searchWithSelector", "selectorType": "id", "selector": "main"})

    def test_unknown_action(self):
        with pytest.raises(ProtocolError):
            parse_request({"action": "selfDestruct"})

    def test_wire_form(self):
        assert to_wire(DeactivateSelectionMode()) == {"action": "deactivateSelectionMode"}

    def test_response_helpers(self):
        assert Response.ok({"n": 1}).data == {"n": 1}
        failed = Response.fail("no receiver")
        assert failed.success is False
        assert failed.error == "no receiver"


class TestEvents:
    def test_preview_omits_list_fields_in_single_mode(self, kettle):
        wire = to_wire(preview_event(kettle))
        assert wire["action"] == "elementHighlighted"
        assert wire["data"]["tagName"] == "h3"
        assert wire["data"]["fullXPath"] == "/html/body/div/ul/li[1]/h3"
        assert "relativeXPath" not in wire["data"]
        assert "matchingCount" not in wire["data"]

    def test_preview_with_list_fields(self, kettle):
        data = to_wire(preview_event(kettle, relative_xpath="li/h3", matching_count=3))["data"]
        assert data["relativeXPath"] == "li/h3"
        assert data["matchingCount"] == 3

    def test_selection_event_survives_the_wire(self, kettle):
        event = selection_event(
            kettle,
            root_full_xpath="/html/body/div/ul",
            relative_xpath="li/h3",
            matching_values=["Kettle", "Toaster"],
            matching_paths=["/html/body/div/ul/li[1]/h3", "/html/body/div/ul/li[2]/h3"],
        )
        parsed = parse_event(to_wire(event))
        assert isinstance(parsed, ElementSelected)
        assert parsed == event
        assert parsed.data.matching_count == 2

    def test_unknown_event(self):
        with pytest.raises(ProtocolError):
            parse_event({"action": "elementDeleted", "data": {}})


class TestSelectorFromSelection:
    def test_list_pick(self, kettle):
        event = selection_event(kettle, root_full_xpath="/html/body/div/ul", relative_xpath="li/h3", matching_values=[])
        spec = selector_from_selection(event)
        assert spec == ListSelectorSpec(root_full_xpath="/html/body/div/ul", relative_xpath="li/h3")

    def test_single_pick(self, kettle):
        spec = selector_from_selection(selection_event(kettle))
        assert isinstance(spec, SingleSelectorSpec)
        assert spec.full_xpath == "/html/body/div/ul/li[1]/h3"
        assert spec.css_selector == "body > div > ul > li:nth-child(1) > h3"
        assert spec.specific_xpath == "/html/body/div/ul/li[1]/h3"
