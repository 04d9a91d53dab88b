# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Typed message protocol between the UI and the in-page agent.

Requests (UI → agent) and events (agent → UI) are tagged unions keyed on
``action``; selector specs are a tagged union keyed on ``type``.  Wire form
is camelCase (``model_dump(by_alias=True)``); Python code uses snake_case
field names.  Every message is a self-contained snapshot, never a delta.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from . import NodeDescriptor
from .errors import ProtocolError


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Selector specs (persisted, replayable)
# ---------------------------------------------------------------------------


class SingleSelectorSpec(_Message):
    """One element, resolved by full XPath, then specific XPath, then CSS."""

    type: Literal["single"] = "single"
    full_xpath: str | None = Field(None, alias="fullXPath")
    specific_xpath: str | None = Field(
        None,
        validation_alias=AliasChoices("specific_xpath", "specificXPath", "xpath"),
        serialization_alias="xpath",
    )
    css_selector: str | None = Field(None, alias="cssSelector")

    @model_validator(mode="after")
    def _needs_a_locator(self) -> SingleSelectorSpec:
        if not (self.full_xpath or self.specific_xpath or self.css_selector):
            raise ValueError("single selector needs fullXPath, xpath or cssSelector")
        return self


class ListSelectorSpec(_Message):
    """Every element matching a relative pattern under a root."""

    type: Literal["list"] = "list"
    root_full_xpath: str = Field("", alias="rootFullXPath")
    relative_xpath: str | None = Field(None, alias="relativeXPath")

    @model_validator(mode="before")
    @classmethod
    def _flatten_nested(cls, raw: Any) -> Any:
        # {rootElement: {fullXPath}, itemSelector: {relativeXPath}} as stored by older panels
        if not isinstance(raw, dict) or "rootElement" not in raw:
            return raw
        flat = {k: v for k, v in raw.items() if k not in ("rootElement", "itemSelector")}
        root = raw.get("rootElement") or {}
        item = raw.get("itemSelector") or {}
        flat.setdefault("rootFullXPath", root.get("fullXPath", ""))
        if item.get("relativeXPath"):
            flat.setdefault("relativeXPath", item["relativeXPath"])
        return flat


SelectorSpec = Annotated[SingleSelectorSpec | ListSelectorSpec, Field(discriminator="type")]

_selector_adapter: TypeAdapter[SingleSelectorSpec | ListSelectorSpec] = TypeAdapter(SelectorSpec)


def parse_selector(raw: Any) -> SingleSelectorSpec | ListSelectorSpec:
    """Validate a selector spec; a missing ``type`` is inferred from its keys."""
    if isinstance(raw, SingleSelectorSpec | ListSelectorSpec):
        return raw
    if isinstance(raw, dict) and "type" not in raw:
        is_list = any(k in raw for k in ("rootFullXPath", "root_full_xpath", "rootElement"))
        raw = {**raw, "type": "list" if is_list else "single"}
    try:
        return _selector_adapter.validate_python(raw)
    except ValidationError as e:
        raise ProtocolError(f"Invalid selector spec: {e.errors(include_url=False)}") from e


# ---------------------------------------------------------------------------
# Requests (UI → agent)
# ---------------------------------------------------------------------------


class ActivateSelectionMode(_Message):
    action: Literal["activateSelectionMode"] = "activateSelectionMode"


class ActivateListItemSelectionMode(_Message):
    action: Literal["activateListItemSelectionMode"] = "activateListItemSelectionMode"
    root_xpath: str = Field("", alias="rootXPath")


class DeactivateSelectionMode(_Message):
    action: Literal["deactivateSelectionMode"] = "deactivateSelectionMode"


class CollectData(_Message):
    """Run the extractor; selectors stay raw so bad entries degrade per key."""

    action: Literal["collectData"] = "collectData"
    selectors: dict[str, Any] = Field(default_factory=dict)
    url: str = ""


class SearchWithSelector(_Message):
    """Find and flash the first element matching one stored locator."""

    action: Literal["searchWithSelector"] = "searchWithSelector"
    selector_type: Literal["css", "xpath"] = Field("css", alias="selectorType")
    selector: str = ""


Request = Annotated[
    ActivateSelectionMode
    | ActivateListItemSelectionMode
    | DeactivateSelectionMode
    | CollectData
    | SearchWithSelector,
    Field(discriminator="action"),
]

_request_adapter: TypeAdapter[Any] = TypeAdapter(Request)


class FoundElement(_Message):
    text: str
    tag_name: str = Field(alias="tagName")


class Response(_Message):
    success: bool
    error: str | None = None
    data: Any = None

    @classmethod
    def ok(cls, data: Any = None) -> Response:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> Response:
        return cls(success=False, error=error)


# ---------------------------------------------------------------------------
# Events (agent → UI)
# ---------------------------------------------------------------------------


class Attribute(_Message):
    name: str
    value: str


class PreviewData(_Message):
    tag_name: str = Field(alias="tagName")
    text: str = ""
    xpath: str = ""
    full_xpath: str = Field("", alias="fullXPath")
    relative_xpath: str | None = Field(None, alias="relativeXPath")
    matching_count: int | None = Field(None, alias="matchingCount")


class SelectionData(_Message):
    tag_name: str = Field(alias="tagName")
    id: str | None = None
    classes: list[str] = Field(default_factory=list)
    attributes: list[Attribute] = Field(default_factory=list)
    text: str = ""
    css_selector: str = Field("", alias="cssSelector")
    xpath: str = ""
    full_xpath: str = Field("", alias="fullXPath")
    root_full_xpath: str | None = Field(None, alias="rootFullXPath")
    relative_xpath: str | None = Field(None, alias="relativeXPath")
    matching_count: int | None = Field(None, alias="matchingCount")
    matching_values: list[str] | None = Field(None, alias="matchingValues")
    matching_paths: list[str] | None = Field(None, alias="matchingPaths")


class SelectionModeActive(_Message):
    action: Literal["selectionModeActive"] = "selectionModeActive"
    data: bool


class ScrollingModeActive(_Message):
    action: Literal["scrollingModeActive"] = "scrollingModeActive"
    data: bool


class ElementHighlighted(_Message):
    action: Literal["elementHighlighted"] = "elementHighlighted"
    data: PreviewData


class ElementSelected(_Message):
    action: Literal["elementSelected"] = "elementSelected"
    data: SelectionData


Event = Annotated[
    SelectionModeActive | ScrollingModeActive | ElementHighlighted | ElementSelected,
    Field(discriminator="action"),
]

_event_adapter: TypeAdapter[Any] = TypeAdapter(Event)


# ---------------------------------------------------------------------------
# Parsing / building
# ---------------------------------------------------------------------------


def parse_request(raw: Any):
    try:
        return _request_adapter.validate_python(raw)
    except ValidationError as e:
        raise ProtocolError(f"Invalid request: {e.errors(include_url=False)}") from e


def parse_event(raw: Any):
    try:
        return _event_adapter.validate_python(raw)
    except ValidationError as e:
        raise ProtocolError(f"Invalid event: {e.errors(include_url=False)}") from e


def to_wire(message: BaseModel) -> dict:
    return message.model_dump(by_alias=True, exclude_none=True)


def preview_event(
    descriptor: NodeDescriptor,
    *,
    relative_xpath: str | None = None,
    matching_count: int | None = None,
) -> ElementHighlighted:
    return ElementHighlighted(
        data=PreviewData(
            tag_name=descriptor.tag_name,
            text=descriptor.text_content,
            xpath=descriptor.specific_xpath,
            full_xpath=descriptor.full_xpath,
            relative_xpath=relative_xpath,
            matching_count=matching_count,
        )
    )


def selection_event(
    descriptor: NodeDescriptor,
    *,
    root_full_xpath: str | None = None,
    relative_xpath: str | None = None,
    matching_values: list[str] | None = None,
    matching_paths: list[str] | None = None,
) -> ElementSelected:
    return ElementSelected(
        data=SelectionData(
            tag_name=descriptor.tag_name,
            id=descriptor.id,
            classes=sorted(descriptor.classes),
            attributes=[Attribute(name=n, value=v) for n, v in descriptor.attributes],
            text=descriptor.text_content,
            css_selector=descriptor.css_selector,
            xpath=descriptor.specific_xpath,
            full_xpath=descriptor.full_xpath,
            root_full_xpath=root_full_xpath,
            relative_xpath=relative_xpath,
            matching_count=len(matching_values) if matching_values is not None else None,
            matching_values=matching_values,
            matching_paths=matching_paths,
        )
    )


def selector_from_selection(event: ElementSelected) -> SingleSelectorSpec | ListSelectorSpec:
    """SelectorSpec the UI should persist for a finalized pick."""
    data = event.data
    if data.root_full_xpath:
        return ListSelectorSpec(root_full_xpath=data.root_full_xpath, relative_xpath=data.relative_xpath or None)
    return SingleSelectorSpec(
        full_xpath=data.full_xpath or None,
        specific_xpath=data.xpath or None,
        css_selector=data.css_selector or None,
    )
