# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Selector and path generation for a single element.

Pure functions over an lxml tree; nothing here mutates the document.

- css_selector: short CSS selector (id > unique class > rare tag.class > structural path)
- specific_xpath: attribute-assisted XPath (id > rare class > full path)
- full_xpath: absolute, position-qualified path from ``/html``
- relative_path: index-stripped tag pattern between a root and a descendant

All walks go through ``ancestor_steps`` with a per-step formatter so the
indexed and generic variants cannot drift apart.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from lxml import etree

from . import NodeDescriptor
from .dom import contains, element_children, tag_of, text_of

StepFormatter = Callable[[etree._Element], str]

# id/class length limits: anything longer is likely generated and unstable
_MAX_TOKEN_LEN = 20
_RARE_CLASS_LIMIT = 5

_SIMPLE_ID = re.compile(r"^[\w-]+$")
_SIMPLE_CLASS = re.compile(r"^[A-Za-z0-9-]+$")
_INDEX = re.compile(r"\[\d+\]")

_CLASS_COUNT = etree.XPath("count(//*[contains(concat(' ', normalize-space(@class), ' '), concat(' ', $cls, ' '))])")


# ---------------------------------------------------------------------------
# Ancestor walk
# ---------------------------------------------------------------------------


def same_tag_position(el: etree._Element) -> tuple[int, int]:
    """(1-based position among same-tag siblings, number of same-tag siblings)."""
    parent = el.getparent()
    if parent is None:
        return 1, 1
    position = 0
    total = 0
    for sibling in parent:
        if sibling.tag == el.tag:
            total += 1
            if sibling is el:
                position = total
    return position, total


def indexed_step(el: etree._Element) -> str:
    position, total = same_tag_position(el)
    tag = tag_of(el)
    return f"{tag}[{position}]" if total > 1 else tag


def generic_step(el: etree._Element) -> str:
    return tag_of(el)


def css_step(el: etree._Element) -> str:
    _, total = same_tag_position(el)
    tag = tag_of(el)
    if total <= 1:
        return tag
    parent = el.getparent()
    nth = next(i for i, c in enumerate(element_children(parent), 1) if c is el)
    return f"{tag}:nth-child({nth})"


def ancestor_steps(
    node: etree._Element,
    formatter: StepFormatter,
    *,
    stop: etree._Element | None = None,
) -> list[str]:
    """Format *node* and its ancestors up to *stop* (exclusive), top-down.

    With ``stop=None`` the walk ends at the document element.
    """
    steps: list[str] = []
    current: etree._Element | None = node
    while current is not None and current is not stop:
        steps.append(formatter(current))
        current = current.getparent()
    steps.reverse()
    return steps


# ---------------------------------------------------------------------------
# Attribute helpers
# ---------------------------------------------------------------------------


def _classes(el: etree._Element) -> list[str]:
    seen: dict[str, None] = {}
    for cls in (el.get("class") or "").split():
        seen.setdefault(cls, None)
    return list(seen)


def _usable_id(el: etree._Element) -> str | None:
    el_id = el.get("id")
    if el_id and len(el_id) < _MAX_TOKEN_LEN and _SIMPLE_ID.match(el_id):
        return el_id
    return None


def _usable_classes(el: etree._Element) -> list[str]:
    return [c for c in _classes(el) if len(c) < _MAX_TOKEN_LEN and _SIMPLE_CLASS.match(c)]


def class_count(el: etree._Element, cls: str) -> int:
    """Number of elements in *el*'s document carrying class token *cls*."""
    return int(_CLASS_COUNT(el.getroottree(), cls=cls))


def _body_of(el: etree._Element) -> etree._Element | None:
    return el.getroottree().getroot().find("body")


# ---------------------------------------------------------------------------
# Public path builders
# ---------------------------------------------------------------------------


def full_xpath(node: etree._Element) -> str:
    """Absolute ``/html/...`` path; ``[n]`` only where same-tag siblings exist."""
    return "/" + "/".join(ancestor_steps(node, indexed_step))


def css_selector(node: etree._Element) -> str:
    el_id = _usable_id(node)
    if el_id:
        return f"#{el_id}"

    usable = _usable_classes(node)
    counts = {cls: class_count(node, cls) for cls in usable}
    for cls in usable:
        if counts[cls] == 1:
            return f".{cls}"
    for cls in usable:
        if counts[cls] < _RARE_CLASS_LIMIT:
            return f"{tag_of(node)}.{cls}"

    body = _body_of(node)
    if body is not None and node is body:
        return "body"
    if body is not None and contains(body, node):
        return " > ".join(["body", *ancestor_steps(node, css_step, stop=body)])
    return " > ".join(ancestor_steps(node, css_step))


def specific_xpath(node: etree._Element) -> str:
    tag = tag_of(node)
    el_id = _usable_id(node)
    if el_id:
        return f'//{tag}[@id="{el_id}"]'
    for cls in _usable_classes(node):
        if class_count(node, cls) < _RARE_CLASS_LIMIT:
            return f'//{tag}[contains(@class,"{cls}")]'
    return full_xpath(node)


def relative_path(node: etree._Element, root: etree._Element) -> str:
    """Generic tag-only pattern from *root* (exclusive) down to *node*.

    Empty string when *node* is *root* or lies outside it.
    """
    if node is root or not contains(root, node):
        return ""
    indexed = "/".join(ancestor_steps(node, indexed_step, stop=root))
    return _INDEX.sub("", indexed)


def describe(node: etree._Element) -> NodeDescriptor:
    el_id = node.get("id")
    return NodeDescriptor(
        tag_name=tag_of(node),
        id=el_id or None,
        classes=frozenset(_classes(node)),
        attributes=tuple((str(k), str(v)) for k, v in node.attrib.items()),
        text_content=text_of(node),
        css_selector=css_selector(node),
        specific_xpath=specific_xpath(node),
        full_xpath=full_xpath(node),
    )
