# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Pattern matching and path resolution.

``find_matches`` is the single matching routine used by both the live
selection controller and the extractor:

  1. Exact: evaluate ``./<pattern>`` against the root (document order).
  2. Fallback (exact found nothing): every descendant with the pattern's
     last tag whose nearest ancestors (up to 3) carry the expected tags.

The fallback trades precision for recall on lists whose items have
irregular wrapper depth.  It never looks at text content.

Resolution helpers never raise: malformed expressions are logged and
treated as "no result".
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from cssselect import SelectorError
from lxml import etree
from lxml.cssselect import CSSSelector

from .dom import contains, is_element, tag_of
from .errors import SelectorSyntaxError
from .paths import relative_path

logger = logging.getLogger("pathpick.matcher")

_INDEX = re.compile(r"\[\d+\]")

# ancestor levels verified per fallback candidate
FALLBACK_ANCESTOR_LEVELS = 3
# ancestor levels tried when promoting a hovered node
PROMOTION_LEVELS = 3


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def compile_xpath(expr: str) -> etree.XPath:
    try:
        return etree.XPath(expr)
    except etree.XPathSyntaxError as e:
        raise SelectorSyntaxError(f"Invalid XPath {expr!r}: {e}", selector=expr) from e


def compile_css(selector: str) -> CSSSelector:
    try:
        return CSSSelector(selector, translator="html")
    except (SelectorError, etree.XPathError) as e:
        raise SelectorSyntaxError(f"Invalid CSS selector {selector!r}: {e}", selector=selector) from e


def resolve_xpath(context: etree._Element | etree._ElementTree, xpath: str) -> etree._Element | None:
    """First element matched by *xpath* in document order, or None."""
    if not xpath:
        return None
    try:
        result = compile_xpath(xpath)(context)
    except (SelectorSyntaxError, etree.XPathError) as e:
        logger.debug("XPath evaluation failed for %r: %s", xpath, e)
        return None
    if isinstance(result, list):
        for item in result:
            if is_element(item):
                return item
    return None


def resolve_css(context: etree._Element | etree._ElementTree, selector: str) -> etree._Element | None:
    """First element matched by CSS *selector* in document order, or None."""
    if not selector:
        return None
    root = context.getroot() if isinstance(context, etree._ElementTree) else context.getroottree().getroot()
    try:
        found = compile_css(selector)(root)
    except (SelectorSyntaxError, etree.XPathError) as e:
        logger.debug("CSS selector failed for %r: %s", selector, e)
        return None
    return found[0] if found else None


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def _segments(pattern: str) -> list[str]:
    return [_INDEX.sub("", s).lower() for s in pattern.split("/") if s.strip()]


def exact_matches(pattern: str, root: etree._Element) -> list[etree._Element]:
    try:
        result = root.xpath(f"./{pattern}")
    except etree.XPathError as e:
        logger.debug("Pattern %r failed exact evaluation: %s", pattern, e)
        return []
    if not isinstance(result, list):
        return []
    return [el for el in result if is_element(el)]


def _chain_matches(candidate: etree._Element, segments: list[str], root: etree._Element) -> bool:
    levels = min(FALLBACK_ANCESTOR_LEVELS, len(segments) - 1)
    current = candidate
    for offset in range(1, levels + 1):
        index = len(segments) - 1 - offset
        current = current.getparent()
        if current is None or current is root:
            # only the outermost segment may be absorbed by the root itself
            return index == 0
        if tag_of(current) != segments[index]:
            return False
    return True


def fallback_matches(pattern: str, root: etree._Element) -> list[etree._Element]:
    segments = _segments(pattern)
    if not segments:
        return []
    last = segments[-1]
    return [
        el
        for el in root.iterdescendants()
        if is_element(el) and tag_of(el) == last and _chain_matches(el, segments, root)
    ]


def find_matches(pattern: str, root: etree._Element) -> list[etree._Element]:
    """All elements under *root* matching the relative *pattern*, in document order.

    Position predicates (``[n]``) are dropped first, so a stored item path
    matches every sibling item.
    """
    pattern = _INDEX.sub("", (pattern or "").strip().strip("/"))
    if not pattern:
        return []
    exact = exact_matches(pattern, root)
    if exact:
        return exact
    matches = fallback_matches(pattern, root)
    if matches:
        logger.debug("Pattern %r matched %d elements via fallback", pattern, len(matches))
    return matches


# ---------------------------------------------------------------------------
# Ancestor promotion
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Promotion:
    """An ancestor that yields more matches than the element it replaces."""

    element: etree._Element
    pattern: str
    matches: tuple[etree._Element, ...]


def promote_for_matches(
    node: etree._Element,
    root: etree._Element,
    current_count: int,
) -> Promotion | None:
    """Nearest ancestor (up to 3 levels, strictly inside *root*) with more matches."""
    ancestor = node
    for _ in range(PROMOTION_LEVELS):
        ancestor = ancestor.getparent()
        if ancestor is None or ancestor is root or not contains(root, ancestor):
            return None
        pattern = relative_path(ancestor, root)
        matches = find_matches(pattern, root)
        if len(matches) > current_count:
            return Promotion(element=ancestor, pattern=pattern, matches=tuple(matches))
    return None
