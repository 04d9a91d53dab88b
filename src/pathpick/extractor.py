# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Replay stored selector specs against a freshly loaded document.

Per key:
- list:   root full XPath → ``find_matches(relative_xpath)`` → trimmed texts
- single: full XPath → specific XPath → CSS selector; first hit wins

Per-key failures degrade to an empty list (list) or an omitted key
(single); ``extract`` itself never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from lxml import etree

from . import ExtractionRecord
from .config import Settings
from .dom import Page, text_of
from .errors import PathPickError
from .logging_config import bound_context
from .matcher import find_matches, resolve_css, resolve_xpath
from .protocol import ListSelectorSpec, SingleSelectorSpec, parse_selector

logger = logging.getLogger("pathpick.extractor")

Source = Page | etree._Element | etree._ElementTree


def _document_of(source: Source) -> etree._ElementTree:
    if isinstance(source, Page):
        return source.document.getroottree()
    if isinstance(source, etree._ElementTree):
        return source
    return source.getroottree()


def _extract_list(
    doc: etree._ElementTree,
    spec: ListSelectorSpec,
    page: Page | None,
    flash_seconds: float,
) -> list[str]:
    root = resolve_xpath(doc, spec.root_full_xpath) if spec.root_full_xpath else None
    if root is None:
        logger.info("List root not found: %s", spec.root_full_xpath)
        return []
    if not spec.relative_xpath:
        return []
    matches = find_matches(spec.relative_xpath, root)
    logger.debug("Pattern %r matched %d elements", spec.relative_xpath, len(matches))
    if page is not None and matches and flash_seconds > 0:
        page.flash(matches, flash_seconds)
    return [text_of(el).strip() for el in matches]


def _extract_single(doc: etree._ElementTree, spec: SingleSelectorSpec) -> str | None:
    for kind, locator in (("fullXPath", spec.full_xpath), ("xpath", spec.specific_xpath)):
        if locator:
            el = resolve_xpath(doc, locator)
            if el is not None:
                return text_of(el).strip()
            logger.debug("%s did not resolve: %s", kind, locator)
    if spec.css_selector:
        el = resolve_css(doc, spec.css_selector)
        if el is not None:
            return text_of(el).strip()
        logger.debug("cssSelector did not resolve: %s", spec.css_selector)
    return None


def extract(
    source: Source,
    selectors: Mapping[str, Any],
    *,
    highlight: bool = True,
    settings: Settings | None = None,
) -> dict[str, str | list[str]]:
    """Resolve every selector in *selectors* against *source*.

    *selectors* maps keys to ``SelectorSpec`` models or raw dicts; it is
    never mutated.  Matches of list selectors are flashed on the page when
    *source* is a ``Page`` and *highlight* is set.
    """
    settings = settings or Settings.from_env()
    page = source if isinstance(source, Page) and highlight else None
    results: dict[str, str | list[str]] = {}
    try:
        doc = _document_of(source)
    except Exception:
        logger.exception("Extraction source is not a document")
        return results

    for key, raw in selectors.items():
        with bound_context(key=key):
            try:
                spec = parse_selector(raw)
                if isinstance(spec, ListSelectorSpec):
                    results[key] = _extract_list(doc, spec, page, settings.flash_seconds)
                else:
                    value = _extract_single(doc, spec)
                    if value is not None:
                        results[key] = value
                    else:
                        logger.info("No locator resolved for %r", key)
            except PathPickError as e:
                logger.warning("Skipping %r: %s", key, e)
            except Exception:
                logger.exception("Unexpected failure extracting %r", key)
    return results


def extract_record(
    source: Source,
    selectors: Mapping[str, Any],
    *,
    url: str = "",
    highlight: bool = True,
    settings: Settings | None = None,
) -> ExtractionRecord:
    if not url and isinstance(source, Page):
        url = source.url
    with bound_context(url=url):
        data = extract(source, selectors, highlight=highlight, settings=settings)
    return ExtractionRecord(url=url, data=data)
