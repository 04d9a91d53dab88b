# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Document loading: local HTML files and Playwright-rendered URLs.

The selection engine itself is browser-agnostic; this module only turns
a source (path or URL) into a ``Page`` so the CLI can describe nodes and
replay selector specs against live sites.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path

from playwright.async_api import Browser, Playwright, async_playwright

from .config import Settings
from .dom import Page, parse_html
from .errors import BrowserError, DocumentLoadError

logger = logging.getLogger("pathpick.browser")

DEFAULT_LOCALE = "en-US"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class BrowserConfig:
    """Browser launch configuration."""

    headless: bool = True
    locale: str = DEFAULT_LOCALE
    viewport_width: int = 1280
    viewport_height: int = 800
    user_agent: str = DEFAULT_USER_AGENT
    timeout_ms: int = 30000
    wait_until: str = "load"

    @classmethod
    def from_settings(cls, settings: Settings) -> BrowserConfig:
        return cls(headless=settings.headless, timeout_ms=settings.browser_timeout_ms)


def chromium_launch_args(config: BrowserConfig) -> list[str]:
    return [
        "--disable-blink-features=AutomationControlled",
        f"--lang={config.locale}",
        "--disable-extensions",
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--no-first-run",
    ]


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def load_file(path: str | Path, *, url: str = "") -> Page:
    """Parse a local HTML file into a ``Page``."""
    p = Path(path)
    try:
        raw = p.read_bytes()
    except OSError as e:
        raise DocumentLoadError(f"Cannot read {p}: {e.strerror or e}") from e
    logger.debug("Loaded %s (%d bytes)", p, len(raw))
    return Page(parse_html(raw, base_url=url or None), url=url or p.resolve().as_uri())


async def _launch(playwright: Playwright, config: BrowserConfig) -> Browser:
    try:
        return await playwright.chromium.launch(headless=config.headless, args=chromium_launch_args(config))
    except Exception as exc:
        if "executable doesn't exist" in str(exc).lower():
            raise BrowserError("Chromium is not installed. Please run: playwright install chromium") from exc
        raise BrowserError(f"Browser launch failed: {exc}") from exc


async def fetch_rendered_html(url: str, config: BrowserConfig | None = None) -> str:
    """Navigate to *url* in headless Chromium and return the rendered HTML."""
    config = config or BrowserConfig()
    pw = await async_playwright().start()
    browser: Browser | None = None
    try:
        browser = await _launch(pw, config)
        context = await browser.new_context(
            viewport={"width": config.viewport_width, "height": config.viewport_height},
            locale=config.locale,
            user_agent=config.user_agent,
            service_workers="block",
            accept_downloads=False,
        )
        page = await context.new_page()
        try:
            await page.goto(url, wait_until=config.wait_until, timeout=config.timeout_ms)
        except Exception as exc:
            raise BrowserError(f"Navigation to {url} failed: {exc}") from exc
        html = await page.content()
        logger.info("Rendered %s (%d chars)", url, len(html))
        return html
    finally:
        if browser is not None:
            with suppress(Exception):
                await browser.close()
        with suppress(Exception):
            await pw.stop()


def load_page(source: str, settings: Settings | None = None) -> Page:
    """Load *source* (file path or http(s) URL) as a ``Page``."""
    settings = settings or Settings.from_env()
    if not is_url(source):
        return load_file(source)
    html = asyncio.run(fetch_rendered_html(source, BrowserConfig.from_settings(settings)))
    return Page(parse_html(html, base_url=source), url=source)
