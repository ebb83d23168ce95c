"""Scoped Playwright browser session shared by every sampler in a run."""
from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from playwright.sync_api import Browser, Page, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from .config import DEFAULT_TIMEOUT


class BrowserUnavailable(RuntimeError):
    """Raised when Playwright cannot launch a browser for sampling."""


@dataclass(frozen=True)
class BrowserSession:
    page: Page
    timeout: float = DEFAULT_TIMEOUT


@contextlib.contextmanager
def open_browser_session(*, headless: bool = True, timeout: float = DEFAULT_TIMEOUT) -> Iterator[BrowserSession]:
    """Launch Chromium with a single page and close both on every exit path."""
    browser: Optional[Browser] = None
    page: Optional[Page] = None
    with sync_playwright() as p:
        try:
            try:
                browser = p.chromium.launch(headless=headless)
                # Resolver pages inline scripts that a strict CSP would block
                page = browser.new_page(bypass_csp=True)
            except PlaywrightError as exc:
                raise BrowserUnavailable(
                    f"could not launch Chromium ({exc}). Run `playwright install chromium`."
                ) from exc
            page.set_default_timeout(timeout * 1000)
            logging.info("[session] Chromium started (headless=%s, timeout=%.0fs)", headless, timeout)
            yield BrowserSession(page=page, timeout=timeout)
        finally:
            with contextlib.suppress(Exception):
                if page is not None:
                    page.close()
            if browser is not None:
                with contextlib.suppress(Exception):
                    browser.close()
                logging.info("[session] Chromium closed")


__all__ = ["BrowserSession", "BrowserUnavailable", "open_browser_session"]
