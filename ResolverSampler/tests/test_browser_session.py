from __future__ import annotations

import contextlib

import pytest
from playwright.sync_api import Error as PlaywrightError

from ResolverSampler import browser_session
from ResolverSampler.browser_session import BrowserUnavailable, open_browser_session


class FakeSessionPage:
    def __init__(self) -> None:
        self.default_timeout = None
        self.closed = False

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = timeout

    def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self) -> None:
        self.page = FakeSessionPage()
        self.page_options = None
        self.closed = False

    def new_page(self, **options):
        self.page_options = options
        return self.page

    def close(self) -> None:
        self.closed = True


class FakeChromium:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.launch_options = None
        self.browser = FakeBrowser()

    def launch(self, **options):
        self.launch_options = options
        if self.fail:
            raise PlaywrightError("Executable doesn't exist at /ms-playwright/chromium")
        return self.browser


class FakePlaywright:
    def __init__(self, chromium: FakeChromium) -> None:
        self.chromium = chromium


def _patch_playwright(monkeypatch: pytest.MonkeyPatch, chromium: FakeChromium) -> None:
    @contextlib.contextmanager
    def fake_sync_playwright():
        yield FakePlaywright(chromium)

    monkeypatch.setattr(browser_session, "sync_playwright", fake_sync_playwright)


def test_session_opens_single_page_and_closes_it(monkeypatch: pytest.MonkeyPatch):
    chromium = FakeChromium()
    _patch_playwright(monkeypatch, chromium)

    with open_browser_session(headless=False, timeout=45) as session:
        assert session.page is chromium.browser.page
        assert session.timeout == 45

    assert chromium.launch_options == {"headless": False}
    assert chromium.browser.page_options == {"bypass_csp": True}
    assert chromium.browser.page.default_timeout == 45000
    assert chromium.browser.page.closed
    assert chromium.browser.closed


def test_session_closes_browser_when_sampling_fails(monkeypatch: pytest.MonkeyPatch):
    chromium = FakeChromium()
    _patch_playwright(monkeypatch, chromium)

    with pytest.raises(RuntimeError, match="boom"):
        with open_browser_session():
            raise RuntimeError("boom")

    assert chromium.browser.page.closed
    assert chromium.browser.closed


def test_launch_failure_raises_browser_unavailable(monkeypatch: pytest.MonkeyPatch):
    _patch_playwright(monkeypatch, FakeChromium(fail=True))

    with pytest.raises(BrowserUnavailable, match="playwright install chromium"):
        with open_browser_session():
            pass
