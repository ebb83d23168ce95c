"""Scriptable stand-ins for the parts of Playwright's sync Page the samplers use."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError


class FakeResponse:
    def __init__(self, url: str, status: int = 200, body: Any = "", status_text: str = "OK") -> None:
        self.url = url
        self.status = status
        self.status_text = status_text
        self._body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self):
        if isinstance(self._body, (dict, list)):
            return self._body
        return json.loads(self._body)


@dataclass
class FakeDocument:
    """What the fake browser shows after navigating to one URL."""

    html: str = "<html></html>"
    status: int = 200
    scripts: Dict[str, str] = field(default_factory=dict)  # selector -> text of attached elements
    stuck_selectors: List[str] = field(default_factory=list)  # never become hidden
    during_load: List[FakeResponse] = field(default_factory=list)
    stream: List[FakeResponse] = field(default_factory=list)  # delivered one per wait_for_event
    navigation_error: Optional[str] = None


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str) -> None:
        self._page = page
        self._selector = selector

    @property
    def first(self) -> "FakeLocator":
        return self

    def wait_for(self, state: str, timeout: float) -> None:
        self._page.calls.append(("locator.wait_for", self._selector, state, timeout))
        if self._selector in self._page.document.stuck_selectors:
            raise PlaywrightTimeoutError(f"{self._selector} still visible")

    def text_content(self) -> Optional[str]:
        return self._page.document.scripts.get(self._selector)


class FakePage:
    def __init__(self, documents: Optional[Dict[str, FakeDocument]] = None) -> None:
        self.documents = documents or {}
        self.document = FakeDocument()
        self.visited: List[str] = []
        self.calls: List[tuple] = []
        self.listeners: Dict[str, List[Callable]] = {}
        self._stream: List[FakeResponse] = []

    def on(self, event: str, handler: Callable) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable) -> None:
        self.listeners[event].remove(handler)

    def emit(self, event: str, payload) -> None:
        for handler in list(self.listeners.get(event, [])):
            handler(payload)

    def goto(self, url: str, timeout: float):
        self.visited.append(url)
        self.calls.append(("goto", url, timeout))
        document = self.documents.get(url)
        if document is None:
            raise PlaywrightError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        if document.navigation_error:
            raise PlaywrightError(document.navigation_error)
        self.document = document
        self._stream = list(document.stream)
        status_text = "OK" if document.status == 200 else "Internal Server Error"
        response = FakeResponse(url, status=document.status, status_text=status_text)
        self.emit("response", response)
        for extra in document.during_load:
            self.emit("response", extra)
        return response

    def wait_for_load_state(self, state: str, timeout: float) -> None:
        self.calls.append(("wait_for_load_state", state, timeout))

    def wait_for_selector(self, selector: str, state: str, timeout: float) -> None:
        self.calls.append(("wait_for_selector", selector, state, timeout))
        if selector not in self.document.scripts:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    def wait_for_event(self, event: str, timeout: float):
        self.calls.append(("wait_for_event", event, timeout))
        if not self._stream:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded while waiting for event \"{event}\"")
        response = self._stream.pop(0)
        self.emit(event, response)
        return response

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def content(self) -> str:
        return self.document.html

    @property
    def remaining_stream(self) -> List[FakeResponse]:
        return list(self._stream)

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def make_page():
    return FakePage


@pytest.fixture
def make_document():
    return FakeDocument


@pytest.fixture
def make_response():
    return FakeResponse
