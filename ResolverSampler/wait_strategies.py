"""Signals for deciding when a resolver page is complete enough to capture.

Resolver responses come in two shapes: server-rendered pages that are done at
the ``load`` event, and client-rendered shells that keep fetching partial HTML
sections after load. The helpers here cover both, and each service sampler
composes the ones that match how its pages behave.
"""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Callable, List

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, Response
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError


def wait_for_load(page: Page, timeout: float) -> None:
    """Block until the page has fired its ``load`` event."""
    page.wait_for_load_state("load", timeout=timeout * 1000)


def wait_for_hidden(page: Page, selector: str, timeout: float) -> None:
    """Block until *selector* is hidden or detached, e.g. a loading spinner."""
    page.locator(selector).wait_for(state="hidden", timeout=timeout * 1000)


def probe_text(page: Page, selector: str, timeout: float) -> str | None:
    """Return the text of *selector* if it is attached within *timeout*, else ``None``.

    Meant for very short probes: a timeout or any other Playwright failure just
    means "not there" and is never raised to the caller.
    """
    try:
        page.wait_for_selector(selector, state="attached", timeout=timeout * 1000)
        return page.locator(selector).first.text_content()
    except PlaywrightError as exc:
        logging.debug("[wait] probe for %s gave up: %s", selector, exc)
        return None


def json_flag_is_true(response: Response, *path: str) -> bool:
    """Return True if the JSON body of *response* has a truthy flag at *path*.

    The flag may be a real boolean or the string ``"true"``. Bodies that are not
    JSON, or that lack the path, count as not complete.
    """
    try:
        value = response.json()
    except (PlaywrightError, ValueError) as exc:
        logging.debug("[wait] unreadable JSON from %s: %s", response.url, exc)
        return False

    for key in path:
        if not isinstance(value, dict) or key not in value:
            return False
        value = value[key]
    return value is True or str(value).lower() == "true"


class ResponseRecorder:
    """Record every response a page receives while the recorder is active.

    Attach the recorder before navigating so that responses arriving while the
    page loads, or while a heuristic is busy reading another response body,
    are never missed.
    """

    def __init__(self, page: Page) -> None:
        self._page = page
        self._responses: List[Response] = []
        self._checked = 0

    def __enter__(self) -> "ResponseRecorder":
        self._page.on("response", self._record)
        return self

    def __exit__(self, *exc_info) -> None:
        self._page.remove_listener("response", self._record)

    def _record(self, response: Response) -> None:
        self._responses.append(response)

    @property
    def responses(self) -> List[Response]:
        return list(self._responses)

    def wait_for_response(self, predicate: Callable[[Response], bool], timeout: float) -> Response:
        """Return the first recorded response satisfying *predicate*.

        Responses are checked in arrival order, each at most once. When the
        recorded ones are exhausted, block for the next response event until
        *timeout* seconds have elapsed in total.

        Raises:
            playwright.sync_api.TimeoutError: if nothing satisfies *predicate* in time
        """
        deadline = perf_counter() + timeout
        while True:
            while self._checked < len(self._responses):
                response = self._responses[self._checked]
                self._checked += 1
                if predicate(response):
                    return response

            remaining = deadline - perf_counter()
            if remaining <= 0:
                raise PlaywrightTimeoutError(f"no matching response within {timeout}s")
            self._page.wait_for_event("response", timeout=remaining * 1000)


def wait_for_network_completion(
    recorder: ResponseRecorder,
    url_prefix: str,
    is_complete: Callable[[Response], bool],
    timeout: float,
) -> Response:
    """Block until a 200 response under *url_prefix* reports completion.

    Matching responses that report an incomplete state are skipped; the wait
    resolves on the first one for which *is_complete* holds.
    """

    def matches(response: Response) -> bool:
        if response.status != 200 or not response.url.startswith(url_prefix):
            return False
        complete = is_complete(response)
        logging.debug("[wait] %s complete=%s", response.url, complete)
        return complete

    return recorder.wait_for_response(matches, timeout)


__all__ = [
    "ResponseRecorder",
    "json_flag_is_true",
    "probe_text",
    "wait_for_hidden",
    "wait_for_load",
    "wait_for_network_completion",
]
