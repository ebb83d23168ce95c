"""Per-service samplers for GetIt, SFX and Ariadne.

Each sampler knows three things about its service: how to turn a test-case URL
into a request against its endpoint, how to tell that a response page has
finished loading, and how to clean the captured HTML before it is stored.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, List, Mapping, Protocol
from urllib.parse import urlsplit

from playwright.sync_api import Page, Response

from .config import ARIADNE_ENDPOINT, GETIT_ENDPOINT, SFX_ENDPOINT, UPDATER_PROBE_TIMEOUT
from .sample_store import sample_file_path
from .wait_strategies import (
    ResponseRecorder,
    json_flag_is_true,
    probe_text,
    wait_for_hidden,
    wait_for_load,
    wait_for_network_completion,
)


class SampleError(RuntimeError):
    """Raised when a sampler cannot produce HTML for a test-case URL."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url


class ServiceSampler(Protocol):
    name: str
    service_key: str
    test_case_group: str
    endpoint: str

    def request_url(self, test_case_url: str) -> str:
        ...

    def await_completion(self, page: Page, responses: ResponseRecorder, timeout: float) -> None:
        ...

    def filter_html(self, html: str) -> str:
        ...

    def sample_file_path(self, key: str) -> PurePosixPath:
        ...


def build_request_url(endpoint: str, test_case_url: str) -> str:
    """Append the query string of *test_case_url* to *endpoint*.

    Test-case URLs are usually recorded without a scheme
    (``getit.library.nyu.edu/resolve?...``), so one is supplied before parsing.
    """
    candidate = test_case_url if "://" in test_case_url else f"http://{test_case_url}"
    try:
        parts = urlsplit(candidate)
        parts.port  # raises ValueError for a malformed port
    except ValueError as exc:
        raise SampleError(test_case_url, f"malformed test-case URL ({exc})") from exc
    if not parts.netloc:
        raise SampleError(test_case_url, "malformed test-case URL (no host)")
    return f"{endpoint}?{parts.query}" if parts.query else endpoint


# GetIt (Umlaut) -------------------------------------------------------------

# Non-cached responses carry an inline script that polls the server for HTML
# sections. Cached responses are complete as served and have no such script.
UPDATER_SCRIPT_SELECTOR = "div.umlaut-resolve-container script"
UPDATER_SCRIPT_PATTERN = re.compile(r"Umlaut\.HtmlUpdater")


@dataclass(frozen=True)
class GetItSampler:
    test_case_group: str
    endpoint: str = GETIT_ENDPOINT
    name: str = "GetIt"
    service_key: str = "getit"

    @property
    def partial_sections_url(self) -> str:
        return f"{self.endpoint.rstrip('/')}/partial_html_sections"

    def request_url(self, test_case_url: str) -> str:
        return build_request_url(self.endpoint, test_case_url)

    def await_completion(self, page: Page, responses: ResponseRecorder, timeout: float) -> None:
        # By the load event every server-rendered <script> is attached, so the
        # updater probe only needs a fraction of a second.
        wait_for_load(page, timeout)

        script = probe_text(page, UPDATER_SCRIPT_SELECTOR, UPDATER_PROBE_TIMEOUT)
        if script is None:
            logging.debug("[wait][getit] no updater script, treating page as cached")
            return

        if not UPDATER_SCRIPT_PATTERN.search(script):
            logging.debug("[wait][getit] script present but not an updater, treating page as cached")
            return

        logging.debug("[wait][getit] updater script found, waiting for %s", self.partial_sections_url)
        wait_for_network_completion(
            responses,
            self.partial_sections_url,
            _partial_sections_complete,
            timeout,
        )

    def filter_html(self, html: str) -> str:
        return html

    def sample_file_path(self, key: str) -> PurePosixPath:
        return sample_file_path(self.test_case_group, self.service_key, key)


def _partial_sections_complete(response: Response) -> bool:
    return json_flag_is_true(response, "partial_html_sections", "complete")


# SFX ------------------------------------------------------------------------


@dataclass(frozen=True)
class SfxSampler:
    test_case_group: str
    endpoint: str = SFX_ENDPOINT
    name: str = "SFX"
    service_key: str = "sfx"

    def request_url(self, test_case_url: str) -> str:
        return build_request_url(self.endpoint, test_case_url)

    def await_completion(self, page: Page, responses: ResponseRecorder, timeout: float) -> None:
        # No specific selector: "Multiple Object Menu" pages have to work too.
        wait_for_load(page, timeout)

    def filter_html(self, html: str) -> str:
        return html

    def sample_file_path(self, key: str) -> PurePosixPath:
        return sample_file_path(self.test_case_group, self.service_key, key)


# Ariadne --------------------------------------------------------------------

LOADER_SELECTOR = "div.loader"

# Development builds inline sourceMappingURL comments that can add close to a
# megabyte to every page.
SOURCE_MAP_COMMENT_PATTERN = re.compile(r"/\*#\ssourceMappingURL=\s*\S+\s\*/")


def strip_source_map_comments(html: str) -> str:
    return SOURCE_MAP_COMMENT_PATTERN.sub("", html)


@dataclass(frozen=True)
class AriadneSampler:
    test_case_group: str
    endpoint: str = ARIADNE_ENDPOINT
    name: str = "Ariadne"
    service_key: str = "ariadne"

    def request_url(self, test_case_url: str) -> str:
        return build_request_url(self.endpoint, test_case_url)

    def await_completion(self, page: Page, responses: ResponseRecorder, timeout: float) -> None:
        wait_for_hidden(page, LOADER_SELECTOR, timeout)

    def filter_html(self, html: str) -> str:
        return strip_source_map_comments(html)

    def sample_file_path(self, key: str) -> PurePosixPath:
        return sample_file_path(self.test_case_group, self.service_key, key)


# Registry -------------------------------------------------------------------

# Fixed sampling order
SAMPLER_TYPES = {
    "getit": GetItSampler,
    "sfx": SfxSampler,
    "ariadne": AriadneSampler,
}

SERVICE_KEYS = tuple(SAMPLER_TYPES)


def build_samplers(
    test_case_group: str,
    endpoints: Mapping[str, str | None] | None = None,
    exclude: Iterable[str] = (),
) -> List[ServiceSampler]:
    """Create one sampler per service, in sampling order.

    *endpoints* maps service keys to endpoint overrides; ``None`` or a missing
    key keeps the configured default.
    """
    endpoints = endpoints or {}
    excluded = set(exclude)
    unknown = excluded.difference(SAMPLER_TYPES)
    if unknown:
        raise ValueError(f"Unknown service(s): {', '.join(sorted(unknown))}")

    samplers: List[ServiceSampler] = []
    for service_key, sampler_type in SAMPLER_TYPES.items():
        if service_key in excluded:
            continue
        override = endpoints.get(service_key)
        if override:
            samplers.append(sampler_type(test_case_group, endpoint=override))
        else:
            samplers.append(sampler_type(test_case_group))
    return samplers


def fetch_sample_html(sampler: ServiceSampler, page: Page, test_case_url: str, timeout: float) -> str:
    """Navigate the shared *page* to the sampler's request URL and return filtered HTML.

    Raises:
        SampleError: if the test-case URL is malformed or the navigation response is not 2xx
        playwright.sync_api.Error: on navigation failures and wait timeouts
    """
    url = sampler.request_url(test_case_url)

    with ResponseRecorder(page) as responses:
        response = page.goto(url, timeout=timeout * 1000)
        if response is None:
            raise SampleError(url, "no response from navigation")
        if not response.ok:
            raise SampleError(url, f"HTTP {response.status} ({response.status_text})")

        sampler.await_completion(page, responses, timeout)
        raw_html = page.content()

    return sampler.filter_html(raw_html)


def sampler_names(samplers: Iterable[ServiceSampler]) -> str:
    names = [sampler.name for sampler in samplers]
    if len(names) <= 1:
        return "".join(names)
    return f"{', '.join(names[:-1])} and {names[-1]}"


__all__ = [
    "AriadneSampler",
    "GetItSampler",
    "SAMPLER_TYPES",
    "SERVICE_KEYS",
    "SampleError",
    "ServiceSampler",
    "SfxSampler",
    "build_request_url",
    "build_samplers",
    "fetch_sample_html",
    "sampler_names",
    "strip_source_map_comments",
]
