"""Fetch loop: sample every pending test-case URL from each service in turn."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from .config import DEFAULT_TIMEOUT, FETCH_PAUSE_SECONDS
from .sample_store import (
    IndexEntry,
    StagedSample,
    commit_samples,
    discard_samples,
    format_fetch_timestamp,
    index_file_path,
    sample_key,
    stage_sample,
    write_index,
)
from .service_samplers import SampleError, ServiceSampler, fetch_sample_html, sampler_names


@dataclass(frozen=True)
class FetchConfig:
    timeout: float = DEFAULT_TIMEOUT
    pause: float = FETCH_PAUSE_SECONDS


@dataclass
class FetchSummary:
    fetched: List[str] = field(default_factory=list)
    failures: List[dict] = field(default_factory=list)


def select_pending_urls(
    test_case_urls: Sequence[str],
    index: Mapping[str, IndexEntry],
    *,
    replace: bool = False,
    limit: Optional[int] = None,
) -> List[str]:
    """Drop URLs already in the index (unless replacing) and apply the sample limit."""
    pending = list(test_case_urls) if replace else [url for url in test_case_urls if url not in index]
    return pending[:limit] if limit is not None else pending


def fetch_response_sample(
    page: Page,
    samplers: Sequence[ServiceSampler],
    test_case_url: str,
    samples_dir: Path,
    test_case_group: str,
    timeout: float,
) -> IndexEntry:
    """Sample *test_case_url* from every service and write the HTML files.

    Nothing is written unless every sampler succeeds, and files staged before
    a write failure are removed again.
    """
    key = sample_key(test_case_url)

    captured = []
    for sampler in samplers:
        html = fetch_sample_html(sampler, page, test_case_url, timeout)
        logging.debug("[fetch][%s] %d chars for %s", sampler.service_key, len(html), test_case_url)
        captured.append((sampler, html))

    staged: List[StagedSample] = []
    try:
        for sampler, html in captured:
            staged.append(stage_sample(samples_dir, sampler.sample_file_path(key), html))
        commit_samples(staged)
    except OSError:
        discard_samples(sample.staging_path for sample in staged)
        raise

    return IndexEntry(
        key=key,
        test_case_group=test_case_group,
        fetch_timestamp=format_fetch_timestamp(),
        sample_files={sampler.service_key: str(sampler.sample_file_path(key)) for sampler, _ in captured},
    )


def fetch_response_samples(
    page: Page,
    samplers: Sequence[ServiceSampler],
    test_case_urls: Sequence[str],
    samples_dir: Path,
    test_case_group: str,
    index: Dict[str, IndexEntry],
    config: FetchConfig | None = None,
) -> FetchSummary:
    """Sample each URL in order, recording successes in *index* and on disk.

    A failure for one URL is logged and recorded in the summary; the loop
    moves on to the next URL.
    """
    cfg = config or FetchConfig()
    index_file = index_file_path(samples_dir, test_case_group)
    services = sampler_names(samplers)
    summary = FetchSummary()

    for position, test_case_url in enumerate(test_case_urls, start=1):
        logging.info("[fetch] (%d/%d) %s", position, len(test_case_urls), test_case_url)
        try:
            entry = fetch_response_sample(page, samplers, test_case_url, samples_dir, test_case_group, cfg.timeout)
        except (SampleError, PlaywrightError, OSError) as exc:
            logging.error("[fetch][ERROR] %s: %s", test_case_url, exc)
            summary.failures.append({"url": test_case_url, "reason": str(exc)})
            continue

        previous = index.get(test_case_url)
        index[test_case_url] = entry
        try:
            write_index(index_file, index)
        except OSError as exc:
            logging.error("[index][ERROR] %s: could not write %s: %s", test_case_url, index_file, exc)
            if previous is None:
                del index[test_case_url]
                discard_samples(samples_dir / path for path in entry.sample_files.values())
            else:
                index[test_case_url] = previous
            summary.failures.append({"url": test_case_url, "reason": f"index write failed: {exc}"})
            continue

        logging.info("%s: fetched %s responses", test_case_url, services)
        summary.fetched.append(test_case_url)

        time.sleep(cfg.pause)

    return summary


__all__ = [
    "FetchConfig",
    "FetchSummary",
    "fetch_response_sample",
    "fetch_response_samples",
    "select_pending_urls",
]
