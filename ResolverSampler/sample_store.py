"""Save and load response samples and their per-group index.

Layout under the samples root:

    <group>/index.json
    <group>/<service>/<first hex char of key>/<key>.html

index.json maps each test-case URL to the sample files fetched for it:

    {
        "getit.library.nyu.edu/resolve?id=123": {
            "key": "d0c3…",
            "testCaseGroup": "primo",
            "fetchTimestamp": "10/18/2026, 2:35:07 PM",
            "getitSampleFile": "primo/getit/d/d0c3….html",
            "sfxSampleFile": "primo/sfx/d/d0c3….html"
        }
    }

Usage example:

    from ResolverSampler.sample_store import load_index, sample_key, write_index

    index = load_index(index_file)
    key = sample_key("getit.library.nyu.edu/resolve?id=123")
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from .config import INDEX_FILE_NAME, INDEX_TIME_ZONE

SAMPLE_FILE_SUFFIX = "SampleFile"


class IndexFileError(ValueError):
    """Raised when an existing index file cannot be read as an index."""


@dataclass
class IndexEntry:
    """Index record for one fully sampled test-case URL."""
    key: str
    test_case_group: str
    fetch_timestamp: str
    sample_files: Dict[str, str] = field(default_factory=dict)  # service key -> path relative to samples root
    extra: Dict[str, object] = field(default_factory=dict)  # fields written by other tools, kept on rewrite

    def to_json(self) -> Dict[str, object]:
        data = dict(self.extra)
        data.update({
            "key": self.key,
            "testCaseGroup": self.test_case_group,
            "fetchTimestamp": self.fetch_timestamp,
        })
        for service_key, path in self.sample_files.items():
            data[f"{service_key}{SAMPLE_FILE_SUFFIX}"] = path
        return data

    @classmethod
    def from_json(cls, data: Dict[str, object]) -> "IndexEntry":
        sample_files = {}
        extra = {}
        for name, value in data.items():
            if name in ("key", "testCaseGroup", "fetchTimestamp"):
                continue
            if name.endswith(SAMPLE_FILE_SUFFIX) and len(name) > len(SAMPLE_FILE_SUFFIX):
                sample_files[name[: -len(SAMPLE_FILE_SUFFIX)]] = value
            else:
                extra[name] = value
        return cls(
            key=data["key"],
            test_case_group=data.get("testCaseGroup", ""),
            fetch_timestamp=data.get("fetchTimestamp", ""),
            sample_files=sample_files,
            extra=extra,
        )


def sample_key(test_case_url: str) -> str:
    """Return the MD5 hex digest used as the sample's file name."""
    return hashlib.md5(test_case_url.encode("utf-8")).hexdigest()


def sample_file_path(test_case_group: str, service_key: str, key: str) -> PurePosixPath:
    """Return the sample path relative to the samples root, sharded by the key's first character."""
    return PurePosixPath(test_case_group, service_key, key[0], f"{key}.html")


def index_file_path(samples_dir: Path, test_case_group: str) -> Path:
    return samples_dir / test_case_group / INDEX_FILE_NAME


def format_fetch_timestamp(moment: datetime | None = None) -> str:
    """Format *moment* like ``10/18/2026, 2:35:07 PM`` in the index time zone."""
    moment = moment or datetime.now(timezone.utc)
    local = moment.astimezone(ZoneInfo(INDEX_TIME_ZONE))
    hour = local.hour % 12 or 12
    return f"{local.month}/{local.day}/{local.year}, {hour}:{local:%M:%S} {local:%p}"


def load_index(index_file: Path) -> Dict[str, IndexEntry]:
    """Load the index for a test-case group; a missing file is an empty index.

    Raises:
        IndexFileError: if the file exists but is not a JSON object of entries
    """
    if not index_file.exists():
        return {}

    try:
        data = json.loads(index_file.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise IndexFileError(f"Index {index_file} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise IndexFileError(f"Index {index_file} is not a JSON object")

    index = {}
    for url, entry in data.items():
        if not isinstance(entry, dict) or not isinstance(entry.get("key"), str):
            raise IndexFileError(f"Index {index_file}: entry for {url!r} is malformed")
        index[url] = IndexEntry.from_json(entry)
    logging.info("[index] Loaded %d entries from %s", len(index), index_file)
    return index


def write_index(index_file: Path, index: Dict[str, IndexEntry]) -> None:
    """Rewrite the index through a temporary file so readers never see a partial index."""
    index_file.parent.mkdir(parents=True, exist_ok=True)
    data = {url: entry.to_json() for url, entry in index.items()}
    staging_file = index_file.with_name(f"{index_file.name}.partial")
    try:
        staging_file.write_text(json.dumps(data, indent=4, ensure_ascii=False), encoding="utf-8")
        staging_file.replace(index_file)
    except OSError:
        discard_samples([staging_file])
        raise


@dataclass(frozen=True)
class StagedSample:
    staging_path: Path
    final_path: Path


def stage_sample(samples_dir: Path, relative_path: PurePosixPath, html: str) -> StagedSample:
    """Write *html* next to its final location without replacing an existing sample."""
    final_path = samples_dir.joinpath(*relative_path.parts)
    staging_path = final_path.with_name(f"{final_path.name}.partial")
    final_path.parent.mkdir(parents=True, exist_ok=True)
    staging_path.write_text(html, encoding="utf-8")
    return StagedSample(staging_path=staging_path, final_path=final_path)


def commit_samples(staged: Iterable[StagedSample]) -> None:
    """Move staged samples into place, all of them or none.

    A sample being replaced is moved aside first. If any move fails, every
    sample already committed is put back the way it was and the error is
    re-raised; staging files are left for the caller to discard.
    """
    moved: List[Tuple[Path, Optional[Path]]] = []  # (final path, previous sample moved aside)
    try:
        for sample in staged:
            previous = None
            if sample.final_path.exists():
                previous = sample.final_path.with_name(f"{sample.final_path.name}.previous")
                sample.final_path.replace(previous)
            moved.append((sample.final_path, previous))
            sample.staging_path.replace(sample.final_path)
    except OSError:
        _restore_samples(moved)
        raise
    discard_samples(previous for _, previous in moved if previous is not None)


def _restore_samples(moved: List[Tuple[Path, Optional[Path]]]) -> None:
    for final_path, previous in reversed(moved):
        try:
            if previous is None:
                final_path.unlink(missing_ok=True)
            else:
                previous.replace(final_path)
        except OSError as exc:
            logging.warning("[index] Could not restore sample %s: %s", final_path, exc)


def discard_samples(paths: Iterable[Path]) -> None:
    """Delete files written for a URL that did not complete."""
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logging.warning("[index] Could not remove partial sample %s: %s", path, exc)


__all__ = [
    "IndexFileError",
    "IndexEntry",
    "StagedSample",
    "commit_samples",
    "discard_samples",
    "format_fetch_timestamp",
    "index_file_path",
    "load_index",
    "sample_file_path",
    "sample_key",
    "stage_sample",
    "write_index",
]
