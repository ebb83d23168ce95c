"""Discover test-case groups and collect the GetIt URLs they contain."""
from __future__ import annotations

import re
from pathlib import Path
from typing import List

from .config import TEST_CASE_URL_PREFIX

_LINE_SPLIT = re.compile(r"\r?\n")


def discover_test_case_groups(test_case_files_dir: Path) -> List[str]:
    """Return the sorted names of the group subdirectories, or [] if the directory is missing."""
    if not test_case_files_dir.is_dir():
        return []
    return sorted(entry.name for entry in test_case_files_dir.iterdir() if entry.is_dir())


def load_test_case_urls(test_case_files_dir: Path, test_case_group: str) -> List[str]:
    """Collect test-case URLs from every ``*.txt`` file under the group directory.

    Only lines starting with ``getit.library.nyu.edu/resolve?`` are kept. The
    result is sorted and free of duplicates.
    """
    directory = test_case_files_dir / test_case_group
    urls = set()
    for test_case_file in sorted(directory.rglob("*.txt")):
        for line in _LINE_SPLIT.split(test_case_file.read_text(encoding="utf-8")):
            if line.startswith(TEST_CASE_URL_PREFIX):
                urls.add(line)
    return sorted(urls)


__all__ = ["discover_test_case_groups", "load_test_case_urls"]
