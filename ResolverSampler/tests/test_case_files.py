from __future__ import annotations

from pathlib import Path

from ResolverSampler.case_files import discover_test_case_groups, load_test_case_urls


def test_discover_test_case_groups_lists_subdirectories(tmp_path: Path):
    (tmp_path / "primo").mkdir()
    (tmp_path / "citation-linker").mkdir()
    (tmp_path / "README.txt").write_text("not a group", encoding="utf-8")

    assert discover_test_case_groups(tmp_path) == ["citation-linker", "primo"]


def test_discover_test_case_groups_missing_directory(tmp_path: Path):
    assert discover_test_case_groups(tmp_path / "missing") == []


def test_load_test_case_urls_filters_sorts_and_dedupes(tmp_path: Path):
    group = tmp_path / "primo"
    (group / "nested").mkdir(parents=True)
    (group / "a.txt").write_text(
        "# exported 2022-11-01\r\n"
        "getit.library.nyu.edu/resolve?id=2\r\n"
        "https://getit.library.nyu.edu/resolve?id=3\r\n"
        "getit.library.nyu.edu/resolve?id=1\r\n",
        encoding="utf-8",
    )
    (group / "nested" / "b.txt").write_text(
        "getit.library.nyu.edu/resolve?id=1\n"
        "getit.library.nyu.edu/resolve?rft.issn=0028-0836\n",
        encoding="utf-8",
    )
    (group / "ignored.csv").write_text("getit.library.nyu.edu/resolve?id=99\n", encoding="utf-8")

    assert load_test_case_urls(tmp_path, "primo") == [
        "getit.library.nyu.edu/resolve?id=1",
        "getit.library.nyu.edu/resolve?id=2",
        "getit.library.nyu.edu/resolve?rft.issn=0028-0836",
    ]


def test_load_test_case_urls_empty_group(tmp_path: Path):
    (tmp_path / "empty").mkdir()

    assert load_test_case_urls(tmp_path, "empty") == []
