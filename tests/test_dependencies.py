from __future__ import annotations

import dependencies
from models import SceneryEntry


def entry(name, missing=()):
    return SceneryEntry(folder_name=name, missing_libraries=frozenset(missing))


def test_counts_and_filters() -> None:
    entries = [entry("a", ["sam"]), entry("b"), entry("c", ["osx", "sam"])]
    assert dependencies.missing_deps_count(entries) == 2
    assert [e.folder_name for e in dependencies.entries_with_missing_deps(entries)] == ["a", "c"]
    assert dependencies.has_missing_libraries(entries[1]) is False


def test_summary_groups_folders_by_library() -> None:
    entries = [entry("zz", ["sam"]), entry("aa", ["sam", "osx"]), entry("mm")]
    summary = dependencies.missing_library_summary(entries)
    assert list(summary) == ["osx", "sam"]
    assert summary["sam"] == ["aa", "zz"]
    assert summary["osx"] == ["aa"]
