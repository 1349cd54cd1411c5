"""Missing scenery library bookkeeping.

`missing_libraries` is computed by the backend scan and carried on each
SceneryEntry; nothing here recomputes or edits it. These helpers only read it
for counters, list filters and warning summaries.
"""


def has_missing_libraries(entry) -> bool:
    return bool(entry.missing_libraries)


def missing_deps_count(entries) -> int:
    return sum(1 for e in entries if has_missing_libraries(e))


def entries_with_missing_deps(entries) -> list:
    return [e for e in entries if has_missing_libraries(e)]


def missing_library_summary(entries) -> dict:
    """Map each missing library to the sorted folder names that need it."""
    out: dict[str, list] = {}
    for e in entries:
        for lib in e.missing_libraries:
            out.setdefault(lib, []).append(e.folder_name)
    return {lib: sorted(names) for lib, names in sorted(out.items())}
