from __future__ import annotations

import pytest

from install_tasks import InstallTaskNegotiationModel
from models import (
    ADDON_AIRCRAFT,
    ADDON_LIVERY,
    ADDON_NAVDATA,
    ADDON_SCENERY,
    BackupSettings,
    InstallTask,
)


def task(task_id, type_=ADDON_SCENERY, conflict=False, size=None, **kw):
    rec = {
        "id": task_id,
        "type": type_,
        "sourcePath": f"/downloads/{task_id}.zip",
        "targetPath": f"/xp12/Custom Scenery/{task_id}",
        "displayName": task_id.upper(),
        "conflictExists": conflict,
    }
    if size:
        rec["sizeWarning"] = size
    rec.update(kw)
    return rec


def model_with(*records, **kw) -> InstallTaskNegotiationModel:
    m = InstallTaskNegotiationModel(**kw)
    m.set_current_tasks(list(records))
    return m


def test_defaults_for_a_fresh_task() -> None:
    m = model_with(task("a"))
    assert m.get_task_enabled("a") is True
    assert m.get_task_overwrite("a") is False
    assert m.get_task_size_confirmed("a") is False
    assert m.get_task_backup_settings("a") == BackupSettings(False, False)


def test_unknown_ids_read_defaults_and_accept_writes() -> None:
    m = model_with(task("a"))
    assert m.get_task_enabled("ghost") is True
    assert m.get_task_overwrite("ghost") is False
    m.set_task_overwrite("ghost", True)
    assert m.get_task_overwrite("ghost") is True
    # writes for ids outside the batch never leak into it
    assert [t.id for t in m.enabled_tasks()] == ["a"]


def test_set_current_tasks_resets_decisions() -> None:
    m = model_with(task("a", conflict=True))
    m.set_task_enabled("a", False)
    m.set_task_overwrite("a", True)
    m.set_current_tasks([task("a", conflict=True)])
    assert m.get_task_enabled("a") is True
    assert m.get_task_overwrite("a") is False


def test_tasks_are_parsed_and_deduplicated() -> None:
    m = model_with(task("a"), {"type": ADDON_SCENERY}, task("a", type_=ADDON_NAVDATA), task("b"))
    assert [t.id for t in m.tasks] == ["a", "b"]
    assert m.get_task("a").type == ADDON_SCENERY
    assert isinstance(m.get_task("b"), InstallTask)
    assert m.get_task("zzz") is None


def test_livery_without_aircraft_starts_disabled() -> None:
    m = model_with(
        task("liv1", ADDON_LIVERY, liveryAircraftFound=False),
        task("liv2", ADDON_LIVERY, liveryAircraftFound=True),
        task("liv3", ADDON_LIVERY),
    )
    assert m.get_task_enabled("liv1") is False
    assert m.get_task_enabled("liv2") is True
    assert m.get_task_enabled("liv3") is True


def test_install_preferences_switch_off_types() -> None:
    m = model_with(
        task("nav", ADDON_NAVDATA),
        task("apt", ADDON_SCENERY),
        install_preferences={ADDON_NAVDATA: False, ADDON_SCENERY: True},
    )
    assert m.get_task_enabled("nav") is False
    assert m.get_task_enabled("apt") is True


def test_global_overwrite_follows_conflicting_tasks() -> None:
    m = model_with(task("a", conflict=True), task("b", conflict=True), task("c"))
    assert m.global_overwrite is False

    m.set_global_overwrite(True)
    assert m.get_task_overwrite("a") and m.get_task_overwrite("b")
    assert m.get_task_overwrite("c") is False
    assert m.global_overwrite is True

    # one task flipped back makes the aggregate false again
    m.set_task_overwrite("b", False)
    assert m.global_overwrite is False


def test_global_overwrite_false_without_conflicts() -> None:
    m = model_with(task("a"))
    m.set_global_overwrite(True)
    assert m.global_overwrite is False
    assert m.has_conflicts is False


def test_bulk_enable_and_confirm() -> None:
    m = model_with(task("a", size="3 GB"), task("b"), task("c", size="12 GB"))
    m.set_all_tasks_enabled(False)
    assert m.enabled_tasks_count == 0
    m.set_all_tasks_enabled(True)
    assert m.enabled_tasks_count == 3

    assert m.has_size_warnings is True
    assert m.all_size_warnings_confirmed is False
    m.confirm_all_size_warnings(True)
    assert m.all_size_warnings_confirmed is True
    assert m.get_task_size_confirmed("b") is False


def test_size_warnings_only_count_enabled_tasks() -> None:
    m = model_with(task("a", size="3 GB"), task("b"))
    m.set_task_enabled("a", False)
    assert m.has_size_warnings is False
    assert m.all_size_warnings_confirmed is True


def test_submission_records_merge_decisions() -> None:
    m = model_with(
        task("a", conflict=True, size="3 GB", checksum="abc"),
        task("b"),
        config_file_patterns=["*_prefs.txt"],
    )
    m.set_task_overwrite("a", True)
    m.set_task_size_confirmed("a", True)
    m.set_task_enabled("b", False)

    (rec,) = m.tasks_for_submission()
    assert rec["id"] == "a"
    assert rec["shouldOverwrite"] is True
    assert rec["sizeConfirmed"] is True
    assert rec["sizeWarning"] == "3 GB"
    assert rec["checksum"] == "abc"
    assert rec["configFilePatterns"] == ["*_prefs.txt"]


@pytest.mark.parametrize(
    "type_, patterns, expected",
    [
        (ADDON_AIRCRAFT, ["*_prefs.txt"], (True, True)),
        (ADDON_AIRCRAFT, [], (True, False)),
        (ADDON_SCENERY, ["*_prefs.txt"], (False, False)),
    ],
)
def test_backup_flags_only_apply_to_aircraft(type_: str, patterns: list, expected: tuple) -> None:
    m = model_with(task("x", type_, conflict=True), config_file_patterns=patterns)
    m.set_task_backup_settings("x", liveries=True, config_files=True)
    assert m.get_task_backup_settings("x") == BackupSettings(True, True)
    (rec,) = m.tasks_for_submission()
    assert (rec["backupLiveries"], rec["backupConfigFiles"]) == expected


def test_clear_tasks() -> None:
    m = model_with(task("a"))
    m.set_task_enabled("a", False)
    m.clear_tasks()
    assert m.tasks == ()
    assert m.get_task_enabled("a") is True
