from __future__ import annotations

from install_tasks import InstallTaskNegotiationModel
from submission import (
    REASON_NO_ENABLED_TASKS,
    REASON_SIZE_UNCONFIRMED,
    can_submit,
    check_submission,
    prepare_batch,
)


def three_tasks() -> InstallTaskNegotiationModel:
    m = InstallTaskNegotiationModel()
    m.set_current_tasks(
        [
            {"id": "A", "type": "Scenery", "displayName": "A", "conflictExists": True},
            {"id": "B", "type": "Scenery", "displayName": "B", "sizeWarning": "LARGE_SIZE:5GB"},
            {"id": "C", "type": "Plugin", "displayName": "C"},
        ]
    )
    m.set_task_enabled("C", False)
    return m


def test_unconfirmed_size_warning_blocks_until_confirmed() -> None:
    m = three_tasks()
    check = check_submission(m)
    assert check.allowed is False
    assert check.reason == REASON_SIZE_UNCONFIRMED
    assert prepare_batch(m) == []

    m.set_task_size_confirmed("B", True)
    assert can_submit(m) is True

    batch = prepare_batch(m)
    assert [r["id"] for r in batch] == ["A", "B"]
    assert batch[1]["sizeConfirmed"] is True


def test_disabling_the_warned_task_opens_the_gate() -> None:
    m = three_tasks()
    m.set_task_enabled("B", False)
    assert can_submit(m) is True
    assert [r["id"] for r in prepare_batch(m)] == ["A"]


def test_nothing_enabled_blocks() -> None:
    m = three_tasks()
    m.set_all_tasks_enabled(False)
    assert check_submission(m).reason == REASON_NO_ENABLED_TASKS
    assert prepare_batch(m) == []


def test_empty_batch_blocks() -> None:
    m = InstallTaskNegotiationModel()
    assert can_submit(m) is False
    assert prepare_batch(m) == []
