from dataclasses import dataclass
from typing import Optional

from logger_util import get_logger

log = get_logger()

REASON_NO_ENABLED_TASKS = "install.noEnabledTasks"
REASON_SIZE_UNCONFIRMED = "install.sizeWarningsUnconfirmed"


@dataclass(frozen=True)
class SubmissionCheck:
    allowed: bool
    reason: Optional[str] = None


def check_submission(model) -> SubmissionCheck:
    """The one place that decides whether "start installation" is offered."""
    if model.enabled_tasks_count <= 0:
        return SubmissionCheck(False, REASON_NO_ENABLED_TASKS)
    if model.has_size_warnings and not model.all_size_warnings_confirmed:
        return SubmissionCheck(False, REASON_SIZE_UNCONFIRMED)
    return SubmissionCheck(True)


def can_submit(model) -> bool:
    return check_submission(model).allowed


def prepare_batch(model) -> list:
    """Records to hand to the installer, or an empty list while the gate is closed."""
    check = check_submission(model)
    if not check.allowed:
        log.info("Install batch held back: %s", check.reason)
        return []
    return model.tasks_for_submission()
