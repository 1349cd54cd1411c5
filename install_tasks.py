from logger_util import get_logger
from models import (
    ADDON_AIRCRAFT,
    ADDON_LIVERY,
    BackupSettings,
    InstallTask,
    TaskDecision,
)

log = get_logger()


class InstallTaskNegotiationModel:
    """User decisions layered over one analyzed batch of install tasks.

    The scanned tasks are kept as an immutable tuple; every choice the user
    makes lives in a separate per-task-id overlay, so the scan result can be
    shown again unchanged. Reads for ids without an overlay return defaults.
    """

    def __init__(self, config_file_patterns=None, install_preferences=None):
        self._tasks: tuple = ()
        self._decisions: dict[str, TaskDecision] = {}
        self.config_file_patterns = list(config_file_patterns or [])
        # add-on type -> enabled by default; missing types count as enabled
        self.install_preferences = dict(install_preferences or {})

    # ----- batch -----

    @property
    def tasks(self) -> tuple:
        return self._tasks

    def get_task(self, task_id: str):
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def set_current_tasks(self, tasks):
        parsed = []
        ids = set()
        for t in tasks or ():
            if not isinstance(t, InstallTask):
                try:
                    t = InstallTask.from_record(t)
                except ValueError as exc:
                    log.warning("Skipping install task: %s", exc)
                    continue
            if t.id in ids:
                log.warning("Duplicate install task id %s, keeping the first", t.id)
                continue
            ids.add(t.id)
            parsed.append(t)

        self._tasks = tuple(parsed)
        self._decisions = {}
        for t in self._tasks:
            # liveries for an aircraft that isn't installed start switched off
            if t.type == ADDON_LIVERY and t.livery_aircraft_found is False:
                self._decisions[t.id] = TaskDecision(enabled=False)
            elif not self.install_preferences.get(t.type, True):
                self._decisions[t.id] = TaskDecision(enabled=False)
        log.info("Analyzed batch has %d install task(s)", len(self._tasks))

    def clear_tasks(self):
        self._tasks = ()
        self._decisions = {}

    # ----- overlay access -----

    def _decision(self, task_id: str) -> TaskDecision:
        return self._decisions.setdefault(task_id, TaskDecision())

    def _peek(self, task_id: str) -> TaskDecision:
        return self._decisions.get(task_id) or TaskDecision()

    def set_task_enabled(self, task_id: str, enabled: bool):
        self._decision(task_id).enabled = bool(enabled)

    def get_task_enabled(self, task_id: str) -> bool:
        return self._peek(task_id).enabled

    def set_task_overwrite(self, task_id: str, overwrite: bool):
        self._decision(task_id).overwrite = bool(overwrite)

    def get_task_overwrite(self, task_id: str) -> bool:
        return self._peek(task_id).overwrite

    def set_task_size_confirmed(self, task_id: str, confirmed: bool):
        self._decision(task_id).size_confirmed = bool(confirmed)

    def get_task_size_confirmed(self, task_id: str) -> bool:
        return self._peek(task_id).size_confirmed

    def set_task_backup_settings(self, task_id: str, liveries: bool, config_files: bool):
        d = self._decision(task_id)
        d.backup_liveries = bool(liveries)
        d.backup_config_files = bool(config_files)

    def get_task_backup_settings(self, task_id: str) -> BackupSettings:
        d = self._peek(task_id)
        return BackupSettings(liveries=d.backup_liveries, config_files=d.backup_config_files)

    # ----- bulk setters -----

    def set_all_tasks_enabled(self, enabled: bool):
        for t in self._tasks:
            self.set_task_enabled(t.id, enabled)

    def confirm_all_size_warnings(self, confirmed: bool):
        for t in self._tasks:
            if t.size_warning:
                self.set_task_size_confirmed(t.id, confirmed)

    def set_global_overwrite(self, overwrite: bool):
        for t in self.conflicting_tasks():
            self.set_task_overwrite(t.id, overwrite)

    @property
    def global_overwrite(self) -> bool:
        # derived from the per-task flags, never stored
        conflicting = self.conflicting_tasks()
        if not conflicting:
            return False
        return all(self.get_task_overwrite(t.id) for t in conflicting)

    # ----- derived -----

    def conflicting_tasks(self) -> list:
        return [t for t in self._tasks if t.conflict_exists]

    def enabled_tasks(self) -> list:
        return [t for t in self._tasks if self.get_task_enabled(t.id)]

    @property
    def enabled_tasks_count(self) -> int:
        return len(self.enabled_tasks())

    @property
    def has_conflicts(self) -> bool:
        return any(t.conflict_exists for t in self._tasks)

    @property
    def has_size_warnings(self) -> bool:
        return any(t.size_warning for t in self.enabled_tasks())

    @property
    def all_size_warnings_confirmed(self) -> bool:
        return all(
            self.get_task_size_confirmed(t.id)
            for t in self.enabled_tasks()
            if t.size_warning
        )

    def tasks_for_submission(self) -> list:
        """Plain records for the enabled tasks with the user's choices merged in."""
        patterns = list(self.config_file_patterns)
        out = []
        for t in self.enabled_tasks():
            d = self._peek(t.id)
            is_aircraft = t.type == ADDON_AIRCRAFT
            rec = t.to_record()
            rec.update(
                {
                    "shouldOverwrite": d.overwrite,
                    "sizeConfirmed": d.size_confirmed,
                    "backupLiveries": is_aircraft and d.backup_liveries,
                    "backupConfigFiles": is_aircraft and bool(patterns) and d.backup_config_files,
                    "configFilePatterns": patterns,
                }
            )
            out.append(rec)
        return out
