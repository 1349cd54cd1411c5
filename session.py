from backend import CommandError
from install_tasks import InstallTaskNegotiationModel
from jobs import JOB_SCENERY_APPLY, JOB_SCENERY_LOAD, JobRunner
from logger_util import get_logger, set_level
from models import ADDON_SCENERY, ADDON_SCENERY_LIBRARY
from scenery_registry import SceneryRegistry
from settings import AppSettings
from submission import prepare_batch

log = get_logger()

_SCENERY_TYPES = (ADDON_SCENERY, ADDON_SCENERY_LIBRARY)


class InstallerSession:
    """One window's worth of state: a scenery registry and an install batch.

    Both are created here and handed to whoever needs them; nothing looks
    them up globally.
    """

    def __init__(self, backend, settings: AppSettings | None = None, runner: JobRunner | None = None):
        self.backend = backend
        self.settings = settings or AppSettings()
        self.runner = runner
        self.registry = SceneryRegistry(backend, self.settings.get_xplane_path() or "")
        self.tasks = InstallTaskNegotiationModel(
            config_file_patterns=self.settings.get_config_file_patterns(),
            install_preferences=self.settings.get_install_preferences(),
        )
        self.last_analysis = None
        set_level(self.settings.get_log_level())

    @property
    def xplane_path(self) -> str:
        return self.registry.xplane_path

    def set_xplane_path(self, path: str):
        self.settings.set_xplane_path(path)
        self.registry.xplane_path = path
        # entries from another install mean nothing here
        self.registry.clear()
        self.tasks.clear_tasks()

    def _runner(self) -> JobRunner:
        if self.runner is None:
            self.runner = JobRunner()
        return self.runner

    def _job_running(self, key: str) -> bool:
        return self.runner is not None and self.runner.is_running(key)

    # ----- scenery -----

    def refresh_scenery(self) -> bool:
        if self._job_running(JOB_SCENERY_LOAD):
            log.warning("Scenery refresh ignored: a background load is still running")
            return False
        if self.registry.has_local_changes:
            log.info("Scenery refresh skipped, apply or reset local changes first")
            return False
        return self.registry.load()

    def refresh_scenery_in_background(self, on_done=None, on_error=None) -> bool:
        if self.registry.has_local_changes:
            log.info("Scenery refresh skipped, apply or reset local changes first")
            return False
        return self._runner().start(JOB_SCENERY_LOAD, self.registry.load, on_done, on_error)

    def check_scenery_sync(self):
        try:
            return self.registry.check_sync()
        except CommandError as exc:
            log.warning("Scenery quick scan failed: %s", exc)
            return None

    def rebuild_scenery_index(self):
        return self.backend.rebuild_scenery_index(self.xplane_path)

    def apply_scenery(self) -> bool:
        if self._job_running(JOB_SCENERY_APPLY):
            log.warning("Apply ignored: a background apply is still running")
            return False
        return self.registry.apply_changes()

    def apply_scenery_in_background(self, on_done=None, on_error=None) -> bool:
        return self._runner().start(JOB_SCENERY_APPLY, self.registry.apply_changes, on_done, on_error)

    # ----- add-on installation -----

    def analyze_addons(self, paths, passwords=None):
        result = self.backend.analyze_addons(paths, self.xplane_path, passwords)
        self.tasks.config_file_patterns = self.settings.get_config_file_patterns()
        self.tasks.install_preferences = self.settings.get_install_preferences()
        self.tasks.set_current_tasks(result.tasks)
        self.last_analysis = result
        if result.password_required:
            log.info("%d archive(s) need a password", len(result.password_required))
        for err in result.errors:
            log.warning("Analysis: %s", err)
        return result

    def start_installation(self):
        """Submit the enabled tasks; None when the gate is closed."""
        batch = prepare_batch(self.tasks)
        if not batch:
            return None
        result = self.backend.install_addons(batch, self.xplane_path, self.settings.install_options())
        log.info("Installed %d of %d task(s)", result.successful, result.total)

        ok_ids = {r.task_id for r in result.results if r.success}
        if any(t["id"] in ok_ids and t["type"] in _SCENERY_TYPES for t in batch):
            # new scenery on disk, the loaded order is now stale
            self.registry.mark_needs_sync()
        return result
