from __future__ import annotations
from threading import Lock
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal, Slot, QRunnable, QThreadPool

from logger_util import get_logger

log = get_logger()

JOB_SCENERY_LOAD = "scenery-load"
JOB_SCENERY_APPLY = "scenery-apply"


class JobSignals(QObject):
    finished = Signal(object, object)  # on_done, result
    failed = Signal(object, object)  # on_error, exception

    def __init__(self):
        super().__init__()


class BackendJob(QRunnable):
    def __init__(
        self,
        key: str,
        fn: Callable,
        signals: JobSignals,
        release: Callable,
        on_done: Optional[Callable] = None,
        on_error: Optional[Callable] = None,
    ):
        super().__init__()
        self.key = key
        self.fn = fn
        self.signals = signals
        self.release = release
        self.on_done = on_done
        self.on_error = on_error

    def run(self):
        try:
            result = self.fn()
        except Exception as exc:
            log.error("Background job %s failed: %s", self.key, exc)
            self.release(self.key)
            self.signals.failed.emit(self.on_error, exc)
            return
        self.release(self.key)
        self.signals.finished.emit(self.on_done, result)


class JobRunner(QObject):
    """Runs backend calls off the UI thread, at most one per key at a time.

    A start() for a key that is still running is refused rather than queued,
    so two applies can never hit the backend out of order. Callbacks run on
    the thread that owns the runner once its event loop picks them up.
    """

    def __init__(self, pool: QThreadPool | None = None, parent=None):
        super().__init__(parent)
        self._pool = pool or QThreadPool.globalInstance()
        self._signals = JobSignals()
        self._signals.finished.connect(self._on_finished)
        self._signals.failed.connect(self._on_failed)
        self._lock = Lock()
        self._running: set[str] = set()

    def is_running(self, key: str) -> bool:
        with self._lock:
            return key in self._running

    def start(self, key: str, fn: Callable, on_done=None, on_error=None) -> bool:
        with self._lock:
            if key in self._running:
                log.warning("Job %s already running, request ignored", key)
                return False
            self._running.add(key)
        job = BackendJob(key, fn, self._signals, self._release, on_done, on_error)
        self._pool.start(job)
        return True

    def wait(self, msecs: int = -1) -> bool:
        return self._pool.waitForDone(msecs)

    def _release(self, key: str):
        with self._lock:
            self._running.discard(key)

    @Slot(object, object)
    def _on_finished(self, on_done, result):
        if callable(on_done):
            on_done(result)

    @Slot(object, object)
    def _on_failed(self, on_error, exc):
        if callable(on_error):
            on_error(exc)
