from __future__ import annotations

import pytest
from PySide6.QtCore import QCoreApplication, QSettings

from backend import (
    CMD_ANALYZE,
    CMD_APPLY_SCENERY,
    CMD_INSTALL,
    CMD_QUICK_SCAN,
    CMD_REBUILD_INDEX,
    CMD_SCAN_SCENERY,
    BackendClient,
    InProcessTransport,
)


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class FakeBackendState:
    """What the fake backend returns, and what it was asked to do."""

    def __init__(self) -> None:
        self.scenery: list[dict] = []
        self.needs_sync = False
        self.quick = {"indexExists": True, "added": 0, "removed": 0, "updated": 0}
        self.scan_error: Exception | None = None
        self.apply_error: Exception | None = None
        self.applied: list[list[dict]] = []
        self.rebuilds = 0
        self.analysis: dict = {"tasks": [], "errors": [], "passwordRequired": []}
        self.analyze_calls: list[dict] = []
        self.installed: list[list[dict]] = []
        self.install_options: list[dict] = []
        self.install_failures: set[str] = set()


@pytest.fixture
def backend_state() -> FakeBackendState:
    return FakeBackendState()


@pytest.fixture
def backend(backend_state: FakeBackendState) -> BackendClient:
    s = backend_state
    transport = InProcessTransport()

    def scan(xplanePath):
        if s.scan_error:
            raise s.scan_error
        return {"entries": [dict(r) for r in s.scenery], "needsSync": s.needs_sync}

    def quick(xplanePath):
        return dict(s.quick)

    def apply(xplanePath, entries):
        if s.apply_error:
            raise s.apply_error
        s.applied.append(entries)

    def rebuild(xplanePath):
        s.rebuilds += 1
        return {"totalPackages": len(s.scenery)}

    def analyze(paths, xplanePath, passwords):
        s.analyze_calls.append({"paths": paths, "passwords": passwords})
        return s.analysis

    def install(tasks, xplanePath, **options):
        s.installed.append(tasks)
        s.install_options.append(options)
        return {
            "taskResults": [
                {
                    "taskId": t["id"],
                    "taskName": t["displayName"],
                    "success": t["id"] not in s.install_failures,
                    "errorMessage": "boom" if t["id"] in s.install_failures else None,
                }
                for t in tasks
            ]
        }

    transport.register(CMD_SCAN_SCENERY, scan)
    transport.register(CMD_QUICK_SCAN, quick)
    transport.register(CMD_APPLY_SCENERY, apply)
    transport.register(CMD_REBUILD_INDEX, rebuild)
    transport.register(CMD_ANALYZE, analyze)
    transport.register(CMD_INSTALL, install)
    return BackendClient(transport)


@pytest.fixture
def qsettings(tmp_path) -> QSettings:
    return QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)
