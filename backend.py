import json
from typing import Callable, Optional

from logger_util import get_logger
from models import AnalysisResult, InstallResult, QuickScanResult

log = get_logger()

CMD_SCAN_SCENERY = "get_scenery_manager_data"
CMD_QUICK_SCAN = "quick_scan_scenery_index"
CMD_APPLY_SCENERY = "apply_scenery_changes"
CMD_REBUILD_INDEX = "rebuild_scenery_index"
CMD_ANALYZE = "analyze_addons"
CMD_INSTALL = "install_addons"

_ERROR_KEYS = {"code", "message", "details"}


class CommandError(Exception):
    """A failed backend command. `code` is an opaque classification string."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


def parse_api_error(obj) -> Optional[dict]:
    """Return the {code, message, details} mapping if `obj` is a structured error."""
    if isinstance(obj, (str, bytes)):
        try:
            obj = json.loads(obj)
        except ValueError:
            return None
    if not isinstance(obj, dict):
        return None
    if "code" not in obj or "message" not in obj:
        return None
    if set(obj) - _ERROR_KEYS:
        return None
    return obj


def _error_from(api_error: dict) -> CommandError:
    code = api_error.get("code")
    return CommandError(
        str(api_error.get("message", "")),
        code=str(code) if code is not None else None,
        details=api_error.get("details"),
    )


class InProcessTransport:
    """Dispatches commands to Python callables registered by name."""

    def __init__(self, handlers: Optional[dict] = None):
        self._handlers: dict[str, Callable] = dict(handlers or {})

    def register(self, command: str, handler: Callable):
        self._handlers[command] = handler

    def __call__(self, command: str, args: dict):
        handler = self._handlers.get(command)
        if handler is None:
            raise CommandError(f"Unknown command: {command}", code="not_found")
        return handler(**args)


class BackendClient:
    def __init__(self, transport: Callable):
        self._transport = transport

    # ----- raw invocation -----

    def invoke(self, command: str, **args):
        log.debug("invoke %s", command)
        try:
            result = self._transport(command, args)
        except CommandError as exc:
            log.error("%s failed: %s", command, exc)
            raise
        except Exception as exc:
            api_error = parse_api_error(exc.args[0] if exc.args else None)
            err = _error_from(api_error) if api_error else CommandError(str(exc))
            log.error("%s failed: %s", command, err)
            raise err from exc

        # commands returning a Result type may hand back the error as a value
        api_error = parse_api_error(result) if isinstance(result, dict) else None
        if api_error:
            err = _error_from(api_error)
            log.error("%s failed: %s", command, err)
            raise err
        return result

    def try_invoke(self, command: str, **args):
        try:
            return self.invoke(command, **args)
        except CommandError:
            return None

    # ----- scenery index -----

    def scan_scenery(self, xplane_path: str) -> dict:
        result = self.invoke(CMD_SCAN_SCENERY, xplanePath=xplane_path)
        if isinstance(result, list):
            return {"entries": result, "needsSync": False}
        return result or {"entries": [], "needsSync": False}

    def quick_scan(self, xplane_path: str) -> QuickScanResult:
        return QuickScanResult.from_record(
            self.invoke(CMD_QUICK_SCAN, xplanePath=xplane_path) or {}
        )

    def apply_scenery_order(self, xplane_path: str, entries: list):
        self.invoke(CMD_APPLY_SCENERY, xplanePath=xplane_path, entries=entries)

    def rebuild_scenery_index(self, xplane_path: str):
        return self.invoke(CMD_REBUILD_INDEX, xplanePath=xplane_path)

    # ----- add-on installation -----

    def analyze_addons(
        self, paths: list, xplane_path: str, passwords: Optional[dict] = None
    ) -> AnalysisResult:
        result = self.invoke(
            CMD_ANALYZE,
            paths=list(paths),
            xplanePath=xplane_path,
            passwords=dict(passwords or {}),
        )
        return AnalysisResult.from_record(result or {})

    def install_addons(
        self, tasks: list, xplane_path: str, options: Optional[dict] = None
    ) -> InstallResult:
        result = self.invoke(
            CMD_INSTALL, tasks=tasks, xplanePath=xplane_path, **(options or {})
        )
        return InstallResult.from_record(result or {})
