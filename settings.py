import copy
import json

from PySide6.QtCore import QSettings

from categorizer import is_category
from logger_util import get_logger
from models import ADDON_TYPES

log = get_logger()

ORG_NAME = "XPAddonWrangler"
APP_NAME = "XPlane-Addon-Wrangler"

DEFAULT_INSTALL_PREFERENCES = {t: True for t in ADDON_TYPES}
# RAR verification is unreliable, keep it off unless asked for
DEFAULT_VERIFICATION_PREFERENCES = {"zip": True, "7z": True, "rar": False, "directory": True}
DEFAULT_CONFIG_FILE_PATTERNS = ["*_prefs.txt"]
LOG_LEVELS = ("basic", "full", "debug")
DEFAULT_LOG_LEVEL = "full"

PATTERN_UNBALANCED_BRACKET = "settings.patternUnbalancedBracket"
PATTERN_UNBALANCED_BRACE = "settings.patternUnbalancedBrace"
PATTERN_INVALID_SLASH = "settings.patternInvalidSlash"


def validate_glob_pattern(pattern: str) -> str | None:
    """Return an error key for a malformed glob, None when it's usable."""
    if not pattern or not pattern.strip():
        return None  # blanks get filtered out later

    bracket_depth = 0
    brace_depth = 0
    prev = ""
    for ch in pattern:
        if prev == "\\":
            prev = ch
            continue
        if ch == "[":
            bracket_depth += 1
        elif ch == "]":
            bracket_depth -= 1
        elif ch == "{":
            brace_depth += 1
        elif ch == "}":
            brace_depth -= 1
        if bracket_depth < 0:
            return PATTERN_UNBALANCED_BRACKET
        if brace_depth < 0:
            return PATTERN_UNBALANCED_BRACE
        prev = ch

    if bracket_depth != 0:
        return PATTERN_UNBALANCED_BRACKET
    if brace_depth != 0:
        return PATTERN_UNBALANCED_BRACE
    if "//" in pattern:
        return PATTERN_INVALID_SLASH
    return None


def validate_glob_patterns(patterns) -> tuple[dict, list]:
    """Split patterns into ({index: error_key}, [valid trimmed patterns])."""
    errors: dict[int, str] = {}
    valid: list[str] = []
    for i, pattern in enumerate(patterns or []):
        trimmed = (pattern or "").strip()
        if not trimmed:
            continue
        err = validate_glob_pattern(trimmed)
        if err:
            errors[i] = err
        else:
            valid.append(trimmed)
    return errors, valid


def _is_bool_map(val) -> bool:
    return isinstance(val, dict) and all(isinstance(v, bool) for v in val.values())


def _is_str_list(val) -> bool:
    return isinstance(val, list) and all(isinstance(v, str) for v in val)


class AppSettings:
    def __init__(self, qsettings: QSettings | None = None):
        self.s = qsettings if qsettings is not None else QSettings(ORG_NAME, APP_NAME)

    # ----- helpers -----

    def _get_json(self, key: str, default, check):
        raw = self.s.value(key, None, type=str)
        if not raw:
            return copy.deepcopy(default)
        try:
            val = json.loads(raw)
        except ValueError:
            log.warning("Corrupted setting %s, using defaults", key)
            self.s.remove(key)
            return copy.deepcopy(default)
        if not check(val):
            log.warning("Invalid setting %s, using defaults", key)
            self.s.remove(key)
            return copy.deepcopy(default)
        return val

    def _set_json(self, key: str, val):
        self.s.setValue(key, json.dumps(val))

    def _get_bool(self, key: str, default: bool) -> bool:
        return bool(self.s.value(key, default, type=bool))

    def sync(self):
        self.s.sync()

    # ----- paths -----

    def get_xplane_path(self) -> str | None:
        return self.s.value("paths/xplane_root", None, type=str) or None

    def set_xplane_path(self, p: str):
        self.s.setValue("paths/xplane_root", p)

    # ----- install preferences -----

    def get_install_preferences(self) -> dict:
        prefs = dict(DEFAULT_INSTALL_PREFERENCES)
        prefs.update(self._get_json("install/preferences", {}, _is_bool_map))
        return prefs

    def toggle_install_preference(self, addon_type: str) -> bool:
        prefs = self.get_install_preferences()
        prefs[addon_type] = not prefs.get(addon_type, True)
        self._set_json("install/preferences", prefs)
        return prefs[addon_type]

    def get_verification_preferences(self) -> dict:
        prefs = dict(DEFAULT_VERIFICATION_PREFERENCES)
        prefs.update(self._get_json("install/verification", {}, _is_bool_map))
        return prefs

    def toggle_verification_preference(self, source_type: str) -> bool:
        prefs = self.get_verification_preferences()
        prefs[source_type] = not prefs.get(source_type, False)
        self._set_json("install/verification", prefs)
        return prefs[source_type]

    def get_atomic_install(self) -> bool:
        return self._get_bool("install/atomic", False)

    def set_atomic_install(self, on: bool):
        self.s.setValue("install/atomic", bool(on))

    def get_delete_source_after_install(self) -> bool:
        return self._get_bool("install/delete_source", False)

    def set_delete_source_after_install(self, on: bool):
        self.s.setValue("install/delete_source", bool(on))

    def get_config_file_patterns(self) -> list:
        return self._get_json(
            "install/config_file_patterns", DEFAULT_CONFIG_FILE_PATTERNS, _is_str_list
        )

    def set_config_file_patterns(self, patterns) -> dict:
        """Store the valid patterns; return {index: error_key} for the rest."""
        errors, valid = validate_glob_patterns(patterns)
        self._set_json("install/config_file_patterns", valid)
        return errors

    def install_options(self) -> dict:
        return {
            "atomicInstall": self.get_atomic_install(),
            "deleteSourceAfterInstall": self.get_delete_source_after_install(),
            "verificationPreferences": self.get_verification_preferences(),
        }

    # ----- scenery -----

    def get_auto_sort_scenery(self) -> bool:
        return self._get_bool("scenery/auto_sort", False)

    def set_auto_sort_scenery(self, on: bool):
        self.s.setValue("scenery/auto_sort", bool(on))

    def get_collapsed_groups(self) -> dict:
        groups = self._get_json("scenery/collapsed_groups", {}, _is_bool_map)
        return {k: v for k, v in groups.items() if is_category(k)}

    def set_group_collapsed(self, category: str, collapsed: bool):
        if not is_category(category):
            return
        groups = self.get_collapsed_groups()
        groups[category] = bool(collapsed)
        self._set_json("scenery/collapsed_groups", groups)

    # ----- logging -----

    def get_log_level(self) -> str:
        val = self.s.value("logging/level", DEFAULT_LOG_LEVEL, type=str)
        if val not in LOG_LEVELS:
            log.warning("Invalid log level %r, using default", val)
            self.s.remove("logging/level")
            return DEFAULT_LOG_LEVEL
        return val

    def set_log_level(self, level: str):
        if level not in LOG_LEVELS:
            return
        self.s.setValue("logging/level", level)
