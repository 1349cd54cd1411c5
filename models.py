from dataclasses import dataclass, field
from typing import Optional

from PySide6.QtCore import Qt, QAbstractTableModel

from categorizer import (
    CAT_FIXED_HIGH_PRIORITY,
    CAT_OTHER,
    ClassifierSignals,
    classify,
    derive_sub_priority,
    is_sam_folder_name,
    normalize_category,
)

ADDON_AIRCRAFT = "Aircraft"
ADDON_SCENERY = "Scenery"
ADDON_SCENERY_LIBRARY = "SceneryLibrary"
ADDON_PLUGIN = "Plugin"
ADDON_NAVDATA = "Navdata"
ADDON_LIVERY = "Livery"

ADDON_TYPES = [
    ADDON_AIRCRAFT,
    ADDON_SCENERY,
    ADDON_SCENERY_LIBRARY,
    ADDON_PLUGIN,
    ADDON_NAVDATA,
    ADDON_LIVERY,
]

# Keys the InstallTask dataclass consumes; everything else rides along in `extra`
_TASK_KEYS = {
    "id",
    "type",
    "sourcePath",
    "targetPath",
    "displayName",
    "conflictExists",
    "sizeWarning",
    "archiveInternalRoot",
    "liveryAircraftFound",
}


@dataclass
class SceneryEntry:
    folder_name: str
    category: str = CAT_OTHER
    sub_priority: int = 0
    sort_order: Optional[int] = 0
    enabled: bool = True
    required_libraries: frozenset = field(default_factory=frozenset)
    # scan output, only a rescan refreshes it
    missing_libraries: frozenset = field(default_factory=frozenset)

    @classmethod
    def from_record(cls, rec: dict) -> "SceneryEntry":
        name = rec.get("folderName")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"scenery record has no usable folderName: {name!r}")
        name = name.strip()
        cat = rec.get("category")
        if cat is None:
            if is_sam_folder_name(name):
                cat = CAT_FIXED_HIGH_PRIORITY
            else:
                cat = classify(ClassifierSignals.from_record(rec.get("signals") or {}))
        cat = normalize_category(cat)
        sub = rec.get("subPriority")
        sort_order = rec.get("sortOrder")
        return cls(
            folder_name=name,
            category=cat,
            sub_priority=int(sub) if sub is not None else derive_sub_priority(cat, name),
            sort_order=int(sort_order) if sort_order is not None else None,
            enabled=bool(rec.get("enabled", True)),
            required_libraries=frozenset(rec.get("requiredLibraries") or ()),
            missing_libraries=frozenset(rec.get("missingLibraries") or ()),
        )

    def to_record(self, full: bool = False) -> dict:
        rec = {
            "folderName": self.folder_name,
            "category": self.category,
            "sortOrder": self.sort_order,
            "enabled": self.enabled,
        }
        if full:
            rec["subPriority"] = self.sub_priority
            rec["requiredLibraries"] = sorted(self.required_libraries)
            rec["missingLibraries"] = sorted(self.missing_libraries)
        return rec


@dataclass(frozen=True)
class InstallTask:
    id: str
    type: str
    source_path: str = ""
    target_path: str = ""
    display_name: str = ""
    conflict_exists: bool = False
    size_warning: Optional[str] = None
    archive_internal_root: Optional[str] = None
    livery_aircraft_found: Optional[bool] = None
    extra: dict = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_record(cls, rec: dict) -> "InstallTask":
        task_id = rec.get("id")
        if task_id in (None, ""):
            raise ValueError("install task record has no id")
        return cls(
            id=str(task_id),
            type=rec.get("type", ""),
            source_path=rec.get("sourcePath", ""),
            target_path=rec.get("targetPath", ""),
            display_name=rec.get("displayName", "") or str(task_id),
            conflict_exists=bool(rec.get("conflictExists", False)),
            size_warning=rec.get("sizeWarning") or None,
            archive_internal_root=rec.get("archiveInternalRoot"),
            livery_aircraft_found=rec.get("liveryAircraftFound"),
            extra={k: v for k, v in rec.items() if k not in _TASK_KEYS},
        )

    def to_record(self) -> dict:
        rec = dict(self.extra)
        rec.update(
            {
                "id": self.id,
                "type": self.type,
                "sourcePath": self.source_path,
                "targetPath": self.target_path,
                "displayName": self.display_name,
                "conflictExists": self.conflict_exists,
            }
        )
        if self.size_warning:
            rec["sizeWarning"] = self.size_warning
        if self.archive_internal_root is not None:
            rec["archiveInternalRoot"] = self.archive_internal_root
        if self.livery_aircraft_found is not None:
            rec["liveryAircraftFound"] = self.livery_aircraft_found
        return rec


@dataclass
class TaskDecision:
    enabled: bool = True
    overwrite: bool = False
    size_confirmed: bool = False
    backup_liveries: bool = False
    backup_config_files: bool = False


@dataclass(frozen=True)
class BackupSettings:
    liveries: bool = False
    config_files: bool = False


@dataclass(frozen=True)
class QuickScanResult:
    index_exists: bool
    added: int = 0
    removed: int = 0
    updated: int = 0

    @classmethod
    def from_record(cls, rec: dict) -> "QuickScanResult":
        return cls(
            index_exists=bool(rec.get("indexExists", False)),
            added=int(rec.get("added") or 0),
            removed=int(rec.get("removed") or 0),
            updated=int(rec.get("updated") or 0),
        )

    @property
    def changed_count(self) -> int:
        return self.added + self.removed + self.updated

    @property
    def has_changes(self) -> bool:
        return self.changed_count > 0


@dataclass
class AnalysisResult:
    tasks: list = field(default_factory=list)
    errors: list = field(default_factory=list)
    password_required: list = field(default_factory=list)

    @classmethod
    def from_record(cls, rec: dict) -> "AnalysisResult":
        return cls(
            tasks=[InstallTask.from_record(t) for t in rec.get("tasks") or []],
            errors=list(rec.get("errors") or []),
            password_required=list(rec.get("passwordRequired") or []),
        )


@dataclass(frozen=True)
class TaskResult:
    task_id: str
    task_name: str = ""
    success: bool = False
    error_message: Optional[str] = None


@dataclass
class InstallResult:
    results: list = field(default_factory=list)

    @classmethod
    def from_record(cls, rec: dict) -> "InstallResult":
        out = []
        for r in rec.get("taskResults") or []:
            out.append(
                TaskResult(
                    task_id=str(r.get("taskId", "")),
                    task_name=r.get("taskName", ""),
                    success=bool(r.get("success", False)),
                    error_message=r.get("errorMessage"),
                )
            )
        return cls(results=out)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    def failed_tasks(self) -> list:
        return [r for r in self.results if not r.success]


# ----------------------- Qt table models -----------------------

SCENERY_NAME_COL = 0
SCENERY_CATEGORY_COL = 1
SCENERY_ORDER_COL = 2
SCENERY_ENABLED_COL = 3
SCENERY_MISSING_COL = 4

TASK_NAME_COL = 0
TASK_TYPE_COL = 1
TASK_ENABLED_COL = 2
TASK_OVERWRITE_COL = 3
TASK_SIZE_COL = 4


def _is_checked(value) -> bool:
    try:
        return Qt.CheckState(value) == Qt.CheckState.Checked
    except (TypeError, ValueError):
        return False


def _check_state(flag: bool):
    return Qt.Checked if flag else Qt.Unchecked


class SceneryTableModel(QAbstractTableModel):
    """Flat view of a SceneryRegistry in absolute (ini) order."""

    HEADERS = ["Name", "Category", "Order", "Enabled", "Missing Libraries"]

    def __init__(self, registry, parent=None):
        super().__init__(parent)
        self._registry = registry
        self._rows = registry.sorted_entries()

    def refresh(self):
        """Re-read the registry after a load, reset or external mutation."""
        self.beginResetModel()
        self._rows = self._registry.sorted_entries()
        self.endResetModel()

    # ----- Qt model API -----
    def rowCount(self, parent=None):
        return len(self._rows)

    def columnCount(self, parent=None):
        return len(self.HEADERS)

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if role != Qt.DisplayRole:
            return None
        if orientation == Qt.Horizontal:
            return self.HEADERS[section] if 0 <= section < len(self.HEADERS) else ""
        return ""

    def flags(self, index):
        if not index.isValid():
            return Qt.ItemIsEnabled
        base_flags = super().flags(index) | Qt.ItemIsSelectable | Qt.ItemIsEnabled
        if index.column() == SCENERY_ENABLED_COL:
            return base_flags | Qt.ItemIsUserCheckable
        return base_flags

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        row = self._rows[index.row()]
        col = index.column()

        if role == Qt.DisplayRole:
            if col == SCENERY_NAME_COL:
                return row.folder_name
            if col == SCENERY_CATEGORY_COL:
                return row.category
            if col == SCENERY_ORDER_COL:
                return row.sort_order
            if col == SCENERY_MISSING_COL:
                return len(row.missing_libraries) or ""
            return None

        if role == Qt.ToolTipRole and col == SCENERY_MISSING_COL:
            if row.missing_libraries:
                return "Missing: " + ", ".join(sorted(row.missing_libraries))
            return None

        if role == Qt.CheckStateRole and col == SCENERY_ENABLED_COL:
            return _check_state(row.enabled)

        return None

    def setData(self, index, value, role=Qt.EditRole):
        if not index.isValid():
            return False
        if index.column() != SCENERY_ENABLED_COL or role != Qt.CheckStateRole:
            return False
        row = self._rows[index.row()]
        want = _is_checked(value)
        if want != row.enabled:
            self._registry.set_enabled(row.folder_name, want)
            self.dataChanged.emit(index, index, [Qt.CheckStateRole])
        return True

    # ----- public helpers -----
    def entry_at(self, row: int):
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None

    def move_row(self, row: int, index_in_category: int):
        entry = self.entry_at(row)
        if entry is None:
            return
        self._registry.move_entry(entry.folder_name, index_in_category)
        self.refresh()

    def set_row_category(self, row: int, category: str):
        entry = self.entry_at(row)
        if entry is None:
            return
        self._registry.update_category(entry.folder_name, category)
        self.refresh()


class InstallTaskTableModel(QAbstractTableModel):
    HEADERS = ["Name", "Type", "Install", "Overwrite", "Size Confirmed"]

    def __init__(self, negotiation, parent=None):
        super().__init__(parent)
        self._model = negotiation
        self._rows = list(negotiation.tasks)

    def refresh(self):
        self.beginResetModel()
        self._rows = list(self._model.tasks)
        self.endResetModel()

    def rowCount(self, parent=None):
        return len(self._rows)

    def columnCount(self, parent=None):
        return len(self.HEADERS)

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if role != Qt.DisplayRole:
            return None
        if orientation == Qt.Horizontal:
            return self.HEADERS[section] if 0 <= section < len(self.HEADERS) else ""
        return ""

    def _checkable(self, task, col) -> bool:
        if col == TASK_ENABLED_COL:
            return True
        if col == TASK_OVERWRITE_COL:
            return task.conflict_exists
        if col == TASK_SIZE_COL:
            return bool(task.size_warning)
        return False

    def flags(self, index):
        if not index.isValid():
            return Qt.ItemIsEnabled
        base_flags = super().flags(index) | Qt.ItemIsSelectable | Qt.ItemIsEnabled
        task = self._rows[index.row()]
        if self._checkable(task, index.column()):
            return base_flags | Qt.ItemIsUserCheckable
        return base_flags

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        task = self._rows[index.row()]
        col = index.column()

        if role == Qt.DisplayRole:
            if col == TASK_NAME_COL:
                return task.display_name
            if col == TASK_TYPE_COL:
                return task.type
            if col == TASK_OVERWRITE_COL and task.conflict_exists:
                return "Overwrite" if self._model.get_task_overwrite(task.id) else "Clean install"
            return None

        if role == Qt.ToolTipRole and col == TASK_SIZE_COL and task.size_warning:
            return task.size_warning

        if role == Qt.CheckStateRole and self._checkable(task, col):
            if col == TASK_ENABLED_COL:
                return _check_state(self._model.get_task_enabled(task.id))
            if col == TASK_OVERWRITE_COL:
                return _check_state(self._model.get_task_overwrite(task.id))
            return _check_state(self._model.get_task_size_confirmed(task.id))

        return None

    def setData(self, index, value, role=Qt.EditRole):
        if not index.isValid() or role != Qt.CheckStateRole:
            return False
        task = self._rows[index.row()]
        col = index.column()
        if not self._checkable(task, col):
            return False
        want = _is_checked(value)
        if col == TASK_ENABLED_COL:
            self._model.set_task_enabled(task.id, want)
        elif col == TASK_OVERWRITE_COL:
            self._model.set_task_overwrite(task.id, want)
        else:
            self._model.set_task_size_confirmed(task.id, want)
        self.dataChanged.emit(index, index, [Qt.CheckStateRole, Qt.DisplayRole])
        return True
