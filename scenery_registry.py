import copy
from functools import wraps
from threading import RLock
from types import MappingProxyType

from categorizer import CATEGORY_ORDER, category_rank, is_category, normalize_category
from dependencies import missing_deps_count
from logger_util import get_logger
from models import SceneryEntry

log = get_logger()

STATE_CLEAN = "Clean"
STATE_DIRTY = "Dirty"


def _order_key(entry):
    # folder name breaks sort_order ties so the list never jitters between reads
    return (entry.sort_order, entry.folder_name)


def _renumber(members):
    for i, e in enumerate(members):
        e.sort_order = i


def _item_identity(item):
    """(folder_name, category) from an entry, a plain record or a bare name."""
    if isinstance(item, str):
        return item, None
    if isinstance(item, dict):
        return item.get("folderName"), item.get("category")
    return getattr(item, "folder_name", None), getattr(item, "category", None)


def _synchronized(method):
    @wraps(method)
    def locked(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return locked


def _seed_sort_orders(entries):
    """Give entries the scanner left unordered a place after the ordered ones."""
    by_cat: dict[str, list] = {}
    for e in entries:
        by_cat.setdefault(e.category, []).append(e)
    for members in by_cat.values():
        unordered = [e for e in members if e.sort_order is None]
        if not unordered:
            continue
        start = max((e.sort_order for e in members if e.sort_order is not None), default=-1) + 1
        unordered.sort(key=lambda e: (e.sub_priority, e.folder_name))
        for i, e in enumerate(unordered):
            e.sort_order = start + i


class SceneryRegistry:
    """Editable copy of the scenery index, kept in per-category order.

    Mutators only touch memory and never raise; unknown folder names are
    ignored. load() and apply_changes() are the only calls that reach the
    backend, and both leave local state untouched when the backend fails.

    Either may run on a worker thread while the UI keeps editing, so the
    in-flight flags and every mutation go through one lock, and an apply
    only marks clean what it actually sent.
    """

    def __init__(self, backend=None, xplane_path: str = ""):
        self.backend = backend
        self.xplane_path = xplane_path
        self._entries: dict[str, SceneryEntry] = {}
        self._snapshot: dict[str, SceneryEntry] = {}
        self.needs_sync = False
        self.has_local_changes = False
        self._loading = False
        self._saving = False
        self._lock = RLock()
        # bumped on every local edit or reset
        self._revision = 0

    # ----- state -----

    @property
    def has_changes(self) -> bool:
        return self.needs_sync or self.has_local_changes

    @property
    def sync_state(self) -> str:
        return STATE_DIRTY if self.has_local_changes else STATE_CLEAN

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def entries(self):
        return MappingProxyType(self._entries)

    @property
    def total_count(self) -> int:
        return len(self._entries)

    @property
    def enabled_count(self) -> int:
        return sum(1 for e in self._entries.values() if e.enabled)

    @property
    def missing_deps_count(self) -> int:
        return missing_deps_count(self._entries.values())

    def get(self, folder_name: str):
        return self._entries.get(folder_name)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, folder_name):
        return folder_name in self._entries

    # ----- projections -----

    def _category_members(self, category: str) -> list:
        members = [e for e in self._entries.values() if e.category == category]
        members.sort(key=_order_key)
        return members

    @_synchronized
    def grouped_entries(self) -> dict:
        groups = {cat: [] for cat in CATEGORY_ORDER}
        for e in self._entries.values():
            groups[e.category].append(e)
        for members in groups.values():
            members.sort(key=_order_key)
        return groups

    def sorted_entries(self) -> list:
        out = []
        for members in self.grouped_entries().values():
            out.extend(members)
        return out

    @_synchronized
    def snapshot_entries(self) -> list:
        """Copies of the entries as they were after the last load or apply."""
        saved = list(copy.deepcopy(self._snapshot).values())
        saved.sort(key=lambda e: (category_rank(e.category),) + _order_key(e))
        return saved


    # ----- mutators -----

    def _mark_dirty(self):
        self.has_local_changes = True
        self._revision += 1

    @_synchronized
    def toggle_enabled(self, folder_name: str):
        entry = self._entries.get(folder_name)
        if entry is None:
            return
        entry.enabled = not entry.enabled
        self._mark_dirty()

    @_synchronized
    def set_enabled(self, folder_name: str, enabled: bool):
        entry = self._entries.get(folder_name)
        if entry is None:
            return
        entry.enabled = bool(enabled)
        self._mark_dirty()

    @_synchronized
    def move_entry(self, folder_name: str, target_index):
        entry = self._entries.get(folder_name)
        if entry is None:
            return
        try:
            target = int(target_index)
        except (TypeError, ValueError):
            return
        members = [e for e in self._category_members(entry.category) if e is not entry]
        # drag-and-drop hands us near-boundary indexes, clamp them
        target = min(max(target, 0), len(members))
        members.insert(target, entry)
        _renumber(members)
        self._mark_dirty()

    @_synchronized
    def update_category(self, folder_name: str, new_category: str):
        entry = self._entries.get(folder_name)
        if entry is None or not is_category(new_category):
            return
        if entry.category == new_category:
            return
        old_members = [e for e in self._category_members(entry.category) if e is not entry]
        _renumber(old_members)
        new_members = self._category_members(new_category)
        entry.category = new_category
        entry.sort_order = max((e.sort_order for e in new_members), default=-1) + 1
        self._mark_dirty()

    @_synchronized
    def reorder_entries(self, sequence):
        """Take intra-category order from a full reordered list.

        Each item keeps the category it carries; interleaving across categories
        is ignored. Entries missing from `sequence` stay at the end of their
        category in their current relative order.
        """
        placed = {cat: [] for cat in CATEGORY_ORDER}
        seen = set()
        touched = set()
        for item in sequence or ():
            name, cat = _item_identity(item)
            entry = self._entries.get(name)
            if entry is None or name in seen:
                continue
            seen.add(name)
            if not is_category(cat):
                cat = entry.category
            touched.add(cat)
            touched.add(entry.category)
            placed[cat].append(entry)
        if not seen:
            return

        leftovers = {
            cat: [e for e in self._category_members(cat) if e.folder_name not in seen]
            for cat in touched
        }
        for cat in touched:
            for e in placed[cat]:
                e.category = cat
            _renumber(placed[cat] + leftovers[cat])
        self._mark_dirty()

    @_synchronized
    def reset_changes(self):
        self._entries = copy.deepcopy(self._snapshot)
        self.has_local_changes = False
        self._revision += 1

    def mark_needs_sync(self):
        self.needs_sync = True

    @_synchronized
    def clear(self):
        self._entries = {}
        self._snapshot = {}
        self.needs_sync = False
        self.has_local_changes = False

    # ----- loading -----

    def _replace(self, records, needs_sync: bool):
        entries: dict[str, SceneryEntry] = {}
        for rec in records:
            if isinstance(rec, SceneryEntry):
                entry = copy.deepcopy(rec)
                entry.category = normalize_category(entry.category)
            else:
                try:
                    entry = SceneryEntry.from_record(rec)
                except ValueError as exc:
                    log.warning("Skipping scenery record: %s", exc)
                    continue
            if entry.folder_name in entries:
                log.warning("Duplicate scenery folder %s in scan, keeping the first", entry.folder_name)
                continue
            entries[entry.folder_name] = entry
        _seed_sort_orders(entries.values())
        self._entries = entries
        self._snapshot = copy.deepcopy(entries)
        self.has_local_changes = False
        self.needs_sync = bool(needs_sync)

    @_synchronized
    def load_records(self, records, needs_sync: bool = False) -> bool:
        """Replace the registry from already-fetched scan records."""
        if self.has_local_changes:
            log.warning("Not replacing scenery list: there are unsaved local changes")
            return False
        self._replace(records, needs_sync)
        log.info("Loaded %d scenery packages", len(self._entries))
        return True

    def load(self) -> bool:
        with self._lock:
            if self._loading or self._saving:
                log.warning("Scenery load ignored: another backend call is in flight")
                return False
            if self.has_local_changes:
                log.warning("Not reloading scenery: there are unsaved local changes")
                return False
            if self.backend is None or not self.xplane_path:
                log.warning("Scenery load skipped: X-Plane path not set")
                return False
            self._loading = True

        try:
            payload = self.backend.scan_scenery(self.xplane_path)
        finally:
            with self._lock:
                self._loading = False
        # edits made while the scan ran make this refuse
        return self.load_records(
            payload.get("entries") or [], payload.get("needsSync", False)
        )

    def check_sync(self):
        """Ask the backend for a quick scan and flag drift. Advisory only."""
        if self.backend is None or not self.xplane_path:
            return None
        result = self.backend.quick_scan(self.xplane_path)
        if result.index_exists and result.has_changes:
            self.needs_sync = True
            log.info(
                "Scenery index drifted: %d added, %d removed, %d updated",
                result.added,
                result.removed,
                result.updated,
            )
        return result

    # ----- saving -----

    def apply_changes(self) -> bool:
        with self._lock:
            if self._saving or self._loading:
                log.warning("Apply ignored: another backend call is in flight")
                return False
            if self.backend is None or not self.xplane_path:
                log.warning("Apply skipped: X-Plane path not set")
                return False
            self._saving = True
            revision = self._revision
            sent = copy.deepcopy(self._entries)
            payload = [e.to_record() for e in self.sorted_entries()]

        try:
            self.backend.apply_scenery_order(self.xplane_path, payload)
        finally:
            with self._lock:
                self._saving = False

        with self._lock:
            self._snapshot = sent
            self.needs_sync = False
            # anything edited during the call was not sent and stays dirty
            self.has_local_changes = self._revision != revision
            if self.has_local_changes:
                log.info("Scenery edited while applying, keeping the newer edits as local changes")
        log.info("Applied scenery order for %d packages", len(payload))
        return True
