from dataclasses import dataclass

CAT_FIXED_HIGH_PRIORITY = "FixedHighPriority"
CAT_AIRPORT = "Airport"
CAT_DEFAULT_AIRPORT = "DefaultAirport"
CAT_LIBRARY = "Library"
CAT_OVERLAY = "Overlay"
CAT_AIRPORT_MESH = "AirportMesh"
CAT_MESH = "Mesh"
CAT_OTHER = "Other"

# First match wins when several markers are set
CLASSIFY_PRECEDENCE = [
    CAT_FIXED_HIGH_PRIORITY,
    CAT_AIRPORT,
    CAT_DEFAULT_AIRPORT,
    CAT_LIBRARY,
    CAT_OVERLAY,
    CAT_AIRPORT_MESH,
    CAT_MESH,
    CAT_OTHER,
]

# Order of the groups in scenery_packs.ini; mesh always goes last
CATEGORY_ORDER = [
    CAT_FIXED_HIGH_PRIORITY,
    CAT_AIRPORT,
    CAT_DEFAULT_AIRPORT,
    CAT_LIBRARY,
    CAT_OTHER,
    CAT_OVERLAY,
    CAT_AIRPORT_MESH,
    CAT_MESH,
]

_RANKS = {name: i for i, name in enumerate(CATEGORY_ORDER)}

SAM_FOLDER_HINTS = ("sam_", "sam-", "samlib", "sam library", "sam_library")


@dataclass(frozen=True)
class ClassifierSignals:
    fixed_priority: bool = False
    airport: bool = False
    default_airport: bool = False
    library: bool = False
    overlay: bool = False
    airport_mesh: bool = False
    mesh: bool = False

    @classmethod
    def from_record(cls, rec: dict) -> "ClassifierSignals":
        """Build from a scanner mapping (camelCase keys, missing keys are False)."""
        rec = rec or {}
        return cls(
            fixed_priority=bool(rec.get("hasFixedPriorityMarker", False)),
            airport=bool(rec.get("hasAirportData", False)),
            default_airport=bool(rec.get("isDefaultAirport", False)),
            library=bool(rec.get("hasLibraryManifest", False)),
            overlay=bool(rec.get("hasOverlayMarker", False)),
            airport_mesh=bool(rec.get("hasAirportMeshMarker", False)),
            mesh=bool(rec.get("hasMeshMarker", False)),
        )


def classify(signals: ClassifierSignals) -> str:
    checks = [
        (signals.fixed_priority, CAT_FIXED_HIGH_PRIORITY),
        (signals.airport, CAT_AIRPORT),
        (signals.default_airport, CAT_DEFAULT_AIRPORT),
        (signals.library, CAT_LIBRARY),
        (signals.overlay, CAT_OVERLAY),
        (signals.airport_mesh, CAT_AIRPORT_MESH),
        (signals.mesh, CAT_MESH),
    ]
    for flag, cat in checks:
        if flag:
            return cat
    return CAT_OTHER


def is_category(name) -> bool:
    return name in _RANKS


def category_rank(name: str) -> int:
    """Position of a category in the ini order. Unknown names rank with Other."""
    return _RANKS.get(name, _RANKS[CAT_OTHER])


def normalize_category(name) -> str:
    return name if name in _RANKS else CAT_OTHER


def is_sam_folder_name(folder_name: str) -> bool:
    n = (folder_name or "").lower()
    if n == "sam":
        return True
    return any(n.startswith(h) for h in SAM_FOLDER_HINTS)


def derive_sub_priority(category: str, folder_name: str) -> int:
    # XPME packages go behind every other mesh/ortho package
    n = (folder_name or "").lower()
    if category == CAT_AIRPORT_MESH:
        return 2 if "xpme" in n else 0
    if category == CAT_MESH:
        return 2 if "xpme" in n else 1
    return 0
