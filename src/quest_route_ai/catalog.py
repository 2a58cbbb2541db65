import json
import math
import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .geo import Point

logger = logging.getLogger(__name__)

FACTIONS = ("Alliance", "Horde", "Both")
CATEGORIES = ("Quest", "Turn-in")

# Schematic lat/lng positions of the turn-in hubs.
DEFAULT_HUBS: Dict[str, Tuple[float, float]] = {
    # Eastern Kingdoms
    "Stormwind": (12.0, -30.0),
    "Ironforge": (21.0, -38.0),
    "Light's Hope Chapel": (35.0, -15.0),
    "Booty Bay": (-2.0, -35.0),
    # Kalimdor
    "Orgrimmar": (18.0, 30.0),
    "Thunder Bluff": (10.0, 15.0),
    "Cenarion Hold": (-5.0, 20.0),
    "Everlook": (30.0, 40.0),
}

DEFAULT_QUESTS: List[Dict[str, Any]] = [
    {"id": 1, "name": "A Donation of Runecloth", "zone": "Stormwind", "xp": 8250, "faction": "Alliance", "category": "Turn-in", "notes": "Runecloth x60."},
    {"id": 2, "name": "A Donation of Runecloth", "zone": "Orgrimmar", "xp": 8250, "faction": "Horde", "category": "Turn-in", "notes": "Runecloth x60."},
    {"id": 3, "name": "A Donation of Mageweave", "zone": "Ironforge", "xp": 5100, "faction": "Alliance", "category": "Turn-in", "notes": "Mageweave x60."},
    {"id": 4, "name": "The Battle for Andorhal", "zone": "Light's Hope Chapel", "xp": 10000, "faction": "Both", "category": "Quest", "notes": "Turn in at LHC."},
    {"id": 5, "name": "The Calling", "zone": "Cenarion Hold", "xp": 9000, "faction": "Both", "category": "Quest", "notes": "Silithus questline turn-in."},
    {"id": 6, "name": "Ahn'Qiraj War Effort Turn-ins", "zone": "Cenarion Hold", "xp": 8000, "faction": "Both", "category": "Turn-in", "notes": "Assorted supply turn-ins."},
    {"id": 7, "name": "Frostsaber Provisions", "zone": "Everlook", "xp": 7750, "faction": "Both", "category": "Quest", "notes": "Everlook turn-in."},
    {"id": 8, "name": "Zandalar Coin Turn-ins", "zone": "Booty Bay", "xp": 7000, "faction": "Both", "category": "Turn-in", "notes": "ZG coins/tribal."},
]

DEFAULT_ITEMS: List[Dict[str, Any]] = [
    {"id": "i1", "item": "Qiraji Lord's Insignia", "where": "Cenarion Hold", "xp": 5000, "notes": "From AQ bosses; turn in at CH."},
    {"id": "i2", "item": "Zul'Gurub Coins (Any of 3)", "where": "Booty Bay", "xp": 3500, "notes": "Various coin sets; turn in Zandalar rep previously."},
    {"id": "i3", "item": "Darkmoon Deck Turn-in", "where": "Stormwind", "xp": 8000, "notes": "When Faire in town; placeholder."},
    {"id": "i4", "item": "Runecloth (Rep)", "where": "Orgrimmar", "xp": 8250, "notes": "Faction rep quest gives XP."},
]


@dataclass
class CatalogEntry:
    entry_id: Any  # int for quests, str for item turn-ins
    kind: str  # 'quest' or 'item'
    name: str
    zone: str
    xp: int
    latitude: float
    longitude: float
    faction: str = field(default="Both")
    category: str = field(default="Turn-in")
    notes: str = ""

    def to_point(self) -> Point:
        return Point(self.latitude, self.longitude, self.name)


@dataclass
class Catalog:
    quests: List[CatalogEntry]
    items: List[CatalogEntry]

    def quest(self, quest_id: int) -> Optional[CatalogEntry]:
        return next((q for q in self.quests if q.entry_id == quest_id), None)

    def item(self, item_id: str) -> Optional[CatalogEntry]:
        return next((i for i in self.items if i.entry_id == item_id), None)


def _validate_coord(lat: Any, lon: Any, where: str) -> Tuple[float, float]:
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        raise ValueError(f"invalid coordinate for {where}: ({lat}, {lon})") from None
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        raise ValueError(f"non-finite coordinate for {where}: ({lat}, {lon})")
    if not -90.0 <= lat_f <= 90.0:
        raise ValueError(f"latitude {lat_f} out of range for {where}")
    if not -180.0 <= lon_f <= 180.0:
        raise ValueError(f"longitude {lon_f} out of range for {where}")
    return lat_f, lon_f


def _is_missing(value: Any) -> bool:
    # pandas hands back NaN for empty CSV cells
    return value is None or (isinstance(value, float) and math.isnan(value)) or value == ""


def _get(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first non-missing value among ``keys``."""
    for key in keys:
        value = raw.get(key)
        if not _is_missing(value):
            return value
    return default


def _entry_coords(
    raw: Dict[str, Any], zone: str, hubs: Dict[str, Tuple[float, float]], where: str
) -> Tuple[float, float]:
    lat = _get(raw, "lat", "latitude")
    lon = _get(raw, "lng", "lon", "longitude")
    if isinstance(raw.get("coord"), dict):
        lat = raw["coord"].get("lat", lat)
        lon = raw["coord"].get("lng", lon)
    if _is_missing(lat) or _is_missing(lon):
        if zone not in hubs:
            raise ValueError(f"unknown hub '{zone}' for {where}")
        lat, lon = hubs[zone]
    return _validate_coord(lat, lon, where)


def _parse_quest(raw: Dict[str, Any], hubs: Dict[str, Tuple[float, float]]) -> CatalogEntry:
    raw_id = _get(raw, "id")
    if raw_id is None:
        raise ValueError(f"quest without id: {raw}")
    try:
        quest_id = int(raw_id)
    except (TypeError, ValueError):
        raise ValueError(f"quest id must be an integer: {raw_id!r}") from None
    zone = str(_get(raw, "zone", default=""))
    where = f"quest {quest_id}"
    lat, lon = _entry_coords(raw, zone, hubs, where)
    faction = str(_get(raw, "faction", default="Both"))
    if faction not in FACTIONS:
        raise ValueError(f"unknown faction '{faction}' for {where}")
    return CatalogEntry(
        quest_id,
        "quest",
        str(_get(raw, "name", default="")),
        zone,
        int(_get(raw, "xp", default=0)),
        lat,
        lon,
        faction=faction,
        category=str(_get(raw, "category", default="Quest")),
        notes=str(_get(raw, "notes", default="")),
    )


def _parse_item(raw: Dict[str, Any], hubs: Dict[str, Tuple[float, float]]) -> CatalogEntry:
    raw_id = _get(raw, "id")
    if raw_id is None:
        raise ValueError(f"item without id: {raw}")
    item_id = str(raw_id)
    zone = str(_get(raw, "where", "zone", default=""))
    where = f"item {item_id}"
    lat, lon = _entry_coords(raw, zone, hubs, where)
    return CatalogEntry(
        item_id,
        "item",
        str(_get(raw, "item", "name", default="")),
        zone,
        int(_get(raw, "xp", default=0)),
        lat,
        lon,
        notes=str(_get(raw, "notes", default="")),
    )


def _check_unique(entries: List[CatalogEntry]) -> None:
    seen = set()
    for e in entries:
        if e.entry_id in seen:
            raise ValueError(f"duplicate {e.kind} id: {e.entry_id}")
        seen.add(e.entry_id)


def catalog_from_dict(data: Dict[str, Any]) -> Catalog:
    """Build a :class:`Catalog` from a ``hubs``/``quests``/``items`` mapping."""
    if not isinstance(data, dict) or not ({"quests", "items"} & set(data)):
        raise ValueError("Unrecognized catalog structure")
    hubs: Dict[str, Tuple[float, float]] = {}
    for name, coord in (data.get("hubs") or {}).items():
        if isinstance(coord, dict):
            hubs[name] = _validate_coord(coord.get("lat"), coord.get("lng"), f"hub {name}")
        else:
            hubs[name] = _validate_coord(coord[0], coord[1], f"hub {name}")
    quests = [_parse_quest(q, hubs) for q in data.get("quests") or []]
    items = [_parse_item(i, hubs) for i in data.get("items") or []]
    _check_unique(quests)
    _check_unique(items)
    if not quests and not items:
        raise ValueError("No catalog entries found")
    return Catalog(quests, items)


def builtin_catalog() -> Catalog:
    """Return the bundled sample catalog."""
    return catalog_from_dict(
        {"hubs": DEFAULT_HUBS, "quests": DEFAULT_QUESTS, "items": DEFAULT_ITEMS}
    )


def _load_csv(path: str) -> Catalog:
    import pandas as pd

    df = pd.read_csv(path)
    if "kind" not in df.columns:
        raise ValueError("CSV catalog requires a 'kind' column")
    quests: List[Dict[str, Any]] = []
    items: List[Dict[str, Any]] = []
    for row in df.to_dict(orient="records"):
        kind = str(row.get("kind", "")).strip().lower()
        if kind == "quest":
            quests.append(row)
        elif kind == "item":
            items.append(row)
        else:
            raise ValueError(f"unknown catalog kind: {row.get('kind')!r}")
    return catalog_from_dict({"quests": quests, "items": items})


def load_catalog(path: str) -> Catalog:
    """Load a catalog from a JSON, YAML or CSV file."""
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    lower = path.lower()
    if lower.endswith(".csv"):
        catalog = _load_csv(path)
    else:
        with open(path) as f:
            if lower.endswith(".json"):
                data = json.load(f)
            else:
                import yaml

                data = yaml.safe_load(f)
        catalog = catalog_from_dict(data)
    logger.info(
        "Loaded %d quests and %d item turn-ins from %s",
        len(catalog.quests),
        len(catalog.items),
        path,
    )
    return catalog


def filter_quests(
    quests: List[CatalogEntry],
    faction: str = "Both",
    min_xp: float = 0,
    category: str = "All",
) -> List[CatalogEntry]:
    """Return quests matching the faction, minimum XP and category filters."""
    min_xp = min_xp or 0
    return [
        q
        for q in quests
        if (faction == "Both" or q.faction == faction)
        and q.xp >= min_xp
        and (category == "All" or q.category == category)
    ]
