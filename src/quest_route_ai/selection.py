"""Selected catalog entries and the ways they are shared.

A selection is encoded as a URL query string (``q=1,4&items=i1,i3``) for share
links, and as a small JSON document for plan export/import. Neither format
carries the computed route; it is always rebuilt from the catalog.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List
from urllib.parse import parse_qs, urlencode, urlsplit

from .catalog import Catalog, CatalogEntry
from .geo import Point

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    quests: List[int] = field(default_factory=list)
    items: List[str] = field(default_factory=list)

    def toggle_quest(self, quest_id: int) -> None:
        if quest_id in self.quests:
            self.quests.remove(quest_id)
        else:
            self.quests.append(quest_id)

    def toggle_item(self, item_id: str) -> None:
        if item_id in self.items:
            self.items.remove(item_id)
        else:
            self.items.append(item_id)

    def clear(self) -> None:
        self.quests.clear()
        self.items.clear()

    def is_empty(self) -> bool:
        return not self.quests and not self.items


def selected_entries(catalog: Catalog, selection: Selection) -> List[CatalogEntry]:
    """Selected quests then selected items, each in catalog order."""
    for qid in selection.quests:
        if catalog.quest(qid) is None:
            logger.warning("Ignoring unknown quest id %s", qid)
    for iid in selection.items:
        if catalog.item(iid) is None:
            logger.warning("Ignoring unknown item id %s", iid)

    quests = [q for q in catalog.quests if q.entry_id in selection.quests]
    items = [i for i in catalog.items if i.entry_id in selection.items]
    return quests + items


def route_points(catalog: Catalog, selection: Selection) -> List[Point]:
    return [e.to_point() for e in selected_entries(catalog, selection)]


def total_xp(entries: List[CatalogEntry]) -> int:
    return sum(e.xp or 0 for e in entries)


def _parse_quest_ids(csv_value: str) -> List[int]:
    ids: List[int] = []
    for part in csv_value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(int(part))
        except ValueError:
            raise ValueError(f"invalid quest id in share token: {part!r}") from None
    return ids


def _parse_item_ids(csv_value: str) -> List[str]:
    return [part.strip() for part in csv_value.split(",") if part.strip()]


def encode_selection(selection: Selection) -> str:
    """Return the share token for ``selection``."""
    params: Dict[str, str] = {}
    if selection.quests:
        params["q"] = ",".join(str(q) for q in selection.quests)
    if selection.items:
        params["items"] = ",".join(selection.items)
    return urlencode(params, safe=",")


def decode_selection(token: str) -> Selection:
    """Parse a share token, a ``?``-prefixed query or a full share URL."""
    token = (token or "").strip()
    if "://" in token:
        query = urlsplit(token).query
    else:
        query = token.lstrip("?")
    params = parse_qs(query)
    q_csv = params.get("q", [""])[0]
    i_csv = params.get("items", [""])[0]
    return Selection(_parse_quest_ids(q_csv), _parse_item_ids(i_csv))


def share_link(base_url: str, selection: Selection) -> str:
    parts = urlsplit(base_url)
    base = f"{parts.scheme}://{parts.netloc}{parts.path}" if parts.scheme else parts.path
    return f"{base}?{encode_selection(selection)}"


@dataclass
class PlanState:
    """Selection plus the quest filters, as exported to a plan file."""

    selection: Selection = field(default_factory=Selection)
    faction: str = "Both"
    min_xp: int = 0
    category: str = "All"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selectedQuests": list(self.selection.quests),
            "selectedItems": list(self.selection.items),
            "faction": self.faction,
            "minXP": self.min_xp,
            "category": self.category,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanState":
        if not isinstance(data, dict):
            raise ValueError("Invalid plan file: expected a JSON object")
        try:
            quests = [int(q) for q in data.get("selectedQuests") or []]
            items = [str(i) for i in data.get("selectedItems") or []]
            min_xp = int(data.get("minXP") or 0)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid plan file: {e}") from None
        return cls(
            Selection(quests, items),
            faction=data.get("faction") or "Both",
            min_xp=min_xp,
            category=data.get("category") or "All",
        )

    @classmethod
    def from_json(cls, text: str) -> "PlanState":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid plan file: {e}") from None
        return cls.from_dict(data)


def export_plan(path: str, state: PlanState) -> None:
    with open(path, "w") as f:
        f.write(state.to_json())


def import_plan(path: str) -> PlanState:
    with open(path) as f:
        return PlanState.from_json(f.read())
