import argparse
import json
import os
import shutil
import logging
from typing import Any
import rocksdict

from .selection import PlanState, Selection


class MemoryRocksDB(dict):
    """Simple in-memory stand-in for ``rocksdict.Rdict`` used when the store cannot be opened."""

    def close(self) -> None:
        pass


# Default location for the preference store when no environment override is provided
DEFAULT_STORE_DIR = os.path.expanduser("~/.quest_route_ai")

FACTION_KEY = "qs_faction"
MIN_XP_KEY = "qs_min_xp"
CATEGORY_KEY = "qs_category"
SELECTED_QUESTS_KEY = "qs_selected_quests"
SELECTED_ITEMS_KEY = "qs_selected_items"

logger = logging.getLogger(__name__)


def get_store_dir() -> str:
    """Return the directory holding the preference store."""

    # Re-read the environment variable each call so tests or callers may
    # override the location after this module is imported.
    path = os.environ.get("QRAI_STORE_DIR", DEFAULT_STORE_DIR)
    os.makedirs(path, exist_ok=True)
    return path


def _store_path(name: str) -> str:
    return os.path.join(get_store_dir(), f"{name}_db")


def open_store(name: str = "preferences", read_only: bool = False) -> rocksdict.Rdict | None:
    path = _store_path(name)

    if read_only and not os.path.exists(path):
        logger.info("Preference store %s not found for read-only access.", path)
        return None

    try:
        opts = rocksdict.Options(raw_mode=True)
        # The existence check above covers read-only opens of a missing store.
        opts.create_if_missing(not read_only)
        return rocksdict.Rdict(path, opts)
    except Exception as e:
        logger.error("Failed to open preference store at %s (read_only=%s): %s", path, read_only, e)
        logger.warning("Falling back to in-memory preferences; changes will not persist")
        return MemoryRocksDB()


def close_store(db: rocksdict.Rdict | None) -> None:
    if db is not None:
        db.close()


def load_pref(db: rocksdict.Rdict | None, key: str, default: Any = None) -> Any:
    """Return the stored value for ``key`` or ``default`` if unavailable."""

    if db is None:
        return default
    try:
        raw = db.get(key.encode())
    except Exception as e:  # pragma: no cover - DB errors
        logger.error("Preference read error for %s: %s", key, e)
        return default
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error("Corrupted preference %s: %s", key, e)
        return default


def save_pref(db: rocksdict.Rdict | None, key: str, value: Any) -> None:
    if db is None:
        return
    try:
        db[key.encode()] = json.dumps(value).encode()
    except Exception as e:  # pragma: no cover - DB errors
        logger.error("Preference write error for %s: %s", key, e)


def load_state(db: rocksdict.Rdict | None) -> PlanState:
    """Rebuild the saved :class:`PlanState`, falling back to defaults per key."""

    data = {
        "selectedQuests": load_pref(db, SELECTED_QUESTS_KEY, []),
        "selectedItems": load_pref(db, SELECTED_ITEMS_KEY, []),
        "faction": load_pref(db, FACTION_KEY, "Both"),
        "minXP": load_pref(db, MIN_XP_KEY, 0),
        "category": load_pref(db, CATEGORY_KEY, "All"),
    }
    try:
        return PlanState.from_dict(data)
    except ValueError as e:
        logger.error("Ignoring saved preferences: %s", e)
        return PlanState(Selection())


def save_state(db: rocksdict.Rdict | None, state: PlanState) -> None:
    save_pref(db, SELECTED_QUESTS_KEY, list(state.selection.quests))
    save_pref(db, SELECTED_ITEMS_KEY, list(state.selection.items))
    save_pref(db, FACTION_KEY, state.faction)
    save_pref(db, MIN_XP_KEY, state.min_xp)
    save_pref(db, CATEGORY_KEY, state.category)


def clear_store() -> None:
    dir_path = get_store_dir()
    if os.path.isdir(dir_path):
        shutil.rmtree(dir_path)
        logger.info("Cleared preference store %s", dir_path)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Manage saved quest-route preferences")
    parser.add_argument("--clear", action="store_true", help="remove all saved preferences")
    parser.add_argument("--show", action="store_true", help="print the saved plan as JSON")
    args = parser.parse_args(argv)
    if args.clear:
        clear_store()
        print(f"Preferences cleared: {get_store_dir()}")
    if args.show:
        db = open_store(read_only=True)
        try:
            print(load_state(db).to_json())
        finally:
            close_store(db)


if __name__ == "__main__":
    main()
