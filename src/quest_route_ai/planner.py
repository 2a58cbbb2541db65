import argparse
import csv
import os
import sys
import json
import logging
from dataclasses import dataclass, asdict, field
from typing import Dict, List, Optional, Sequence

from tqdm.auto import tqdm

from . import catalog as catalog_mod
from . import preferences
from .catalog import Catalog, CatalogEntry
from .geo import Point, bounding_box, haversine_km
from .route_builder import DEFAULT_MAX_ITERATIONS, build_route
from .selection import (
    PlanState,
    Selection,
    decode_selection,
    export_plan,
    import_plan,
    selected_entries,
    share_link,
    total_xp,
)

logger = logging.getLogger(__name__)


@dataclass
class PlannerConfig:
    catalog: Optional[str] = None
    faction: str = "Both"
    min_xp: int = 0
    category: str = "All"
    start_index: int = 0
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    output: Optional[str] = None
    gpx: Optional[str] = None
    base_url: Optional[str] = None
    verbose: bool = False


@dataclass
class RouteSummary:
    order: List[int]
    points: List[Point]
    legs_km: List[float] = field(default_factory=list)
    total_km: float = 0.0

    @property
    def ordered_points(self) -> List[Point]:
        return [self.points[i] for i in self.order]


def load_config(path: str) -> PlannerConfig:
    """Load a :class:`PlannerConfig` from a JSON or YAML file."""
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path) as f:
        if path.lower().endswith(".json"):
            data = json.load(f)
        else:
            import yaml

            data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration file must contain a mapping")
    return PlannerConfig(**data)


def debug_log(args: argparse.Namespace | None, message: str) -> None:
    """Append ``message`` to the debug log and optionally echo to stdout."""
    if args is None:
        return
    if getattr(args, "verbose", False):
        tqdm.write(message)
    path = getattr(args, "debug", None)
    if not path:
        return
    try:
        with open(path, "a") as df:
            df.write(f"{message}\n")
    except OSError as e:
        logger.error("Failed to write debug log: %s", e)


def summarize_route(points: Sequence[Point], order: Sequence[int]) -> RouteSummary:
    legs = [
        haversine_km(points[u], points[v]) for u, v in zip(order[:-1], order[1:])
    ]
    return RouteSummary(list(order), list(points), legs, sum(legs))


def plan_entries(
    entries: Sequence[CatalogEntry],
    start_index: int = 0,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> RouteSummary:
    """Build the turn-in route visiting ``entries``."""
    points = [e.to_point() for e in entries]
    if points and not 0 <= start_index < len(points):
        logger.warning(
            "Start index %d out of range for %d points; using 0", start_index, len(points)
        )
        start_index = 0
    order = build_route(points, start_index, max_iterations=max_iterations)
    return summarize_route(points, order)


def plan_selection(
    catalog: Catalog,
    selection: Selection,
    start_index: int = 0,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> RouteSummary:
    """Build the turn-in route for the selected entries of ``catalog``."""
    return plan_entries(
        selected_entries(catalog, selection), start_index, max_iterations=max_iterations
    )


def format_route(summary: RouteSummary) -> List[str]:
    """Numbered turn-in order with per-leg distances."""
    lines = []
    for step, point in enumerate(summary.ordered_points, start=1):
        if step == 1:
            lines.append(f"{step:>2}. {point.label}")
        else:
            lines.append(f"{step:>2}. {point.label} (+{summary.legs_km[step - 2]:.0f} km)")
    return lines


def write_csv(path: str, summary: RouteSummary) -> None:
    fieldnames = ["step", "label", "latitude", "longitude", "leg_km", "cumulative_km"]
    cumulative = 0.0
    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for step, point in enumerate(summary.ordered_points, start=1):
            leg = summary.legs_km[step - 2] if step > 1 else 0.0
            cumulative += leg
            writer.writerow(
                {
                    "step": step,
                    "label": point.label,
                    "latitude": point.latitude,
                    "longitude": point.longitude,
                    "leg_km": round(leg, 3),
                    "cumulative_km": round(cumulative, 3),
                }
            )


def write_gpx(path: str, summary: RouteSummary, name: str = "Turn-in route") -> None:
    """Write the route as numbered waypoints plus a single track.

    Nothing is written for an empty route.
    """
    import gpxpy.gpx

    ordered = summary.ordered_points
    if not ordered:
        return

    gpx = gpxpy.gpx.GPX()
    gpx.name = name
    bbox = bounding_box(ordered, buffer_km=0.0)
    gpx.bounds = gpxpy.gpx.GPXBounds(
        min_latitude=bbox[0],
        max_latitude=bbox[2],
        min_longitude=bbox[1],
        max_longitude=bbox[3],
    )

    track = gpxpy.gpx.GPXTrack(name=name)
    gpx.tracks.append(track)
    segment = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(segment)
    for step, point in enumerate(ordered, start=1):
        gpx.waypoints.append(
            gpxpy.gpx.GPXWaypoint(
                latitude=point.latitude,
                longitude=point.longitude,
                name=f"{step}. {point.label}",
            )
        )
        segment.points.append(
            gpxpy.gpx.GPXTrackPoint(latitude=point.latitude, longitude=point.longitude)
        )

    with open(path, "w") as f:
        f.write(gpx.to_xml())


def _quest_line(q: CatalogEntry, selected: bool) -> str:
    mark = "x" if selected else " "
    return f"[{mark}] {q.entry_id:>3} {q.name} ({q.zone} • {q.faction} • {q.category}) XP {q.xp:,}"


def _csv_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _find_default_config() -> Optional[str]:
    default_yaml = os.path.join("config", "planner_config.yaml")
    default_json = os.path.join("config", "planner_config.json")
    if os.path.exists(default_yaml):
        return default_yaml
    if os.path.exists(default_json):
        return default_json
    return None


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]

    # Determine configuration file location before parsing full args
    config_path = None
    for i, arg in enumerate(argv):
        if arg == "--config" and i + 1 < len(argv):
            config_path = argv[i + 1]
            break
        if arg.startswith("--config="):
            config_path = arg.split("=", 1)[1]
            break
    if config_path is None:
        config_path = _find_default_config()

    config_defaults: Dict[str, object] = {}
    if config_path and os.path.exists(config_path):
        try:
            cfg = load_config(config_path)
            config_defaults = asdict(cfg)
        except Exception as e:
            logger.error("Failed to load config %s: %s", config_path, e)
            config_defaults = {}
    defaults = asdict(PlannerConfig())
    defaults.update(config_defaults)

    # Filter flags stay None unless given; None keeps the config, saved or
    # imported value.
    filter_keys = ("faction", "min_xp", "category")
    parser = argparse.ArgumentParser(description="Quest turn-in route planner")
    parser.set_defaults(**{k: v for k, v in defaults.items() if k not in filter_keys})
    parser.add_argument(
        "--config", default=config_path, help="Path to config YAML or JSON file"
    )
    parser.add_argument(
        "--catalog",
        default=defaults["catalog"],
        help="Catalog JSON, YAML or CSV file (default: built-in sample data)",
    )
    parser.add_argument("--share", help="Share token or share URL to load the selection from")
    parser.add_argument("--quests", help="Comma separated quest ids to select")
    parser.add_argument("--items", help="Comma separated item turn-in ids to select")
    parser.add_argument(
        "--all-filtered",
        action="store_true",
        help="Select every quest that passes the filters",
    )
    parser.add_argument(
        "--use-saved",
        action="store_true",
        help="Start from the saved selection and filters",
    )
    parser.add_argument(
        "--save", action="store_true", help="Save the selection and filters for next time"
    )
    parser.add_argument(
        "--faction",
        choices=list(catalog_mod.FACTIONS),
        help=f"Quest faction filter (default: {defaults['faction']})",
    )
    parser.add_argument(
        "--min-xp", type=int, help=f"Minimum quest XP (default: {defaults['min_xp']})"
    )
    parser.add_argument(
        "--category",
        choices=["All", *catalog_mod.CATEGORIES],
        help=f"Quest category filter (default: {defaults['category']})",
    )
    parser.add_argument(
        "--start-index",
        type=int,
        default=defaults["start_index"],
        help="Index of the selected point the route starts from",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=defaults["max_iterations"],
        help="Maximum number of 2-opt passes",
    )
    parser.add_argument("--output", default=defaults["output"], help="Write the route to this CSV file")
    parser.add_argument("--gpx", default=defaults["gpx"], help="Write the route to this GPX file")
    parser.add_argument("--export-plan", help="Write the selection and filters to a JSON plan file")
    parser.add_argument("--import-plan", help="Load the selection and filters from a JSON plan file")
    parser.add_argument("--base-url", default=defaults["base_url"], help="Print a share link rooted at this URL")
    parser.add_argument("--debug", help="Append debug messages to this file")
    parser.add_argument(
        "--verbose", action="store_true", default=defaults["verbose"], help="Print progress details"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
    )

    try:
        catalog = (
            catalog_mod.load_catalog(args.catalog)
            if args.catalog
            else catalog_mod.builtin_catalog()
        )
    except (OSError, ValueError) as e:
        parser.error(f"could not load catalog: {e}")

    state = PlanState(
        Selection(),
        faction=defaults["faction"],
        min_xp=defaults["min_xp"],
        category=defaults["category"],
    )
    if args.use_saved:
        db = preferences.open_store(read_only=True)
        try:
            state = preferences.load_state(db)
        finally:
            preferences.close_store(db)
        debug_log(args, f"Loaded saved plan: {state.to_dict()}")
    if args.import_plan:
        try:
            state = import_plan(args.import_plan)
        except (OSError, ValueError) as e:
            parser.error(str(e))
        debug_log(args, f"Imported plan from {args.import_plan}")
    if args.faction is not None:
        state.faction = args.faction
    if args.min_xp is not None:
        state.min_xp = args.min_xp
    if args.category is not None:
        state.category = args.category

    if args.share:
        try:
            state.selection = decode_selection(args.share)
        except ValueError as e:
            parser.error(str(e))
    elif args.quests or args.items:
        try:
            quests = [int(q) for q in _csv_list(args.quests)]
        except ValueError:
            parser.error(f"invalid quest ids: {args.quests}")
        state.selection = Selection(quests, _csv_list(args.items))

    filtered = catalog_mod.filter_quests(
        catalog.quests, state.faction, state.min_xp, state.category
    )
    if args.all_filtered:
        for q in filtered:
            if q.entry_id not in state.selection.quests:
                state.selection.quests.append(q.entry_id)
    debug_log(
        args,
        f"{len(filtered)} quests available for faction={state.faction} "
        f"min_xp={state.min_xp} category={state.category}",
    )
    if args.verbose:
        for q in filtered:
            tqdm.write(_quest_line(q, q.entry_id in state.selection.quests))

    entries = selected_entries(catalog, state.selection)
    summary = plan_entries(entries, args.start_index, max_iterations=args.max_iterations)
    debug_log(args, f"Route order over {len(summary.points)} points: {summary.order}")

    if state.selection.is_empty():
        print("Select quests/items to build a route.")
    elif not summary.order:
        print("None of the selected ids are in the catalog.")
    else:
        print("Optimized turn-in order:")
        for line in format_route(summary):
            print(line)
        print(f"Total distance: {summary.total_km:.0f} km")
    print(f"Total selected XP: {total_xp(entries):,}")

    if args.output:
        write_csv(args.output, summary)
        logger.info("Wrote route CSV to %s", args.output)
    if args.gpx:
        write_gpx(args.gpx, summary)
        logger.info("Wrote route GPX to %s", args.gpx)
    if args.export_plan:
        export_plan(args.export_plan, state)
        logger.info("Exported plan to %s", args.export_plan)
    if args.base_url:
        print(f"Share link: {share_link(args.base_url, state.selection)}")
    if args.save:
        db = preferences.open_store()
        try:
            preferences.save_state(db, state)
        finally:
            preferences.close_store(db)
        logger.info("Saved preferences to %s", preferences.get_store_dir())

    return summary


if __name__ == "__main__":
    main()
