"""Utility exports for the quest turn-in route planner."""

from .geo import (
    Point,
    haversine_km,
    tour_length,
)
from .route_builder import (
    build_route,
    nearest_neighbor,
    two_opt,
)
from .catalog import Catalog, CatalogEntry, builtin_catalog, load_catalog
from .selection import Selection, PlanState, encode_selection, decode_selection
from . import preferences

__all__ = [
    "Point",
    "haversine_km",
    "tour_length",
    "build_route",
    "nearest_neighbor",
    "two_opt",
    "Catalog",
    "CatalogEntry",
    "builtin_catalog",
    "load_catalog",
    "Selection",
    "PlanState",
    "encode_selection",
    "decode_selection",
    "preferences",
]
