import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Point:
    latitude: float
    longitude: float
    label: str = ""


def haversine_km(a: Point, b: Point) -> float:
    """Return the great-circle distance in kilometres between ``a`` and ``b``.

    Longitudes are used as given, with no wrapping at the antimeridian.
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dl = math.radians(b.longitude - a.longitude)
    h = math.sin(dphi / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def tour_length(points: Sequence[Point], route: Sequence[int]) -> float:
    """Sum of consecutive edge lengths along ``route``. The tour is open."""
    return sum(
        haversine_km(points[u], points[v]) for u, v in zip(route[:-1], route[1:])
    )


def bounding_box(points: Sequence[Point], buffer_km: float = 50.0) -> Optional[List[float]]:
    """Return [min_lat, min_lon, max_lat, max_lon] covering ``points`` with a buffer."""
    if not points:
        return None
    import numpy as np

    lats = np.array([p.latitude for p in points], dtype=float)
    lons = np.array([p.longitude for p in points], dtype=float)
    avg_lat = (lats.min() + lats.max()) / 2
    km_per_deg_lat = 111.32
    # Clamp so a box centred on a pole does not divide by zero.
    km_per_deg_lon = max(111.32 * abs(np.cos(np.radians(avg_lat))), 1e-6)
    dy = buffer_km / km_per_deg_lat
    dx = buffer_km / km_per_deg_lon
    return [
        float(max(lats.min() - dy, -90.0)),
        float(max(lons.min() - dx, -180.0)),
        float(min(lats.max() + dy, 90.0)),
        float(min(lons.max() + dx, 180.0)),
    ]
