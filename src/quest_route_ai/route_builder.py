"""Visiting-order heuristics for a small set of waypoints.

The order is built with a nearest-neighbour sweep and then tightened with a
bounded 2-opt pass. Routes are open: the edge from the last point back to the
first never contributes to the cost.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from .geo import Point, haversine_km

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100
IMPROVEMENT_EPSILON = 1e-9


def is_permutation(route: Sequence[int], n: int) -> bool:
    """Return True if ``route`` visits every index in ``0..n-1`` exactly once."""
    return len(route) == n and sorted(route) == list(range(n))


def nearest_neighbor(points: Sequence[Point], start: int = 0) -> List[int]:
    """Greedy tour starting at ``start``.

    Candidates are scanned in ascending index order with a strict ``<``
    comparison, so the lowest index wins when two are equally close.
    """
    n = len(points)
    if n == 0:
        return []
    if not 0 <= start < n:
        raise IndexError(f"start index {start} out of range for {n} points")

    visited = [False] * n
    visited[start] = True
    route = [start]
    for _ in range(n - 1):
        last = points[route[-1]]
        best = -1
        best_d = float("inf")
        for j in range(n):
            if visited[j]:
                continue
            d = haversine_km(last, points[j])
            if d < best_d:
                best_d = d
                best = j
        assert best >= 0, f"no comparable candidate after index {route[-1]}"
        visited[best] = True
        route.append(best)
    return route


def _reverse_segment(route: List[int], i: int, k: int) -> None:
    """Reverse ``route[i..k]`` (inclusive) in place."""
    assert 0 <= i <= k < len(route), f"bad reversal bounds {i}..{k} for {len(route)}"
    while i < k:
        route[i], route[k] = route[k], route[i]
        i += 1
        k -= 1


def two_opt(
    route: Sequence[int],
    points: Sequence[Point],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    epsilon: float = IMPROVEMENT_EPSILON,
) -> List[int]:
    """Improve ``route`` with 2-opt moves until no move helps.

    Only edges fully inside the route are considered. A move replaces edges
    ``(i, i+1)`` and ``(k, k+1)`` with ``(i, k)`` and ``(i+1, k+1)`` by
    reversing ``route[i+1..k]`` and is accepted when it shortens the route by
    more than ``epsilon``. At most ``max_iterations`` full passes are made.
    """
    best = list(route)
    n = len(best)
    if n < 4:
        return best

    def dist(a: int, b: int) -> float:
        return haversine_km(points[best[a]], points[best[b]])

    improved = True
    iteration = 0
    while improved and iteration < max_iterations:
        improved = False
        iteration += 1
        swaps = 0
        for i in range(n - 3):
            for k in range(i + 2, n - 1):
                d1 = dist(i, i + 1) + dist(k, k + 1)
                d2 = dist(i, k) + dist(i + 1, k + 1)
                if d2 + epsilon < d1:
                    _reverse_segment(best, i + 1, k)
                    improved = True
                    swaps += 1
        logger.debug("2-opt pass %d made %d swaps", iteration, swaps)

    if improved:
        logger.warning("2-opt optimization reached iteration limit %d", max_iterations)
    return best


def build_route(
    points: Sequence[Point],
    start: int = 0,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> List[int]:
    """Return a short visiting order over ``points`` as a list of indices."""
    seed = nearest_neighbor(points, start)
    route = two_opt(seed, points, max_iterations=max_iterations)
    assert is_permutation(route, len(points))
    logger.debug("Built route over %d points: %s", len(points), route)
    return route
