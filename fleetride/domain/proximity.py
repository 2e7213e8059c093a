"""
Driver proximity lookup for assignment suggestions.

1. **Spatial binning** -- a driver's last reported position is stored with
   its H3 cell (resolution 7, ~5.16 km² hexagons).
2. **Neighbourhood filter** -- candidates are drivers whose cell lies within
   ``k`` rings of the ride's pickup cell (``grid_disk``).
3. **Ranking** -- survivors are ordered by great-circle distance to the
   pickup point.

Complexity
----------
Filtering is an indexed ``IN`` over at most ``3k(k+1) + 1`` cells; ranking
is O(n log n) over the drivers that survive the filter.
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

import h3

from .distance import haversine_km

T = TypeVar("T")


def location_cell(lat: float, lng: float, resolution: int = 7) -> str:
    """Map a geo-point to an H3 hexagonal cell index.  O(1)."""
    return h3.latlng_to_cell(lat, lng, resolution)


def nearby_cells(
    lat: float, lng: float, resolution: int = 7, rings: int = 2
) -> set[str]:
    """The pickup cell plus every cell within *rings* hops of it."""
    return set(h3.grid_disk(location_cell(lat, lng, resolution), rings))


def rank_by_distance(
    items: Iterable[T],
    lat: float,
    lng: float,
    position: Callable[[T], tuple[float, float]],
) -> list[tuple[T, float]]:
    """
    Pair each item with its distance (km) to ``(lat, lng)`` and sort
    nearest first.  *position* extracts an item's ``(lat, lng)``.
    """
    ranked = [
        (item, round(haversine_km(lat, lng, *position(item)), 3))
        for item in items
    ]
    ranked.sort(key=lambda pair: pair[1])
    return ranked


