"""Geospatial helpers."""
from __future__ import annotations

import math
from typing import List, Sequence

from . import config
from .models import Coordinate

EARTH_RADIUS_M = 6371000.0


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lng - a.lng)

    x = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(x), math.sqrt(1 - x))
    return EARTH_RADIUS_M * c


def squared_degree_distance(a: Coordinate, b: Coordinate) -> float:
    """Planar distance in degrees squared.

    Only good for ranking candidates that are all within one city.
    """
    return (a.lat - b.lat) ** 2 + (a.lng - b.lng) ** 2


def cumulative_distances(path: Sequence[Coordinate]) -> List[float]:
    cum = [0.0]
    for prev, curr in zip(path, path[1:]):
        cum.append(cum[-1] + haversine_m(prev, curr))
    return cum


def path_length_m(path: Sequence[Coordinate]) -> float:
    if len(path) < 2:
        return 0.0
    return cumulative_distances(path)[-1]


def sample_evenly(path: Sequence[Coordinate], count: int) -> List[Coordinate]:
    """Pick ``count`` points spread evenly by distance along ``path``.

    Targets sit at fractions k/(count+1) of the total length, so the path's
    endpoints are never returned. Positions inside a segment are
    interpolated linearly in lat/lng.
    """
    if len(path) < 2 or count < 1:
        return []

    distances = cumulative_distances(path)
    total = distances[-1]
    if total == 0:
        return [path[len(path) // 2]]

    out: List[Coordinate] = []
    i = 0
    last = len(distances) - 1
    for k in range(1, count + 1):
        target = total * k / (count + 1)
        while i < last - 1 and distances[i + 1] < target:
            i += 1
        seg = distances[i + 1] - distances[i]
        t = 1.0 if seg == 0 else (target - distances[i]) / seg
        a, b = path[i], path[i + 1]
        out.append(
            Coordinate(
                lat=a.lat + t * (b.lat - a.lat),
                lng=a.lng + t * (b.lng - a.lng),
            )
        )
    return out


def coordinate_key(coord: Coordinate, decimals: int = config.COORD_KEY_DECIMALS) -> str:
    return f"{coord.lat:.{decimals}f},{coord.lng:.{decimals}f}"
