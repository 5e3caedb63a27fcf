"""OSRM walking-route client with response parsing."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from . import config
from .errors import InvalidInputError, ProviderError, RoutingUnavailableError
from .http import HttpClient
from .models import Coordinate, Route

logger = logging.getLogger(__name__)


class RoutesClient:
    def __init__(self, http_client: HttpClient) -> None:
        self.http = http_client

    def get_route(self, waypoints: Sequence[Coordinate], optimize: bool = True) -> Route:
        """Walking route through ``waypoints``.

        ``optimize=False`` keeps the given order. ``optimize=True`` with more
        than two waypoints asks the trip service for the shortest loop that
        starts at the first waypoint; the chosen order is in ``Route.order``.
        """
        if len(waypoints) < 2:
            raise RoutingUnavailableError(
                f"At least 2 waypoints required, got {len(waypoints)}"
            )

        if optimize and len(waypoints) > 2:
            return self._get_optimized_trip(waypoints)

        url = config.osrm_url("route", format_coordinates(waypoints))
        response = self.http.get_json(url, dict(config.OSRM_ROUTE_PARAMS), kind="routes")
        check_osrm_code(response)
        routes = response.get("routes") or []
        if not isinstance(routes, list):
            raise ProviderError("Malformed OSRM response: routes is not a list", provider="routes")
        if not routes:
            raise ProviderError("OSRM returned no routes", provider="routes")
        route = parse_route(routes[0])
        logger.info(
            "Route through %s waypoints: %.0f m, %.0f s",
            len(waypoints),
            route.distance_m,
            route.duration_s,
        )
        return route

    def get_route_path(self, origin: Coordinate, destination: Coordinate) -> List[Coordinate]:
        return self.get_route([origin, destination], optimize=False).geometry

    def _get_optimized_trip(self, waypoints: Sequence[Coordinate]) -> Route:
        url = config.osrm_url("trip", format_coordinates(waypoints))
        params = dict(config.OSRM_ROUTE_PARAMS)
        params.update(config.OSRM_TRIP_PARAMS)
        response = self.http.get_json(url, params, kind="routes")
        check_osrm_code(response)
        trips = response.get("trips") or []
        if not isinstance(trips, list):
            raise ProviderError("Malformed OSRM response: trips is not a list", provider="routes")
        if not trips:
            raise ProviderError("OSRM returned no trips", provider="routes")
        waypoint_data = response.get("waypoints") or []
        if not isinstance(waypoint_data, list):
            raise ProviderError("Malformed OSRM response: waypoints is not a list", provider="routes")
        order = parse_trip_order(waypoint_data, len(waypoints))
        route = parse_route(trips[0], order=order)
        logger.info(
            "Optimized trip through %s waypoints: %.0f m, order=%s",
            len(waypoints),
            route.distance_m,
            order,
        )
        return route


def format_coordinates(waypoints: Sequence[Coordinate]) -> str:
    # OSRM wants lng,lat
    return ";".join(f"{wp.lng},{wp.lat}" for wp in waypoints)


def check_osrm_code(response: Dict[str, Any]) -> None:
    code = response.get("code")
    if code != "Ok":
        message = response.get("message") or ""
        raise ProviderError(
            f"OSRM error: {code} {message}".strip(),
            provider="routes",
            user_message="No walking route could be found between these places.",
        )


def parse_route(data: Any, order: Optional[List[int]] = None) -> Route:
    if not isinstance(data, dict):
        raise ProviderError(f"Malformed OSRM route: {type(data).__name__}", provider="routes")
    geometry = data.get("geometry") or {}
    # encoded polylines come back as plain strings
    if not isinstance(geometry, dict):
        raise ProviderError("OSRM route has no GeoJSON geometry", provider="routes")
    coords = geometry.get("coordinates")
    if not isinstance(coords, list):
        raise ProviderError("OSRM route has no GeoJSON geometry", provider="routes")
    try:
        path = [Coordinate.from_lnglat(pair) for pair in coords]
        distance = float(data.get("distance") or 0.0)
        duration = float(data.get("duration") or 0.0)
    except (TypeError, ValueError, IndexError, KeyError, InvalidInputError) as exc:
        raise ProviderError(f"Malformed OSRM route: {exc}", provider="routes") from exc
    return Route(geometry=path, distance_m=distance, duration_s=duration, order=order)


def parse_trip_order(waypoints: List[Dict[str, Any]], count: int) -> List[int]:
    """Input indexes sorted into visiting order.

    OSRM reports, for each input waypoint, its position in the trip
    (``waypoint_index``).
    """
    if len(waypoints) != count:
        raise ProviderError(
            f"OSRM trip returned {len(waypoints)} waypoints for {count} inputs",
            provider="routes",
        )
    try:
        positions = [int(wp["waypoint_index"]) for wp in waypoints]
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderError(f"Malformed OSRM trip waypoints: {exc}", provider="routes") from exc
    return sorted(range(count), key=lambda i: positions[i])
