"""Pub search client (Photon text search) with response parsing."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Set

from . import config
from .errors import InvalidInputError
from .geo import coordinate_key, haversine_m, sample_evenly
from .geocoder import feature_list, split_feature
from .http import HttpClient
from .models import Coordinate, PointOfInterest
from .routes_client import RoutesClient

logger = logging.getLogger(__name__)


class PlacesClient:
    def __init__(
        self,
        http_client: HttpClient,
        routes_client: RoutesClient,
        keyword: Optional[str] = None,
        request_delay_s: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.http = http_client
        self.routes = routes_client
        self.keyword = keyword or config.POI_KEYWORD
        self.request_delay_s = (
            config.PATH_SEARCH_DELAY_SECONDS if request_delay_s is None else request_delay_s
        )
        self.sleep = sleep

    def search_near(
        self,
        center: Coordinate,
        max_results: int,
        radius_m: Optional[int] = None,
        sort_by_distance: bool = False,
    ) -> List[PointOfInterest]:
        if max_results < 1:
            return []
        params = build_search_params(self.keyword, center, max_results)
        response = self.http.get_json(
            config.photon_url(config.PHOTON_SEARCH_PATH), params, kind="places"
        )
        pois = parse_pub_features(feature_list(response, "places"))

        if config.POI_STRICT_RADIUS:
            limit = radius_m if radius_m is not None else config.POI_RADIUS_M
            pois = [p for p in pois if haversine_m(center, p.coordinate) <= limit]
        if sort_by_distance:
            pois.sort(key=lambda p: haversine_m(center, p.coordinate))
        return pois[:max_results]

    def search_along_path(
        self,
        start: Coordinate,
        end: Coordinate,
        max_results: int,
    ) -> List[PointOfInterest]:
        """One pub per evenly spaced point of the walking path, start to end.

        Points are queried one after another with a fixed delay between
        calls to stay under the provider's rate limit.
        """
        path = self.routes.get_route_path(start, end)
        points = sample_evenly(path, max_results)
        logger.info("Searching pubs at %s points along a %s-vertex path", len(points), len(path))

        pubs: List[PointOfInterest] = []
        seen: Set[str] = set()
        for idx, point in enumerate(points):
            if idx > 0:
                self.sleep(self.request_delay_s)
            nearby = self.search_near(
                point,
                config.PATH_SEARCH_CANDIDATES,
                radius_m=config.PATH_SEARCH_RADIUS_M,
            )
            pub = first_unseen(nearby, seen)
            if pub is None:
                logger.info("No new pub near sample point %s (%.5f,%.5f)", idx, point.lat, point.lng)
                continue
            pubs.append(pub)
        return pubs


def build_search_params(keyword: str, center: Coordinate, max_results: int) -> Dict[str, str]:
    return {
        "q": keyword,
        "lat": str(center.lat),
        "lon": str(center.lng),
        "limit": str(min(max_results, config.POI_PROVIDER_LIMIT)),
        "lang": config.GEOCODE_LANG,
    }


def first_unseen(pois: List[PointOfInterest], seen: Set[str]) -> Optional[PointOfInterest]:
    for poi in pois:
        key = coordinate_key(poi.coordinate)
        if key not in seen:
            seen.add(key)
            return poi
    return None


# Adapter/mapper for Photon feature properties

def build_address(props: Dict[str, Any]) -> Optional[str]:
    parts = [props.get(k) for k in config.POI_ADDRESS_FIELDS]
    parts = [str(p) for p in parts if p]
    return ", ".join(parts) if parts else None


def parse_pub_features(features: List[Any]) -> List[PointOfInterest]:
    parsed: List[PointOfInterest] = []
    for feature in features:
        coords, props = split_feature(feature, "places")
        if not isinstance(coords, list) or len(coords) < 2:
            continue
        try:
            coord = Coordinate.from_lnglat(coords)
        except (TypeError, ValueError, InvalidInputError):
            logger.warning("Skipping POI feature with bad coordinates: %r", coords)
            continue
        parsed.append(
            PointOfInterest(
                coordinate=coord,
                name=props.get("name") or config.POI_UNNAMED,
                address=build_address(props),
                rating=None,
            )
        )
    return parsed
