"""Request-scoped value types shared by the crawl pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import InvalidInputError


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidInputError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise InvalidInputError(f"Longitude out of range: {self.lng}")

    @classmethod
    def from_lnglat(cls, pair: Any) -> "Coordinate":
        """Build from a GeoJSON/OSRM ``[lng, lat]`` pair."""
        lng, lat = pair[0], pair[1]
        return cls(lat=float(lat), lng=float(lng))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coordinate":
        lng = data.get("lng", data.get("lon"))
        return cls(lat=float(data["lat"]), lng=float(lng))

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class GeocodeResult:
    coordinate: Coordinate
    display_name: Optional[str] = None


@dataclass(frozen=True)
class PointOfInterest:
    coordinate: Coordinate
    name: str
    address: Optional[str] = None
    rating: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.coordinate.lat,
            "lng": self.coordinate.lng,
            "name": self.name,
            "address": self.address,
            "rating": self.rating,
        }


@dataclass(frozen=True)
class Route:
    geometry: List[Coordinate]
    distance_m: float
    duration_s: float
    # Visiting order picked by an optimized trip, as indexes into the submitted waypoints.
    order: Optional[List[int]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "geometry": [[c.lat, c.lng] for c in self.geometry],
            "distance_m": self.distance_m,
            "duration_s": self.duration_s,
            "order": self.order,
        }


@dataclass(frozen=True)
class SingleCrawl:
    location: str
    max_pois: int
    mode: str = field(default="single", init=False)


@dataclass(frozen=True)
class DoubleCrawl:
    start_location: str
    end_location: str
    max_pois: int
    mode: str = field(default="double", init=False)


CrawlRequest = Union[SingleCrawl, DoubleCrawl]


@dataclass(frozen=True)
class CrawlResult:
    center: Coordinate
    pois: List[PointOfInterest]
    route: Optional[Route]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "center": self.center.to_dict(),
            "pois": [p.to_dict() for p in self.pois],
            "route": self.route.to_dict() if self.route is not None else None,
        }
