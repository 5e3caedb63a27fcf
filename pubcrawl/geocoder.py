"""Photon geocoding client with response parsing."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from . import config
from .errors import InvalidInputError, NotFoundError, ProviderError
from .geo import squared_degree_distance
from .http import HttpClient
from .models import Coordinate, GeocodeResult

logger = logging.getLogger(__name__)


class Geocoder:
    def __init__(self, http_client: HttpClient) -> None:
        self.http = http_client

    def geocode(self, address: str, bias: Optional[Coordinate] = None) -> GeocodeResult:
        """Resolve free text to a coordinate.

        With a bias point, several candidates are requested and the one
        closest to the bias wins over the provider's own ranking, so that
        e.g. "Greenwich" resolves to London rather than Connecticut.
        """
        if not address or not address.strip():
            raise InvalidInputError("Empty address", user_message="Please enter a location")

        params = build_geocode_params(address, bias)
        response = self.http.get_json(
            config.photon_url(config.PHOTON_SEARCH_PATH), params, kind="geocode"
        )
        features = feature_list(response, "geocode")
        if not features:
            raise NotFoundError(
                f"No results found for {address!r}",
                user_message=f'No results found for "{address}"',
            )

        candidates = parse_features(features)
        if not candidates:
            raise ProviderError("Geocoder returned features without coordinates", provider="geocode")

        if bias is not None and len(candidates) > 1:
            coord, props = pick_nearest(candidates, bias)
        else:
            coord, props = candidates[0]

        display_name = build_display_name(props, address)
        logger.info("Geocoded %r to %.5f,%.5f (%s)", address, coord.lat, coord.lng, display_name)
        return GeocodeResult(coordinate=coord, display_name=display_name)

    def reverse_geocode(self, coord: Coordinate) -> str:
        params = {"lat": str(coord.lat), "lon": str(coord.lng), "limit": "1"}
        response = self.http.get_json(
            config.photon_url(config.PHOTON_REVERSE_PATH), params, kind="geocode"
        )
        fallback = f"{coord.lat}, {coord.lng}"
        if response.get("features") is None:
            return fallback
        features = feature_list(response, "geocode")
        if not features:
            return fallback
        _, props = split_feature(features[0], "geocode")
        parts = [props.get(k) for k in ("name", "street", "city", "country")]
        return ", ".join(str(p) for p in parts if p) or fallback


def build_geocode_params(address: str, bias: Optional[Coordinate]) -> Dict[str, str]:
    params = {
        "q": address,
        "limit": str(config.GEOCODE_BIAS_LIMIT if bias is not None else config.GEOCODE_LIMIT),
        "lang": config.GEOCODE_LANG,
    }
    if bias is not None:
        params["lat"] = str(bias.lat)
        params["lon"] = str(bias.lng)
    return params


# Adapter/mapper for Photon GeoJSON features

def feature_list(response: Dict[str, Any], provider: str) -> List[Any]:
    features = response.get("features")
    if features is None:
        raise ProviderError(f"{provider} response has no features", provider=provider)
    if not isinstance(features, list):
        raise ProviderError(
            f"Malformed {provider} response: features is {type(features).__name__}",
            provider=provider,
        )
    return features


def split_feature(feature: Any, provider: str) -> Tuple[Any, Dict[str, Any]]:
    """Raw ``[lng, lat]`` coordinates and properties of one feature."""
    if not isinstance(feature, dict):
        raise ProviderError(
            f"Malformed {provider} feature: {type(feature).__name__}", provider=provider
        )
    geometry = feature.get("geometry") or {}
    props = feature.get("properties") or {}
    if not isinstance(geometry, dict) or not isinstance(props, dict):
        raise ProviderError(f"Malformed {provider} feature: {feature!r}", provider=provider)
    return geometry.get("coordinates"), props


def parse_features(features: List[Any]) -> List[tuple]:
    parsed = []
    for feature in features:
        coords, props = split_feature(feature, "geocode")
        if not isinstance(coords, list) or len(coords) < 2:
            continue
        try:
            coord = Coordinate.from_lnglat(coords)
        except (TypeError, ValueError, InvalidInputError):
            logger.warning("Skipping geocoder feature with bad coordinates: %r", coords)
            continue
        parsed.append((coord, props))
    return parsed


def pick_nearest(candidates: List[tuple], bias: Coordinate) -> tuple:
    return min(candidates, key=lambda c: squared_degree_distance(c[0], bias))


def build_display_name(props: Dict[str, Any], address: str) -> str:
    name = props.get("name")
    if name:
        return str(name)
    parts = [props.get(k) for k in ("street", "city", "country")]
    joined = ", ".join(str(p) for p in parts if p)
    return joined or address
