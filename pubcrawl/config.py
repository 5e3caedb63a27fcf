"""Project configuration.

Loads user-defined crawl parameters from crawl_config.json when available,
falling back to sensible defaults. Keep API request shapes centralized here.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

_REPO_ROOT = Path(__file__).resolve().parent.parent

# --- API endpoints ---

PHOTON_BASE_URL = "https://photon.komoot.io"
OSRM_BASE_URL = "https://router.project-osrm.org"

PHOTON_SEARCH_PATH = "/api/"
PHOTON_REVERSE_PATH = "/reverse"
OSRM_PROFILE = "walking"

# --- Geocoding ---

GEOCODE_LANG = "en"
GEOCODE_LIMIT = 1
GEOCODE_BIAS_LIMIT = 5

# Fallback city used to bias ambiguous place names ("Greenwich" -> London).
DEFAULT_CENTER: Dict[str, float] = {"lat": 51.5074, "lng": -0.1278}

# --- POI search ---

POI_KEYWORD = "pub"
POI_UNNAMED = "Unnamed Pub"
POI_RADIUS_M = 500
POI_PROVIDER_LIMIT = 50
POI_STRICT_RADIUS = False
POI_ADDRESS_FIELDS = ("street", "housenumber", "postcode", "city", "country")

MAX_POIS_DEFAULT = 5
MIN_POIS = 1
MAX_POIS = 20

# Along-path search
PATH_SEARCH_RADIUS_M = 400
PATH_SEARCH_CANDIDATES = 15
PATH_SEARCH_DELAY_SECONDS = 0.5

# --- Routing ---

OSRM_ROUTE_PARAMS: Dict[str, str] = {
    "overview": "full",
    "geometries": "geojson",
    "steps": "true",
}
OSRM_TRIP_PARAMS: Dict[str, str] = {
    "roundtrip": "true",
    "source": "first",
}

# --- HTTP ---

HTTP_TIMEOUT_SECONDS = 20
HTTP_RETRY_MAX = 1
HTTP_BACKOFF_BASE = 0.5
HTTP_BACKOFF_MAX = 8.0
HTTP_USER_AGENT = "pubcrawl/0.1"

COORD_KEY_DECIMALS = 5


def photon_url(path: str) -> str:
    base = os.environ.get("PUBCRAWL_PHOTON_URL") or PHOTON_BASE_URL
    return base.rstrip("/") + path


def osrm_url(service: str, coordinates: str) -> str:
    base = os.environ.get("PUBCRAWL_OSRM_URL") or OSRM_BASE_URL
    return f"{base.rstrip('/')}/{service}/v1/{OSRM_PROFILE}/{coordinates}"


def load_crawl_config(path: Optional[str] = None) -> bool:
    """Load crawl configuration from a JSON file.

    Updates module-level globals with values from the config file.
    Returns True if config was loaded, False if file not found.
    """
    if path is None:
        path = str(_REPO_ROOT / "crawl_config.json")

    config_path = Path(path)
    if not config_path.exists():
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)

    globals_ref = globals()

    center = data.get("default_center", {})
    if center.get("lat") is not None and center.get("lng") is not None:
        globals_ref["DEFAULT_CENTER"] = {
            "lat": float(center["lat"]),
            "lng": float(center["lng"]),
        }

    if data.get("keyword"):
        globals_ref["POI_KEYWORD"] = str(data["keyword"])
    if data.get("radius_m") is not None:
        globals_ref["POI_RADIUS_M"] = int(data["radius_m"])
    if data.get("max_pois_default") is not None:
        globals_ref["MAX_POIS_DEFAULT"] = int(data["max_pois_default"])
    if data.get("strict_radius") is not None:
        globals_ref["POI_STRICT_RADIUS"] = bool(data["strict_radius"])
    if data.get("request_delay_ms") is not None:
        globals_ref["PATH_SEARCH_DELAY_SECONDS"] = float(data["request_delay_ms"]) / 1000.0

    if data.get("photon_url"):
        globals_ref["PHOTON_BASE_URL"] = str(data["photon_url"])
    if data.get("osrm_url"):
        globals_ref["OSRM_BASE_URL"] = str(data["osrm_url"])

    http = data.get("http", {})
    if "timeout_seconds" in http:
        globals_ref["HTTP_TIMEOUT_SECONDS"] = float(http["timeout_seconds"])
    if "retry_max" in http:
        globals_ref["HTTP_RETRY_MAX"] = max(1, int(http["retry_max"]))
    if "backoff_base" in http:
        globals_ref["HTTP_BACKOFF_BASE"] = float(http["backoff_base"])
    if "backoff_max" in http:
        globals_ref["HTTP_BACKOFF_MAX"] = float(http["backoff_max"])

    return True
