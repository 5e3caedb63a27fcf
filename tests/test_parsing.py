import pytest

from pubcrawl.errors import ProviderError
from pubcrawl.geocoder import build_display_name, parse_features
from pubcrawl.places_client import build_address, parse_pub_features
from pubcrawl.routes_client import format_coordinates, parse_route, parse_trip_order
from pubcrawl.models import Coordinate


def test_parse_pub_features_missing_fields():
    features = [
        {"geometry": {"coordinates": [-0.12, 51.51]}},
        {"geometry": {"coordinates": [-0.13, 51.52]}, "properties": {"name": "The Lamb", "city": "London"}},
        {"properties": {"name": "no-geometry"}},
        {"geometry": {"coordinates": [200.0, 51.5]}, "properties": {"name": "off-the-map"}},
    ]

    parsed = parse_pub_features(features)
    assert [p.name for p in parsed] == ["Unnamed Pub", "The Lamb"]
    assert parsed[0].address is None
    assert parsed[0].rating is None
    assert parsed[0].coordinate == Coordinate(51.51, -0.12)
    assert parsed[1].address == "London"


def test_build_address_order_and_skips_empty():
    props = {
        "street": "Lamb's Conduit Street",
        "housenumber": "94",
        "postcode": "",
        "city": "London",
        "country": "United Kingdom",
    }
    assert build_address(props) == "Lamb's Conduit Street, 94, London, United Kingdom"
    assert build_address({}) is None


def test_build_display_name_fallbacks():
    assert build_display_name({"name": "Holborn"}, "holborn") == "Holborn"
    assert build_display_name({"street": "High St", "country": "UK"}, "x") == "High St, UK"
    assert build_display_name({}, "Somewhere") == "Somewhere"


def test_parse_features_skips_bad_coordinates():
    parsed = parse_features(
        [
            {"geometry": {"coordinates": [-0.12, 51.51]}, "properties": {"name": "ok"}},
            {"geometry": {"coordinates": []}},
            {"geometry": {"coordinates": ["x", "y"]}},
        ]
    )
    assert len(parsed) == 1
    assert parsed[0][0] == Coordinate(51.51, -0.12)


def test_parse_route_normalizes_lng_lat():
    route = parse_route(
        {
            "geometry": {"type": "LineString", "coordinates": [[-0.1238, 51.5308], [-0.1058, 51.5322]]},
            "distance": 1250.5,
            "duration": 900,
        }
    )
    assert route.geometry[0] == Coordinate(51.5308, -0.1238)
    assert route.geometry[-1] == Coordinate(51.5322, -0.1058)
    assert route.distance_m == 1250.5
    assert route.duration_s == 900.0
    assert route.order is None


def test_parse_route_without_geometry_is_provider_error():
    with pytest.raises(ProviderError):
        parse_route({"distance": 10})


def test_parse_trip_order_from_waypoint_index():
    waypoints = [{"waypoint_index": 0}, {"waypoint_index": 2}, {"waypoint_index": 1}]
    assert parse_trip_order(waypoints, 3) == [0, 2, 1]

    with pytest.raises(ProviderError):
        parse_trip_order(waypoints, 4)


def test_format_coordinates_is_lng_first():
    coords = [Coordinate(51.5, -0.1), Coordinate(51.6, -0.2)]
    assert format_coordinates(coords) == "-0.1,51.5;-0.2,51.6"


def test_parse_route_rejects_encoded_polyline_and_non_objects():
    with pytest.raises(ProviderError):
        parse_route({"geometry": "_p~iF~ps|U_ulLnnqC", "distance": 10})
    with pytest.raises(ProviderError):
        parse_route("route")
    with pytest.raises(ProviderError):
        parse_route({"geometry": {"coordinates": [{"lng": -0.1, "lat": 51.5}]}})


def test_parse_pub_features_rejects_non_object_feature():
    with pytest.raises(ProviderError):
        parse_pub_features([{"geometry": {"coordinates": [-0.12, 51.51]}}, "oops"])
