import json

from pubcrawl import config


def test_load_crawl_config_missing_file(tmp_path):
    assert config.load_crawl_config(str(tmp_path / "nope.json")) is False


def test_load_crawl_config_overrides_globals(tmp_path, monkeypatch):
    for name in (
        "DEFAULT_CENTER",
        "POI_KEYWORD",
        "POI_RADIUS_M",
        "POI_STRICT_RADIUS",
        "PATH_SEARCH_DELAY_SECONDS",
        "OSRM_BASE_URL",
        "HTTP_TIMEOUT_SECONDS",
        "HTTP_RETRY_MAX",
    ):
        monkeypatch.setattr(config, name, getattr(config, name))

    path = tmp_path / "crawl_config.json"
    path.write_text(
        json.dumps(
            {
                "default_center": {"lat": 53.3498, "lng": -6.2603},
                "keyword": "bar",
                "radius_m": 800,
                "strict_radius": True,
                "request_delay_ms": 1000,
                "osrm_url": "http://localhost:5001/",
                "http": {"timeout_seconds": 5, "retry_max": 0},
            }
        ),
        encoding="utf-8",
    )

    assert config.load_crawl_config(str(path)) is True
    assert config.DEFAULT_CENTER == {"lat": 53.3498, "lng": -6.2603}
    assert config.POI_KEYWORD == "bar"
    assert config.POI_RADIUS_M == 800
    assert config.POI_STRICT_RADIUS is True
    assert config.PATH_SEARCH_DELAY_SECONDS == 1.0
    assert config.HTTP_TIMEOUT_SECONDS == 5.0
    assert config.HTTP_RETRY_MAX == 1


def test_provider_urls_honor_env(monkeypatch):
    monkeypatch.setenv("PUBCRAWL_OSRM_URL", "http://localhost:5001/")
    monkeypatch.delenv("PUBCRAWL_PHOTON_URL", raising=False)
    assert config.osrm_url("route", "1,2;3,4") == "http://localhost:5001/route/v1/walking/1,2;3,4"
    assert config.photon_url("/api/") == config.PHOTON_BASE_URL + "/api/"
