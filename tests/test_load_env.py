import os
from pathlib import Path

import pytest

import run


def _parse_env_file(env_path: Path, *, override: bool = False) -> None:
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip()
        if override or key not in os.environ:
            os.environ[key] = val


def test_load_env_is_optional_and_does_not_override_env(tmp_path: Path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text("PUBCRAWL_OSRM_URL=http://from-dotenv:5000\n", encoding="utf-8")

    called: dict[str, Path] = {}

    def fake_load_dotenv(*, dotenv_path, override=False):
        called["dotenv_path"] = Path(dotenv_path).resolve()
        _parse_env_file(Path(dotenv_path), override=bool(override))
        return True

    monkeypatch.setattr(run, "_load_dotenv", fake_load_dotenv)
    monkeypatch.setenv("PUBCRAWL_OSRM_URL", "http://from-env:5000")

    run.load_env(root_dir=tmp_path)

    assert called["dotenv_path"] == env_path.resolve()
    assert os.environ.get("PUBCRAWL_OSRM_URL") == "http://from-env:5000"


def test_load_env_missing_file_is_noop(tmp_path: Path, monkeypatch):
    def fail(**_kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr(run, "_load_dotenv", fail)
    run.load_env(root_dir=tmp_path)


def test_parse_args_requires_one_mode():
    assert run.build_crawl_inputs(run.parse_args(["--location", "Holborn"])) == (
        "single",
        {"location": "Holborn"},
    )
    mode, inputs = run.build_crawl_inputs(run.parse_args(["--start", "Kings Cross", "--end", "Angel"]))
    assert mode == "double"
    assert inputs == {"start_location": "Kings Cross", "end_location": "Angel"}

    with pytest.raises(SystemExit):
        run.parse_args([])
    with pytest.raises(SystemExit):
        run.parse_args(["--location", "Holborn", "--start", "Angel"])
