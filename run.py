"""CLI entrypoint."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv as _load_dotenv

from pubcrawl import config
from pubcrawl.pipeline import CrawlOrchestrator, CrawlState, CrawlStatus


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Optionally load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    _load_dotenv(dotenv_path=env_path, override=False)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build a walking pub crawl")
    parser.add_argument("--location", type=str, default=None, help="Single-location crawl center")
    parser.add_argument("--start", type=str, default=None, help="Two-location crawl start")
    parser.add_argument("--end", type=str, default=None, help="Two-location crawl end")
    parser.add_argument("--max-pois", type=int, default=None, help="Max pubs to visit")
    parser.add_argument("--config", type=str, default=None, help="Path to crawl_config.json")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    if args.location and (args.start or args.end):
        parser.error("use either --location or --start/--end")
    if not args.location and not (args.start or args.end):
        parser.error("one of --location or --start/--end is required")
    return args


def build_crawl_inputs(args: argparse.Namespace) -> tuple:
    if args.location:
        return "single", {"location": args.location}
    return "double", {"start_location": args.start or "", "end_location": args.end or ""}


def render_state(state: CrawlState) -> Dict[str, Any]:
    out: Dict[str, Any] = {"status": state.status.value}
    if state.result is not None:
        out.update(state.result.to_dict())
    if state.failure is not None:
        out["error"] = {"kind": state.failure.kind, "message": state.failure.message}
    return out


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    args = parse_args(argv)
    config.load_crawl_config(args.config)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    mode, inputs = build_crawl_inputs(args)
    orchestrator = CrawlOrchestrator.create()
    state = asyncio.run(orchestrator.generate_crawl(mode, inputs, args.max_pois))
    if state is None:
        return 1

    if state.status is CrawlStatus.FAILED:
        message = state.failure.message if state.failure else "Crawl failed"
        print(message, file=sys.stderr)
        return 1

    print(json.dumps(render_state(state), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
