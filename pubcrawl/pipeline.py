"""Pipeline orchestration."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from . import config
from .errors import CrawlError, InvalidInputError
from .geocoder import Geocoder
from .http import HttpClient, RequestMetrics
from .models import (
    Coordinate,
    CrawlRequest,
    CrawlResult,
    DoubleCrawl,
    GeocodeResult,
    PointOfInterest,
    Route,
    SingleCrawl,
)
from .places_client import PlacesClient
from .routes_client import RoutesClient

logger = logging.getLogger(__name__)


class CrawlStatus(str, Enum):
    IDLE = "idle"
    GEOCODING = "geocoding"
    SEARCHING_POIS = "searching_pois"
    ROUTING = "routing"
    COMPLETE = "complete"
    FAILED = "failed"


TRANSITIONS: Dict[CrawlStatus, frozenset] = {
    CrawlStatus.IDLE: frozenset({CrawlStatus.GEOCODING}),
    CrawlStatus.GEOCODING: frozenset({CrawlStatus.SEARCHING_POIS, CrawlStatus.FAILED}),
    CrawlStatus.SEARCHING_POIS: frozenset(
        {CrawlStatus.ROUTING, CrawlStatus.COMPLETE, CrawlStatus.FAILED}
    ),
    CrawlStatus.ROUTING: frozenset({CrawlStatus.COMPLETE, CrawlStatus.FAILED}),
    CrawlStatus.COMPLETE: frozenset(),
    CrawlStatus.FAILED: frozenset(),
}

GENERIC_FAILURE_MESSAGE = "Something went wrong while building the crawl. Please try again."


@dataclass(frozen=True)
class CrawlFailure:
    kind: str
    message: str
    # "start", "end" or "both" when geocoding a two-location crawl failed
    field: Optional[str] = None


@dataclass(frozen=True)
class CrawlState:
    status: CrawlStatus
    generation: int = 0
    request: Optional[CrawlRequest] = None
    result: Optional[CrawlResult] = None
    failure: Optional[CrawlFailure] = None


FIELD_LABELS = {"start": "Start location", "end": "End location"}


class _FieldFailure(Exception):
    """One or both geocoded inputs of a two-location crawl failed."""

    def __init__(self, failures: List[Tuple[str, CrawlError]]) -> None:
        super().__init__("; ".join(f"{name}: {error}" for name, error in failures))
        self.failures = failures

    @property
    def field(self) -> str:
        if len(self.failures) > 1:
            return "both"
        return self.failures[0][0]


def build_crawl_request(
    mode: str,
    inputs: Mapping[str, Any],
    max_pois: Optional[int] = None,
) -> CrawlRequest:
    if max_pois is None:
        max_pois = config.MAX_POIS_DEFAULT
    if isinstance(max_pois, bool) or not isinstance(max_pois, int):
        raise InvalidInputError(
            f"max_pois must be an integer, got {max_pois!r}",
            user_message="Max pubs must be a whole number.",
        )
    if not config.MIN_POIS <= max_pois <= config.MAX_POIS:
        raise InvalidInputError(
            f"max_pois out of range: {max_pois}",
            user_message=f"Max pubs must be between {config.MIN_POIS} and {config.MAX_POIS}.",
        )

    if mode == "single":
        location = _text(inputs, "location")
        if not location:
            raise InvalidInputError("Missing location", user_message="Please enter a location")
        return SingleCrawl(location=location, max_pois=max_pois)
    if mode == "double":
        start = _text(inputs, "start_location", "startLocation")
        end = _text(inputs, "end_location", "endLocation")
        if not start or not end:
            raise InvalidInputError(
                "Missing start or end location",
                user_message="Please enter both start and end locations",
            )
        return DoubleCrawl(start_location=start, end_location=end, max_pois=max_pois)
    raise InvalidInputError(f"Unknown crawl mode: {mode!r}", user_message="Unknown crawl mode.")


def _text(inputs: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = inputs.get(key)
        text = str(value).strip() if value is not None else ""
        if text:
            return text
    return ""


class _Run:
    """Mutable holder for the state of one generation."""

    def __init__(self, generation: int) -> None:
        self.state = CrawlState(status=CrawlStatus.IDLE, generation=generation)

    @property
    def generation(self) -> int:
        return self.state.generation

    @property
    def status(self) -> CrawlStatus:
        return self.state.status


class CrawlOrchestrator:
    """Runs geocode -> pub search -> routing for one crawl request at a time.

    Every call to ``generate_crawl`` starts a new generation. Only the newest
    generation may publish state; a superseded run finishes quietly and its
    result is dropped.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        places_client: PlacesClient,
        routes_client: RoutesClient,
        default_center: Optional[Coordinate] = None,
        on_state_change: Optional[Callable[[CrawlState], None]] = None,
        metrics: Optional[RequestMetrics] = None,
    ) -> None:
        self.geocoder = geocoder
        self.places = places_client
        self.routes = routes_client
        self.default_center = default_center or Coordinate.from_dict(config.DEFAULT_CENTER)
        self.on_state_change = on_state_change
        self.metrics = metrics
        self._generation = 0
        self._state = CrawlState(status=CrawlStatus.IDLE)

    @classmethod
    def create(
        cls,
        http_client: Optional[HttpClient] = None,
        on_state_change: Optional[Callable[[CrawlState], None]] = None,
    ) -> "CrawlOrchestrator":
        if http_client is None:
            http_client = HttpClient(
                timeout=config.HTTP_TIMEOUT_SECONDS,
                retry_max=config.HTTP_RETRY_MAX,
                backoff_base=config.HTTP_BACKOFF_BASE,
                backoff_max=config.HTTP_BACKOFF_MAX,
                metrics=RequestMetrics(),
            )
        routes_client = RoutesClient(http_client)
        return cls(
            geocoder=Geocoder(http_client),
            places_client=PlacesClient(http_client, routes_client),
            routes_client=routes_client,
            on_state_change=on_state_change,
            metrics=http_client.metrics,
        )

    @property
    def state(self) -> CrawlState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    async def generate_crawl(
        self,
        mode: str,
        inputs: Mapping[str, Any],
        max_pois: Optional[int] = None,
    ) -> Optional[CrawlState]:
        """Build a crawl and return its final state.

        Returns None when a newer request superseded this one before it
        finished.
        """
        self._generation += 1
        run = _Run(self._generation)
        self._advance(run, CrawlStatus.GEOCODING)

        try:
            request = build_crawl_request(mode, inputs, max_pois)
            run.state = replace(run.state, request=request)
            if isinstance(request, SingleCrawl):
                await self._run_single(run, request)
            else:
                await self._run_double(run, request)
        except _FieldFailure as exc:
            for field_name, error in exc.failures:
                logger.warning(
                    "Crawl %s failed geocoding %s location (%s): %s",
                    run.generation,
                    field_name,
                    error.kind,
                    error,
                )
            message = " ".join(
                f"{FIELD_LABELS[field_name]}: {error.user_message}"
                for field_name, error in exc.failures
            )
            failure = CrawlFailure(kind=exc.failures[0][1].kind, message=message, field=exc.field)
            self._advance(run, CrawlStatus.FAILED, failure=failure)
        except CrawlError as exc:
            logger.warning(
                "Crawl %s failed while %s (%s): %s",
                run.generation,
                run.status.value,
                exc.kind,
                exc,
            )
            failure = CrawlFailure(kind=exc.kind, message=exc.user_message)
            self._advance(run, CrawlStatus.FAILED, failure=failure)
        except Exception:
            logger.exception("Crawl %s crashed while %s", run.generation, run.status.value)
            if CrawlStatus.FAILED in TRANSITIONS[run.status]:
                failure = CrawlFailure(kind="internal_error", message=GENERIC_FAILURE_MESSAGE)
                self._advance(run, CrawlStatus.FAILED, failure=failure)

        if self.metrics is not None:
            logger.info("Crawl %s requests so far: %s", run.generation, dict(self.metrics.network))
        if not self._is_current(run):
            logger.info("Crawl %s superseded by %s; result dropped", run.generation, self._generation)
            return None
        return run.state

    async def _run_single(self, run: _Run, request: SingleCrawl) -> None:
        geocoded = await self._geocode(request.location, self.default_center)
        center = geocoded.coordinate

        self._advance(run, CrawlStatus.SEARCHING_POIS)
        pois = await asyncio.to_thread(
            self.places.search_near,
            center,
            request.max_pois,
            config.POI_RADIUS_M,
            True,
        )
        logger.info("Crawl %s found %s pubs near %s", run.generation, len(pois), geocoded.display_name)

        if len(pois) < 2:
            result = CrawlResult(center=center, pois=pois, route=None)
            self._advance(run, CrawlStatus.COMPLETE, result=result)
            return

        self._advance(run, CrawlStatus.ROUTING)
        route, pois = await self._route_loop(pois)
        result = CrawlResult(center=center, pois=pois, route=route)
        self._advance(run, CrawlStatus.COMPLETE, result=result)

    async def _run_double(self, run: _Run, request: DoubleCrawl) -> None:
        start_res, end_res = await self._geocode_pair(request.start_location, request.end_location)
        start, end = start_res.coordinate, end_res.coordinate

        self._advance(run, CrawlStatus.SEARCHING_POIS)
        pois = await asyncio.to_thread(self.places.search_along_path, start, end, request.max_pois)
        logger.info(
            "Crawl %s found %s pubs between %s and %s",
            run.generation,
            len(pois),
            start_res.display_name,
            end_res.display_name,
        )

        self._advance(run, CrawlStatus.ROUTING)
        waypoints = [start] + [p.coordinate for p in pois] + [end]
        route = await asyncio.to_thread(self.routes.get_route, waypoints, False)
        result = CrawlResult(center=start, pois=pois, route=route)
        self._advance(run, CrawlStatus.COMPLETE, result=result)

    async def _route_loop(self, pois: List[PointOfInterest]) -> Tuple[Route, List[PointOfInterest]]:
        coords = [p.coordinate for p in pois]
        if len(coords) == 2:
            # The trip service needs 3+ points; close the loop by hand.
            route = await asyncio.to_thread(self.routes.get_route, coords + [coords[0]], False)
            return route, pois
        route = await asyncio.to_thread(self.routes.get_route, coords, True)
        if route.order is not None:
            pois = [pois[i] for i in route.order]
        return route, pois

    async def _geocode(self, text: str, bias: Optional[Coordinate]) -> GeocodeResult:
        return await asyncio.to_thread(self.geocoder.geocode, text, bias)

    async def _geocode_pair(self, start_text: str, end_text: str) -> Tuple[GeocodeResult, GeocodeResult]:
        results = await asyncio.gather(
            self._geocode(start_text, self.default_center),
            self._geocode(end_text, self.default_center),
            return_exceptions=True,
        )
        for res in results:
            if isinstance(res, BaseException) and not isinstance(res, CrawlError):
                raise res
        failures = [
            (field_name, res)
            for field_name, res in zip(("start", "end"), results)
            if isinstance(res, CrawlError)
        ]
        if failures:
            raise _FieldFailure(failures)
        return results[0], results[1]

    def _is_current(self, run: _Run) -> bool:
        return run.generation == self._generation

    def _advance(
        self,
        run: _Run,
        status: CrawlStatus,
        result: Optional[CrawlResult] = None,
        failure: Optional[CrawlFailure] = None,
    ) -> None:
        if status not in TRANSITIONS[run.status]:
            raise RuntimeError(f"Illegal crawl transition {run.status.value} -> {status.value}")
        run.state = replace(run.state, status=status, result=result, failure=failure)
        if not self._is_current(run):
            logger.debug("Dropping %s state of stale crawl %s", status.value, run.generation)
            return
        logger.info("Crawl %s: %s", run.generation, status.value)
        self._state = run.state
        if self.on_state_change:
            self.on_state_change(run.state)
