"""HTTP client with timeout, retry/backoff and per-provider request counters."""
from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from . import config
from .errors import ProviderError

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


@dataclass
class RequestMetrics:
    # incremented from worker threads when geocodes run concurrently
    network: Dict[str, int] = field(default_factory=dict)
    failures: Dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def inc_network(self, kind: str) -> None:
        with self._lock:
            self.network[kind] = self.network.get(kind, 0) + 1

    def inc_failure(self, kind: str) -> None:
        with self._lock:
            self.failures[kind] = self.failures.get(kind, 0) + 1

    def count(self, kind: str) -> int:
        return self.network.get(kind, 0)

    @property
    def total(self) -> int:
        return sum(self.network.values())


class HttpClient:
    def __init__(
        self,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
        retry_max: int = config.HTTP_RETRY_MAX,
        backoff_base: float = config.HTTP_BACKOFF_BASE,
        backoff_max: float = config.HTTP_BACKOFF_MAX,
        user_agent: str = config.HTTP_USER_AGENT,
        metrics: Optional[RequestMetrics] = None,
    ) -> None:
        self.timeout = timeout
        self.retry_max = max(1, int(retry_max))
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.metrics = metrics
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        kind: str = "http",
    ) -> Dict[str, Any]:
        for attempt in range(1, self.retry_max + 1):
            if self.metrics is not None:
                self.metrics.inc_network(kind)
            try:
                resp = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as exc:
                if attempt >= self.retry_max:
                    self._count_failure(kind)
                    raise ProviderError(f"{kind} request to {url} failed: {exc}", provider=kind) from exc
                logger.warning("%s request to %s failed (attempt %s): %s", kind, url, attempt, exc)
                self._sleep_backoff(attempt)
                continue

            status = resp.status_code
            if 200 <= status < 300:
                try:
                    payload = resp.json()
                except ValueError as exc:
                    logger.error("Non-JSON response from %s", url)
                    self._count_failure(kind)
                    raise ProviderError(
                        f"Non-JSON response from {url}", provider=kind, status=status
                    ) from exc
                if not isinstance(payload, dict):
                    self._count_failure(kind)
                    raise ProviderError(
                        f"Unexpected payload type from {url}: {type(payload).__name__}",
                        provider=kind,
                        status=status,
                    )
                return payload

            if status in RETRYABLE_STATUSES and attempt < self.retry_max:
                logger.warning("HTTP %s from %s (attempt %s)", status, url, attempt)
                if not self._sleep_retry_after(resp):
                    self._sleep_backoff(attempt)
                continue

            logger.error("HTTP %s from %s", status, url)
            self._count_failure(kind)
            raise ProviderError(f"HTTP {status} from {url}", provider=kind, status=status)

        raise RuntimeError("Unexpected HTTP retry loop exit")

    def close(self) -> None:
        self.session.close()

    def _count_failure(self, kind: str) -> None:
        if self.metrics is not None:
            self.metrics.inc_failure(kind)

    def _sleep_backoff(self, attempt: int) -> None:
        base = min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)
        jitter = random.uniform(0, self.backoff_base)
        time.sleep(base + jitter)

    def _sleep_retry_after(self, resp: requests.Response) -> bool:
        retry_after = resp.headers.get("Retry-After")
        if not retry_after:
            return False
        try:
            delay = float(retry_after)
        except ValueError:
            return False
        delay = max(0.0, min(delay, self.backoff_max))
        time.sleep(delay)
        return True
