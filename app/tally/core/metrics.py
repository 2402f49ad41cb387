from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.tally.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    """Process-local Prometheus registry.

    Every recorder is a no-op when METRICS_ENABLED is off, so call sites never
    need to check the flag themselves.
    """

    def __init__(self) -> None:
        self.enabled = bool(settings.METRICS_ENABLED)
        self._registry = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._movements_total = Counter(
            "tally_movements_total",
            "Movements received by outcome.",
            ["outcome"],
            registry=self._registry,
        )
        self._finalizations_total = Counter(
            "tally_session_finalizations_total",
            "Finalization attempts by outcome.",
            ["outcome"],
            registry=self._registry,
        )
        self._rate_limited_total = Counter(
            "tally_rate_limited_total",
            "Requests rejected by the rate limiter.",
            ["route"],
            registry=self._registry,
        )
        self._lock_wait_timeout_total = Counter(
            "lock_wait_timeout_total",
            "Lock wait timeout occurrences.",
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def record_movements(self, *, accepted: int, duplicates: int) -> None:
        if not self.enabled:
            return
        if accepted:
            self._movements_total.labels(outcome="accepted").inc(accepted)
        if duplicates:
            self._movements_total.labels(outcome="duplicate").inc(duplicates)

    def record_finalization(self, outcome: str) -> None:
        if not self.enabled:
            return
        self._finalizations_total.labels(outcome=outcome).inc()

    def increment_rate_limited(self, route: str) -> None:
        if not self.enabled:
            return
        self._rate_limited_total.labels(route=route).inc()

    def increment_lock_wait_timeout(self) -> None:
        if not self.enabled:
            return
        self._lock_wait_timeout_total.inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
