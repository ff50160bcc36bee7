"""Prometheus text-format metrics for the store service."""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

LATENCY_BUCKETS: tuple[float, ...] = (0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0)


@dataclass
class LatencyHistogram:
    buckets: tuple[float, ...]
    bucket_counts: list[int] = field(init=False)
    total: float = 0.0
    count: int = 0

    def __post_init__(self) -> None:
        self.bucket_counts = [0] * len(self.buckets)

    def observe(self, seconds: float) -> None:
        self.total += seconds
        self.count += 1
        for position, upper in enumerate(self.buckets):
            if seconds <= upper:
                self.bucket_counts[position] += 1

    def render(self, name: str, labels: str) -> Iterator[str]:
        for upper, bucket_count in zip(self.buckets, self.bucket_counts):
            yield f'{name}_bucket{{{labels},le="{upper}"}} {bucket_count}'
        yield f'{name}_bucket{{{labels},le="+Inf"}} {self.count}'
        yield f"{name}_sum{{{labels}}} {self.total}"
        yield f"{name}_count{{{labels}}} {self.count}"


@dataclass
class MetricsRegistry:
    """Request, latency and event-write counters rendered for ``GET /metrics``."""

    buckets: tuple[float, ...] = LATENCY_BUCKETS
    requests: Counter[tuple[str, str, int]] = field(default_factory=Counter)
    latencies: dict[tuple[str, str], LatencyHistogram] = field(default_factory=dict)
    events_written: Counter[str] = field(default_factory=Counter)
    write_conflicts: int = 0

    def observe(self, method: str, handler: str, status: int, duration_seconds: float) -> None:
        self.requests[(handler, method, status)] += 1
        histogram = self.latencies.get((handler, method))
        if histogram is None:
            histogram = self.latencies[(handler, method)] = LatencyHistogram(self.buckets)
        histogram.observe(duration_seconds)

    def record_events(self, event_types: Iterable[str]) -> None:
        self.events_written.update(event_types)

    def record_conflict(self) -> None:
        self.write_conflicts += 1

    def render(self) -> str:
        lines = [
            f'store_requests_total{{handler="{handler}",method="{method}",status="{code}"}} {n}'
            for (handler, method, code), n in sorted(self.requests.items())
        ]
        lines.extend(
            f'store_events_written_total{{type="{event_type}"}} {n}'
            for event_type, n in sorted(self.events_written.items())
        )
        lines.append(f"store_event_write_conflicts_total {self.write_conflicts}")
        for (handler, method), histogram in sorted(self.latencies.items()):
            lines.extend(
                histogram.render(
                    "store_request_latency_seconds", f'handler="{handler}",method="{method}"'
                )
            )
        return "\n".join(lines) + "\n"


METRICS = MetricsRegistry()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record per-request metrics against :class:`MetricsRegistry`."""

    def __init__(self, app: ASGIApp, registry: MetricsRegistry | None = None) -> None:
        super().__init__(app)
        self._registry = registry or METRICS

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        method = request.method.upper()
        start = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            # The matched route is only known once the router has run.
            handler = getattr(request.scope.get("route"), "path", request.url.path)
            self._registry.observe(method, handler, status_code, time.perf_counter() - start)
        return response
