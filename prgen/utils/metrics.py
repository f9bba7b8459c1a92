import functools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Metric:
    name: str
    duration_ms: float
    timestamp: float
    metadata: dict[str, Any] = field(default_factory=dict)


class PerformanceMonitor:
    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self._metrics: list[Metric] = []

    async def measure(
        self,
        name: str,
        fn: Callable[[], Awaitable[T]],
        metadata: Optional[dict[str, Any]] = None,
    ) -> T:
        start = time.perf_counter()
        try:
            return await fn()
        finally:
            self.record(name, (time.perf_counter() - start) * 1000, metadata)

    def record(self, name: str, duration_ms: float, metadata: Optional[dict[str, Any]] = None) -> None:
        if not self.enabled:
            return
        self._metrics.append(Metric(name, duration_ms, time.time(), dict(metadata or {})))

    def metrics(self, name: Optional[str] = None) -> list[Metric]:
        if name is None:
            return list(self._metrics)
        return [m for m in self._metrics if m.name == name]

    def summary(self) -> dict[str, dict[str, float]]:
        out: dict[str, dict[str, float]] = {}
        for metric in self._metrics:
            stat = out.setdefault(
                metric.name,
                {"count": 0, "total": 0.0, "min": float("inf"), "max": float("-inf")},
            )
            stat["count"] += 1
            stat["total"] += metric.duration_ms
            stat["min"] = min(stat["min"], metric.duration_ms)
            stat["max"] = max(stat["max"], metric.duration_ms)
        for stat in out.values():
            stat["avg"] = stat["total"] / stat["count"]
        return out

    def report(self) -> None:
        """Log one summary line per metric name."""
        if not self.enabled:
            return
        for name, stat in self.summary().items():
            logger.info(
                "PERF name=%s count=%d avg_ms=%.2f min_ms=%.2f max_ms=%.2f total_ms=%.2f",
                name,
                stat["count"],
                stat["avg"],
                stat["min"],
                stat["max"],
                stat["total"],
            )

    def clear(self) -> None:
        self._metrics.clear()


def measured(
    monitor: PerformanceMonitor,
    name: str,
    fn: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await monitor.measure(name, lambda: fn(*args, **kwargs))

    return wrapper
