"""Observability: in-process counters and timers for pipeline runs."""

import time
from contextlib import contextmanager
from typing import Any

import structlog

logger = structlog.get_logger().bind(source="observability")


class Metrics:
    """Dict-based collector; one instance lives for the whole CLI process."""

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._timers: dict[str, list[float]] = {}

    def counter(self, name: str, value: int = 1):
        self._counters[name] = self._counters.get(name, 0) + value

    def get(self, name: str) -> int:
        """Current value of a counter (0 if never incremented)."""
        return self._counters.get(name, 0)

    @contextmanager
    def timer(self, name: str):
        """Time the wrapped block, recording the duration even on error."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self._timers.setdefault(name, []).append(time.perf_counter() - start)

    def durations(self, name: str) -> list[float]:
        return list(self._timers.get(name, []))

    def summary(self) -> dict[str, Any]:
        timer_summary = {}
        for name, durations in self._timers.items():
            if not durations:
                continue
            timer_summary[name] = {
                "count": len(durations),
                "total_s": round(sum(durations), 4),
                "avg_s": round(sum(durations) / len(durations), 4),
                "max_s": round(max(durations), 4),
            }
        return {"counters": dict(self._counters), "timers": timer_summary}

    def reset(self):
        self._counters.clear()
        self._timers.clear()


# Module-level singleton
metrics = Metrics()


def log_run_summary(command: str | None = None):
    """Log collected counters and timers, tagged with the command that ran."""
    summary = metrics.summary()
    if not summary["counters"] and not summary["timers"]:
        return
    logger.info("run_summary", command=command, **summary)
