"""Per-collaborator call statistics.

Each adapter owns one tracker and wraps every remote call in ``track``. The
tracker keeps the overall in-flight peak plus a per-operation breakdown
(e.g. ``retrieve`` vs ``upsert``), and the adapter logs the summary when it
is closed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass

__all__ = ['ConcurrencyTracker', 'OperationStats']

logger = logging.getLogger(__name__)


@dataclass
class OperationStats:
    """Counters for one named operation."""

    calls: int = 0
    failures: int = 0
    seconds: float = 0.0

    @property
    def avg_latency_ms(self) -> float:
        return round(self.seconds / self.calls * 1000, 1) if self.calls else 0.0


class ConcurrencyTracker:
    """Track concurrent calls against one remote service.

    Usage:
        tracker = ConcurrencyTracker('QDRANT')

        async with tracker.track('retrieve'):
            await client.retrieve(...)

        tracker.log_summary()
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._in_flight = 0
        self._peak = 0
        self._operations: dict[str, OperationStats] = {}

    @asynccontextmanager
    async def track(self, operation: str = 'call') -> AsyncIterator[None]:
        """Count one call to ``operation``; failures are recorded and re-raised."""
        stats = self._operations.setdefault(operation, OperationStats())
        stats.calls += 1
        self._in_flight += 1
        self._peak = max(self._peak, self._in_flight)
        started = time.perf_counter()
        try:
            yield
        except Exception:
            stats.failures += 1
            raise
        finally:
            stats.seconds += time.perf_counter() - started
            self._in_flight -= 1

    @property
    def in_flight(self) -> int:
        """Calls currently running."""
        return self._in_flight

    @property
    def max_in_flight(self) -> int:
        """Most calls ever running at once."""
        return self._peak

    @property
    def operations(self) -> Mapping[str, OperationStats]:
        """Per-operation counters, keyed by operation name."""
        return dict(self._operations)

    @property
    def stats(self) -> Mapping[str, int | float]:
        """Totals across all operations."""
        calls = sum(s.calls for s in self._operations.values())
        seconds = sum(s.seconds for s in self._operations.values())
        return {
            'total_calls': calls,
            'failed_calls': sum(s.failures for s in self._operations.values()),
            'max_concurrent': self._peak,
            'in_flight': self._in_flight,
            'total_time_s': round(seconds, 2),
        }

    def log_summary(self) -> None:
        """Log totals and the per-operation breakdown, if anything ran."""
        if not self._operations:
            return
        breakdown = ', '.join(
            f'{op}={s.calls} calls/{s.failures} failed/{s.avg_latency_ms}ms avg'
            for op, s in sorted(self._operations.items())
        )
        logger.debug(f'[{self.name}] FINAL {dict(self.stats)} | {breakdown}')
