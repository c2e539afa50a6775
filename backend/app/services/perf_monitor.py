"""Performance monitoring utilities for the pricing and profit engines."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict

logger = logging.getLogger("jeweler-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time of a calculation and
    records it on the module-level ``tracker``.

    Usage::

        @timed
        def calculate_price_adjustments(items, new_lom_narxi):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        failed = False
        try:
            return func(*args, **kwargs)
        except Exception:
            failed = True
            raise
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            tracker.record_call(func.__name__, duration_ms, failed=failed)
            logger.debug(
                "calculation timed",
                extra={
                    "operation": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for calculation metrics.

    Tracks, per operation name:
    - number of calls
    - cumulative duration (for averages)
    - number of calls that raised
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._calls: Dict[str, int] = {}
        self._durations_ms: Dict[str, float] = {}
        self._errors: Dict[str, int] = {}

    def record_call(self, operation: str, duration_ms: float, failed: bool = False) -> None:
        with self._lock:
            self._calls[operation] = self._calls.get(operation, 0) + 1
            self._durations_ms[operation] = self._durations_ms.get(operation, 0.0) + duration_ms
            if failed:
                self._errors[operation] = self._errors.get(operation, 0) + 1

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            total_calls          : int
            error_count          : int
            calls_by_operation   : dict  {operation: count}
            avg_duration_ms      : dict  {operation: avg_ms}
            errors_by_operation  : dict  {operation: count}
        """
        with self._lock:
            averages = {
                op: round(self._durations_ms[op] / count, 2)
                for op, count in self._calls.items()
                if count
            }
            return {
                "total_calls": sum(self._calls.values()),
                "error_count": sum(self._errors.values()),
                "calls_by_operation": dict(self._calls),
                "avg_duration_ms": averages,
                "errors_by_operation": dict(self._errors),
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._calls.clear()
            self._durations_ms.clear()
            self._errors.clear()


# Module-level singleton; import this instance everywhere else.
tracker = PerformanceTracker()
