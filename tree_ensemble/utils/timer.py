# tree_ensemble/utils/timer.py
"""Performance timing utilities for tree_ensemble package.

Decorators and context managers that measure training, cross
validation and model (de)serialization, recording every measurement in
a process-wide thread-safe tracker.
"""

import time
import functools
from typing import Callable, TypeVar, Any, Optional, Dict
from contextlib import contextmanager
from collections import defaultdict
import threading

from .logger import get_logger
from .exceptions import PerformanceError

logger = get_logger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


class PerformanceTracker:
    """Thread-safe performance tracking utility.

    Tracks execution times and call counts per named operation. Prediction
    threads and the training thread may record concurrently.
    """

    def __init__(self) -> None:
        self._stats: Dict[str, Dict[str, Any]] = defaultdict(lambda: {
            'total_time': 0.0,
            'call_count': 0,
            'min_time': float('inf'),
            'max_time': 0.0,
            'avg_time': 0.0
        })
        self._lock = threading.Lock()

    def record_execution(self, name: str, duration: float) -> None:
        """Record an execution time for a named operation.

        Args:
            name: Operation name
            duration: Execution duration in seconds
        """
        with self._lock:
            stats = self._stats[name]
            stats['total_time'] += duration
            stats['call_count'] += 1
            stats['min_time'] = min(stats['min_time'], duration)
            stats['max_time'] = max(stats['max_time'], duration)
            stats['avg_time'] = stats['total_time'] / stats['call_count']

    def get_stats(self, name: Optional[str] = None) -> Dict[str, Any]:
        """Get performance statistics.

        Args:
            name: Optional specific operation name

        Returns:
            Performance statistics dictionary
        """
        with self._lock:
            if name:
                return dict(self._stats[name]) if name in self._stats else {}
            return {k: dict(v) for k, v in self._stats.items()}

    def reset_stats(self, name: Optional[str] = None) -> None:
        """Reset performance statistics.

        Args:
            name: Optional specific operation name to reset
        """
        with self._lock:
            if name:
                self._stats.pop(name, None)
            else:
                self._stats.clear()


# Global performance tracker
_performance_tracker = PerformanceTracker()


def timer(
    name: Optional[str] = None,
    log_result: bool = True,
    track_performance: bool = True,
    timeout: Optional[float] = None
) -> Callable[[F], F]:
    """Decorator to time function execution.

    Args:
        name: Optional custom name for the operation
        log_result: Whether to log the execution time
        track_performance: Whether to record in global performance tracker
        timeout: Optional timeout in seconds (raises PerformanceError if exceeded)

    Returns:
        Decorated function

    Example:
        >>> @timer(name="boosting_training")
        ... def train(params, dtrain, num_boost_round):
        ...     ...
    """
    def decorator(func: F) -> F:
        operation_name = name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                if log_result:
                    logger.error(f"Operation '{operation_name}' failed after {duration:.3f}s: {e}")
                raise

            duration = time.perf_counter() - start_time

            if timeout and duration > timeout:
                raise PerformanceError(
                    f"Operation '{operation_name}' exceeded timeout of {timeout}s",
                    error_code="OPERATION_TIMEOUT",
                    context={'operation': operation_name, 'duration': duration, 'timeout': timeout}
                )

            if log_result:
                logger.info(f"Operation '{operation_name}' completed in {duration:.3f}s")

            if track_performance:
                _performance_tracker.record_execution(operation_name, duration)

            return result

        return wrapper

    return decorator


@contextmanager
def timed_operation(
    name: str,
    log_result: bool = True,
    track_performance: bool = True
):
    """Context manager for timing code blocks.

    Args:
        name: Operation name
        log_result: Whether to log the execution time
        track_performance: Whether to record in global performance tracker

    Yields:
        Dictionary with timing information (filled in on exit)

    Example:
        >>> with timed_operation("model_save") as timing:
        ...     booster.save_model("model.bin")
        >>> print(f"Saving took {timing['duration']:.3f}s")
    """
    start_time = time.perf_counter()
    timing_info = {'duration': 0.0, 'start_time': start_time}

    try:
        yield timing_info
    except Exception as e:
        timing_info['duration'] = time.perf_counter() - start_time
        if log_result:
            logger.error(f"Operation '{name}' failed after {timing_info['duration']:.3f}s: {e}")
        raise

    timing_info['duration'] = time.perf_counter() - start_time

    if log_result:
        logger.debug(f"Operation '{name}' completed in {timing_info['duration']:.3f}s")

    if track_performance:
        _performance_tracker.record_execution(name, timing_info['duration'])


def get_performance_stats(name: Optional[str] = None) -> Dict[str, Any]:
    """Get performance statistics from global tracker."""
    return _performance_tracker.get_stats(name)


def reset_performance_stats(name: Optional[str] = None) -> None:
    """Reset performance statistics in global tracker."""
    _performance_tracker.reset_stats(name)
