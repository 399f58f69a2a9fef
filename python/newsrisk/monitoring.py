"""
Query timing for the repositories and the aggregator.

Operations slower than the slow threshold are logged as warnings, those
above the warning threshold at info level. Thresholds come from the
``monitoring`` section of config.yaml via configure_monitoring().

Usage:
    from newsrisk.monitoring import query_timer

    with query_timer("recompute_for_date"):
        ...
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Iterator

logger = logging.getLogger(__name__)


@dataclass
class MonitoringConfig:
    """Timing thresholds in milliseconds."""
    slow_query_threshold_ms: float = 1000.0
    warning_threshold_ms: float = 500.0
    enable_logging: bool = True


_config = MonitoringConfig()


def configure_monitoring(
    slow_query_threshold_ms: float = 1000.0,
    warning_threshold_ms: float = 500.0,
    enable_logging: bool = True
) -> None:
    """Replace the active timing thresholds."""
    global _config
    _config = MonitoringConfig(
        slow_query_threshold_ms=slow_query_threshold_ms,
        warning_threshold_ms=warning_threshold_ms,
        enable_logging=enable_logging
    )


@contextmanager
def query_timer(operation: str) -> Iterator[None]:
    """
    Time the enclosed block and log it when it crosses a threshold.

    Exceptions propagate unchanged; a failed operation is logged at the
    slow threshold only.

    Args:
        operation: Name used in the log line (e.g. 'list_by_source')
    """
    started = time.perf_counter()
    failed = False
    try:
        yield
    except Exception:
        failed = True
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        if _config.enable_logging:
            if elapsed_ms > _config.slow_query_threshold_ms:
                logger.warning(
                    f"SLOW QUERY: {operation} took {elapsed_ms:.2f}ms "
                    f"(threshold: {_config.slow_query_threshold_ms}ms)"
                )
            elif elapsed_ms > _config.warning_threshold_ms and not failed:
                logger.info(f"Query {operation} took {elapsed_ms:.2f}ms")


def timed_query(operation: str) -> Callable:
    """
    Decorator form of query_timer for repository methods.

    Usage:
        @timed_query("list_by_source")
        def list_by_source(self, source_name: str):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            with query_timer(operation):
                return func(*args, **kwargs)
        return wrapper
    return decorator
