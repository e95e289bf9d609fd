"""
Health Check Utilities.

Decorator and result type for dependency health checks with consistent
timeout handling and response formatting.

Usage:
    from shared.utils.health import sync_health_check_with_timeout

    @sync_health_check_with_timeout(timeout=3.0, component="database")
    def check_database_health():
        db.execute(text("SELECT 1"))

    # Returns HealthCheckResult(status=HEALTHY, component="database", latency_ms=...)
"""

from __future__ import annotations

import concurrent.futures
import functools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from shared.config.logging import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status values."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class HealthCheckResult:
    """Result of a health check operation."""
    status: HealthStatus
    component: str
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result = {
            "status": self.status.value,
            "component": self.component,
        }
        if self.latency_ms is not None:
            result["latency_ms"] = round(self.latency_ms, 2)
        if self.error:
            result["error"] = self.error
        if self.details:
            result["details"] = self.details
        return result


def sync_health_check_with_timeout(
    timeout: float = 5.0,
    component: str | None = None,
):
    """
    Decorator for synchronous health checks with timeout protection.

    The wrapped function may return a dict of details; any exception or a
    timeout marks the component unhealthy.
    """

    def decorator(
        func: Callable[..., dict[str, Any] | None]
    ) -> Callable[..., HealthCheckResult]:
        comp_name = component or func.__name__.replace("check_", "").replace("_health", "")

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> HealthCheckResult:
            start_time = time.perf_counter()
            executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
            try:
                future = executor.submit(func, *args, **kwargs)
                result = future.result(timeout=timeout)

                latency_ms = (time.perf_counter() - start_time) * 1000
                details = result if isinstance(result, dict) else {}

                return HealthCheckResult(
                    status=HealthStatus.HEALTHY,
                    component=comp_name,
                    latency_ms=latency_ms,
                    details=details,
                )
            except concurrent.futures.TimeoutError:
                latency_ms = (time.perf_counter() - start_time) * 1000
                logger.warning(
                    "Health check timeout",
                    component=comp_name,
                    timeout=timeout,
                )
                return HealthCheckResult(
                    status=HealthStatus.UNHEALTHY,
                    component=comp_name,
                    latency_ms=latency_ms,
                    error=f"timeout after {timeout}s",
                )
            except Exception as e:
                latency_ms = (time.perf_counter() - start_time) * 1000
                logger.warning(
                    "Health check failed",
                    component=comp_name,
                    error=str(e),
                )
                return HealthCheckResult(
                    status=HealthStatus.UNHEALTHY,
                    component=comp_name,
                    latency_ms=latency_ms,
                    error=str(e),
                )
            finally:
                executor.shutdown(wait=False)

        return wrapper
    return decorator


def aggregate_health_checks(results: list[HealthCheckResult]) -> dict[str, Any]:
    """
    Aggregate component results.

    Returns:
        {"status": "healthy" | "degraded", "components": {name: result}}
    """
    components = {result.component: result.to_dict() for result in results}
    all_healthy = all(result.healthy for result in results)
    return {
        "status": HealthStatus.HEALTHY.value if all_healthy else HealthStatus.DEGRADED.value,
        "components": components,
    }
