"""
Health check endpoints for the REST API.
Provides basic and detailed health status of the service and its dependencies.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal, engine
from shared.infrastructure.events import get_redis_sync_client
from shared.utils.health import (
    HealthCheckResult,
    HealthStatus,
    aggregate_health_checks,
    sync_health_check_with_timeout,
)


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """
    Basic health check endpoint.
    Returns service status without checking dependencies.
    """
    return {
        "status": HealthStatus.HEALTHY.value,
        "service": "rest-api",
        "environment": settings.environment,
    }


@sync_health_check_with_timeout(timeout=3.0, component="database")
def check_database_health() -> dict:
    with SessionLocal() as db:
        db.execute(text("SELECT 1"))
    return {"dialect": engine.dialect.name}


@sync_health_check_with_timeout(timeout=3.0, component="redis")
def check_redis_health() -> dict:
    get_redis_sync_client().ping()
    return {"channel": settings.notifications_channel}


def dependency_checks() -> list[HealthCheckResult]:
    results = [check_database_health()]
    # The in-memory notification backend has no external dependency
    if settings.notifications_backend == "redis":
        results.append(check_redis_health())
    return results


@router.get("/health/detailed")
def detailed_health_check():
    """
    Detailed health check that verifies connectivity to dependencies.

    Returns 503 Service Unavailable if any dependency is down.
    """
    aggregated = aggregate_health_checks(dependency_checks())
    checks = {
        "service": "rest-api",
        "environment": settings.environment,
        "status": aggregated["status"],
        "notifications_backend": settings.notifications_backend,
        "dependencies": aggregated["components"],
    }

    if aggregated["status"] != HealthStatus.HEALTHY.value:
        return JSONResponse(content=checks, status_code=503)
    return checks
