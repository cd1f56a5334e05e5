"""Prometheus scrape endpoint plus health and readiness probes."""

from typing import Dict

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .health import (
    ComponentHealth,
    HealthStatus,
    check_database_health,
    check_redis_health,
    check_storage_health,
    get_overall_health,
)

router = APIRouter(tags=["Observability"])


def _component_report(components: Dict[str, ComponentHealth]) -> Dict[str, dict]:
    return {
        name: {
            "status": comp.status.value,
            "message": comp.message,
            "latency_ms": comp.latency_ms,
        }
        for name, comp in components.items()
    }


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Database, queue broker and document storage status",
)
def health_check():
    """200 while nothing is unhealthy, 503 otherwise."""
    components = {
        "database": check_database_health(),
        "redis": check_redis_health(),
        "storage": check_storage_health(),
    }
    overall_status = get_overall_health(components)

    return JSONResponse(
        content={"status": overall_status.value, "components": _component_report(components)},
        status_code=503 if overall_status == HealthStatus.UNHEALTHY else 200,
    )


@router.get("/ready", summary="Readiness probe")
def readiness_check():
    """Ready once the intake queue accepts messages.

    The webhooks only publish to the queue, so the broker is the one
    dependency that decides whether traffic can be served.
    """
    broker = check_redis_health()
    if broker.status == HealthStatus.HEALTHY:
        return {"status": "ready"}
    return JSONResponse(content={"status": "not_ready", "message": broker.message}, status_code=503)
