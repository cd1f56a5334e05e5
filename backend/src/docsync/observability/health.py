"""Health checks for the collaborators every DocuSync process needs.

- database: requirements, clients and sender addresses
- redis: broker behind the email-processing queue
- storage: bucket receiving attachments (skipped for the simulated backend)
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

import redis
from botocore.exceptions import BotoCoreError, ClientError

from ..config import Settings, settings
from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def _timed(probe: Callable[[], None], ok_message: str) -> ComponentHealth:
    started = time.monotonic()
    probe()
    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message=ok_message,
        latency_ms=round((time.monotonic() - started) * 1000, 2),
    )


def check_database_health() -> ComponentHealth:
    """SELECT 1 against the configured database."""
    from ..database import check_database_connection

    try:
        return _timed(check_database_connection, "Database connection OK")
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"Database error: {e}")


def check_redis_health(redis_url: Optional[str] = None) -> ComponentHealth:
    """PING the queue broker."""
    client = redis.from_url(redis_url or settings.REDIS_URL, socket_timeout=2)
    try:
        return _timed(client.ping, "Redis connection OK")
    except redis.RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"Redis error: {e}")


def check_storage_health(config: Optional[Settings] = None) -> ComponentHealth:
    """HEAD the document bucket.

    The simulated backend keeps documents in memory and is always healthy.
    """
    from ..infrastructure.storage import S3DocumentStorage, load_storage_config

    config = config or settings
    if config.GATEWAY_BACKEND != "live":
        return ComponentHealth(status=HealthStatus.HEALTHY, message="Simulated storage")

    try:
        storage = S3DocumentStorage(load_storage_config(config))
        return _timed(
            lambda: storage.s3_client.head_bucket(Bucket=storage.bucket_name),
            f"Bucket {storage.bucket_name} reachable",
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Storage health check failed: {e}")
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"Storage error: {e}")


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall health from component statuses.

    Args:
        components: Dictionary of component health statuses

    Returns:
        HealthStatus: Overall system health
    """
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
