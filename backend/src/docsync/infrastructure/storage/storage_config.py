"""Storage configuration for S3-compatible object storage.

Built from application settings and validated before the adapter is created.
Supports both MinIO (development) and AWS S3 (production) with the same interface.
"""

from dataclasses import dataclass
from typing import Optional

from ...config import Settings


@dataclass
class StorageConfig:
    """Configuration for S3-compatible document storage.

    Attributes:
        endpoint_url: S3 endpoint URL (e.g., 'http://localhost:9000' for MinIO,
                      None for AWS S3 which uses default regional endpoints)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        bucket_name: S3 bucket name for received documents
        region: AWS region (default: 'us-east-1')
        url_ttl_seconds: Validity of temporary access URLs
        retention_days: Objects expire this many days after upload
        connect_timeout: Seconds to wait for a connection
        read_timeout: Seconds to wait for a response
    """
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str = "us-east-1"
    url_ttl_seconds: int = 900
    retention_days: int = 1
    connect_timeout: float = 5.0
    read_timeout: float = 30.0


def load_storage_config(settings: Settings) -> StorageConfig:
    """Build storage configuration from application settings.

    Example:
        # For MinIO (development):
        S3_ENDPOINT_URL=http://localhost:9000
        S3_ACCESS_KEY_ID=minioadmin
        S3_SECRET_ACCESS_KEY=minioadmin

        # For AWS S3 (production):
        S3_ENDPOINT_URL=  (empty, uses AWS defaults)
        S3_REGION=eu-central-1
    """
    return StorageConfig(
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        access_key=settings.S3_ACCESS_KEY_ID,
        secret_key=settings.S3_SECRET_ACCESS_KEY,
        bucket_name=settings.S3_BUCKET_NAME,
        region=settings.S3_REGION,
        url_ttl_seconds=settings.STORAGE_URL_TTL_SECONDS,
        retention_days=settings.STORAGE_RETENTION_DAYS,
        connect_timeout=settings.STORAGE_CONNECT_TIMEOUT_SECONDS,
        read_timeout=settings.STORAGE_READ_TIMEOUT_SECONDS,
    )


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Args:
        config: Storage configuration to validate

    Raises:
        ValueError: If configuration is invalid
    """
    if not config.access_key:
        raise ValueError("Storage access_key is required")

    if not config.secret_key:
        raise ValueError("Storage secret_key is required")

    if not config.bucket_name:
        raise ValueError("Storage bucket_name is required")

    if config.endpoint_url:
        # MinIO configuration
        if not config.endpoint_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid endpoint_url: {config.endpoint_url}. "
                "Must start with http:// or https://"
            )
    elif not config.region:
        raise ValueError("AWS region is required when using S3 (S3_ENDPOINT_URL not set)")

    if config.url_ttl_seconds <= 0:
        raise ValueError("url_ttl_seconds must be positive")

    if config.retention_days < 1:
        raise ValueError("retention_days must be at least 1 (S3 lifecycle granularity)")
