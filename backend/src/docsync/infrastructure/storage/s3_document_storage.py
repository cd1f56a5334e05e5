"""S3 Document Storage - Implementation of DocumentStoragePort using boto3.

Stores received attachments in an S3-compatible bucket (AWS S3, MinIO) and
hands out presigned GET URLs. Documents are only kept for a short retention
window, enforced by a bucket lifecycle rule.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import logging
from pathlib import PurePosixPath
from typing import BinaryIO
from urllib.parse import quote
from uuid import UUID

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from ...domain.errors import DocumentUploadError, TransientStorageError
from ...domain.ports import DocumentStoragePort
from .storage_config import StorageConfig

logger = logging.getLogger(__name__)

RETENTION_RULE_ID = "docsync-retention"

# S3 error codes worth retrying
TRANSIENT_ERROR_CODES = {
    "RequestTimeout",
    "SlowDown",
    "ServiceUnavailable",
    "InternalError",
    "503",
}

TRANSIENT_BOTO_ERRORS = (ConnectTimeoutError, ReadTimeoutError, EndpointConnectionError)


class S3DocumentStorage(DocumentStoragePort):
    """S3-compatible document storage using boto3.

    Storage key format: {client_id}/{requirement_id}/{filename}
    The storage key is the tracking id handed back to the domain.

    Example:
        config = load_storage_config(settings)
        storage = S3DocumentStorage(config)
        storage.ensure_retention_policy()

        tracking_id = storage.upload(
            content=attachment.as_file(),
            filename="invoice.pdf",
            client_id=client.id,
            requirement_id=requirement.id,
        )
    """

    def __init__(self, config: StorageConfig, s3_client=None):
        """Initialize S3 document storage.

        Args:
            config: Storage configuration
            s3_client: Pre-built boto3 S3 client (tests); built from config when omitted
        """
        self.config = config
        self.bucket_name = config.bucket_name
        self.s3_client = s3_client or boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
                retries={"max_attempts": 2, "mode": "standard"},
            ),
        )

        logger.info(
            f"Initialized S3 document storage: bucket={config.bucket_name}, "
            f"endpoint={config.endpoint_url or 'AWS S3'}, region={config.region}"
        )

    def upload(
        self,
        content: BinaryIO,
        filename: str,
        client_id: UUID,
        requirement_id: UUID,
    ) -> str:
        """Store document bytes under the requirement's prefix.

        Raises:
            TransientStorageError: Timeout, connection failure or throttling
            DocumentUploadError: Empty document or any other S3 fault
        """
        data = content.read()
        if not data:
            raise DocumentUploadError(f"Cannot store empty document {filename!r}")

        storage_key = self._generate_storage_key(client_id, requirement_id, filename)

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=storage_key,
                Body=data,
                Metadata={
                    # S3 metadata must be ASCII
                    "original_filename": quote(filename),
                    "client_id": str(client_id),
                    "requirement_id": str(requirement_id),
                },
            )
        except TRANSIENT_BOTO_ERRORS as e:
            logger.warning(f"S3 upload timed out: storage_key={storage_key}, error={e}")
            raise TransientStorageError(f"Upload of {filename!r} timed out: {e}")
        except ClientError as e:
            raise self._map_client_error(e, f"upload {storage_key}")
        except BotoCoreError as e:
            logger.error(f"S3 upload failed: storage_key={storage_key}, error={e}")
            raise DocumentUploadError(f"Failed to upload {filename!r}: {e}")

        logger.info(
            f"Uploaded document: storage_key={storage_key}, size={len(data)}",
            extra={"tracking_id": storage_key, "client_id": client_id},
        )
        return storage_key

    def get_temporary_access_url(self, tracking_id: str) -> str:
        """Presigned GET URL valid for config.url_ttl_seconds."""
        try:
            url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": tracking_id},
                ExpiresIn=self.config.url_ttl_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Presigned URL generation failed: storage_key={tracking_id}, error={e}")
            raise DocumentUploadError(f"Failed to generate access URL: {e}")

        logger.info(
            f"Generated presigned URL: storage_key={tracking_id}, "
            f"expires_in={self.config.url_ttl_seconds}s"
        )
        return url

    def ensure_retention_policy(self) -> None:
        """Install the lifecycle rule that expires documents after retention_days.

        Called at worker startup; replaces any existing lifecycle configuration.

        Raises:
            DocumentUploadError: If the bucket rejects the configuration
        """
        try:
            self.s3_client.put_bucket_lifecycle_configuration(
                Bucket=self.bucket_name,
                LifecycleConfiguration={
                    "Rules": [
                        {
                            "ID": RETENTION_RULE_ID,
                            "Filter": {"Prefix": ""},
                            "Status": "Enabled",
                            "Expiration": {"Days": self.config.retention_days},
                        }
                    ]
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to set retention policy on {self.bucket_name}: {e}")
            raise DocumentUploadError(f"Failed to set retention policy: {e}")

        logger.info(
            f"Retention policy set: bucket={self.bucket_name}, "
            f"expire_after={self.config.retention_days}d"
        )

    def _map_client_error(self, error: ClientError, operation: str) -> DocumentUploadError:
        error_code = error.response.get("Error", {}).get("Code", "Unknown")
        if error_code in TRANSIENT_ERROR_CODES:
            logger.warning(f"S3 {operation} failed transiently: error={error_code}")
            return TransientStorageError(f"S3 {operation} failed: {error_code}")

        logger.error(f"S3 {operation} failed: error={error_code}, message={error}")
        return DocumentUploadError(f"S3 {operation} failed: {error_code}")

    def _generate_storage_key(
        self,
        client_id: UUID,
        requirement_id: UUID,
        filename: str,
    ) -> str:
        """Generate storage key in format: {client_id}/{requirement_id}/{filename}

        Only the final path component of the filename is kept.

        Example:
            >>> _generate_storage_key(client_id, requirement_id, '../march/invoice.pdf')
            '<client_id>/<requirement_id>/invoice.pdf'
        """
        safe_name = PurePosixPath(filename.replace("\\", "/")).name
        if safe_name in ("", ".", ".."):
            safe_name = "document"
        return f"{client_id}/{requirement_id}/{safe_name}"
