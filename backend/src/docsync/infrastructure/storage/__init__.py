from .s3_document_storage import RETENTION_RULE_ID, S3DocumentStorage
from .storage_config import StorageConfig, load_storage_config, validate_storage_config

__all__ = [
    "RETENTION_RULE_ID",
    "S3DocumentStorage",
    "StorageConfig",
    "load_storage_config",
    "validate_storage_config",
]
