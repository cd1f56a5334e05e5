"""Document service - stores attachments and files them against requirements."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Optional
from uuid import UUID

from ..domain.errors import DocumentUploadError
from ..domain.ports import DocumentStoragePort
from ..domain.requirements import Requirement, RequirementStatus
from ..domain.results import ErrorKind, Result
from .requirement_service import RequirementService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentStatus:
    """Document state of one requirement."""
    requirement_id: UUID
    requirement_status: RequirementStatus
    has_document: bool
    uploaded_at: Optional[datetime] = None


class DocumentService:
    """Upload, attach and expose documents for requirements.

    upload_for_requirement() is the write path of the processing worker:
    bytes go to the storage gateway first, then the tracking id is attached
    to the requirement through RequirementService (conditional write with
    conflict retries). A failed attach leaves an orphaned object in storage;
    the bucket retention rule removes it.
    """

    def __init__(self, storage: DocumentStoragePort, requirements: RequirementService):
        self.storage = storage
        self.requirements = requirements

    def upload_for_requirement(
        self,
        requirement: Requirement,
        content: BinaryIO,
        filename: str,
    ) -> Result[str]:
        """Store a document and attach it to a requirement.

        Args:
            requirement: Matched requirement
            content: Document bytes
            filename: Original filename

        Returns:
            Result[str]: Tracking id on success. STORAGE when the upload
            failed; NOT_FOUND, VALIDATION, INVALID_TRANSITION or CONFLICT
            when the requirement rejected the document.
        """
        try:
            tracking_id = self.storage.upload(
                content=content,
                filename=filename,
                client_id=requirement.client_id,
                requirement_id=requirement.id,
            )
        except DocumentUploadError as e:
            logger.error(
                f"Upload of {filename!r} for requirement {requirement.id} failed: {e}",
                extra={"requirement_id": requirement.id, "client_id": requirement.client_id},
            )
            return Result.from_error(e)

        attached = self.requirements.attach_document(requirement.id, tracking_id)
        if not attached.ok:
            logger.warning(
                f"Stored {filename!r} as {tracking_id} but requirement {requirement.id} "
                f"rejected it: {attached.message}",
                extra={"requirement_id": requirement.id, "tracking_id": tracking_id},
            )
            return Result.failure(attached.error_kind, attached.message)

        logger.info(
            f"Attached {filename!r} to requirement {requirement.id}",
            extra={"requirement_id": requirement.id, "tracking_id": tracking_id},
        )
        return Result.success(tracking_id)

    def get_document_status(self, requirement_id: UUID) -> Result[DocumentStatus]:
        found = self.requirements.get_by_id(requirement_id)
        if not found.ok:
            return Result.failure(found.error_kind, found.message)

        requirement = found.value
        return Result.success(DocumentStatus(
            requirement_id=requirement.id,
            requirement_status=requirement.status,
            has_document=requirement.has_document,
            uploaded_at=requirement.uploaded_at,
        ))

    def get_temporary_access_url(self, requirement_id: UUID) -> Result[str]:
        """Short-lived read URL for the requirement's document."""
        found = self.requirements.get_by_id(requirement_id)
        if not found.ok:
            return Result.failure(found.error_kind, found.message)

        requirement = found.value
        if not requirement.has_document:
            return Result.failure(
                ErrorKind.NOT_FOUND, f"Requirement {requirement_id} has no document"
            )

        try:
            return Result.success(self.storage.get_temporary_access_url(requirement.blob_id))
        except DocumentUploadError as e:
            logger.error(
                f"Could not create access URL for {requirement.blob_id}: {e}",
                extra={"requirement_id": requirement_id, "tracking_id": requirement.blob_id},
            )
            return Result.from_error(e)
