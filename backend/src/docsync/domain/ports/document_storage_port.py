"""Document Storage Port - Domain interface for attachment storage.

This port defines the contract for persisting attachment bytes and handing
out short-lived read access. Adapters provide S3, MinIO or simulated
backends. Stored documents are kept only for a bounded retention window;
the returned tracking id is opaque to the domain.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from typing import BinaryIO
from uuid import UUID


class DocumentStoragePort(ABC):
    """Port interface for the Document Storage Gateway.

    Calls are synchronous and blocking; adapters must bound every remote
    call with a timeout and report expiry as TransientStorageError.

    Example Usage:
        storage = S3DocumentStorage(...)

        tracking_id = storage.upload(
            content=attachment.as_file(),
            filename="invoice.pdf",
            client_id=client.id,
            requirement_id=requirement.id,
        )
        url = storage.get_temporary_access_url(tracking_id)
    """

    @abstractmethod
    def upload(
        self,
        content: BinaryIO,
        filename: str,
        client_id: UUID,
        requirement_id: UUID,
    ) -> str:
        """Persist document bytes for a client requirement.

        Args:
            content: Readable binary stream with the document bytes
            filename: Original filename
            client_id: Owning client UUID
            requirement_id: Requirement the document is filed against

        Returns:
            str: Opaque tracking identifier (becomes Requirement.blob_id)

        Raises:
            TransientStorageError: Timeout or connection failure
            DocumentUploadError: Any other storage or transport fault
        """
        pass

    @abstractmethod
    def get_temporary_access_url(self, tracking_id: str) -> str:
        """Create a short-lived read URL for a stored document.

        Args:
            tracking_id: Identifier returned by upload()

        Returns:
            str: URL valid for a short, bounded window

        Raises:
            DocumentUploadError: If the URL cannot be generated
        """
        pass
