"""Simulated gateways - in-memory storage and forwarding for local runs.

Used when GATEWAY_BACKEND=simulated. Both gateways can inject failures at a
configurable rate. Randomness comes from an injected random.Random, so two
gateways built with the same seed fail on exactly the same calls.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Dict, List, Optional
from uuid import UUID

from ..domain.errors import DocumentUploadError, TransientForwardingError, TransientStorageError
from ..domain.intake.message import EmailAttachment
from ..domain.ports import DocumentStoragePort, ForwardingPort

logger = logging.getLogger(__name__)


def _validate_failure_rate(failure_rate: float) -> float:
    if not 0.0 <= failure_rate <= 1.0:
        raise ValueError(f"failure_rate must be between 0 and 1, got {failure_rate}")
    return failure_rate


@dataclass(frozen=True)
class StoredDocument:
    tracking_id: str
    filename: str
    client_id: UUID
    requirement_id: UUID
    content: bytes
    stored_at: datetime


@dataclass(frozen=True)
class SentDocument:
    destination: str
    subject: str
    file_name: str
    size_bytes: int


class SimulatedDocumentStorage(DocumentStoragePort):
    """In-memory DocumentStoragePort with injectable failures.

    Usage:
        storage = SimulatedDocumentStorage(rng=random.Random(42), failure_rate=0.2)
        tracking_id = storage.upload(BytesIO(b"%PDF"), "invoice.pdf", client_id, req_id)
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        failure_rate: float = 0.0,
        base_url: str = "https://storage.simulated.local",
        url_ttl_seconds: int = 900,
    ):
        self.rng = rng or random.Random()
        self.failure_rate = _validate_failure_rate(failure_rate)
        self.base_url = base_url.rstrip("/")
        self.url_ttl_seconds = url_ttl_seconds
        self.documents: Dict[str, StoredDocument] = {}

    def upload(
        self,
        content: BinaryIO,
        filename: str,
        client_id: UUID,
        requirement_id: UUID,
    ) -> str:
        if self.rng.random() < self.failure_rate:
            logger.info(f"SimulatedDocumentStorage: Simulating upload timeout for {filename!r}")
            raise TransientStorageError(f"Simulated storage timeout for {filename!r}")

        tracking_id = f"{client_id}/{requirement_id}/{filename}"
        self.documents[tracking_id] = StoredDocument(
            tracking_id=tracking_id,
            filename=filename,
            client_id=client_id,
            requirement_id=requirement_id,
            content=content.read(),
            stored_at=datetime.now(timezone.utc),
        )
        logger.info(
            f"SimulatedDocumentStorage: Stored {filename!r}",
            extra={"tracking_id": tracking_id, "client_id": client_id},
        )
        return tracking_id

    def get_temporary_access_url(self, tracking_id: str) -> str:
        if tracking_id not in self.documents:
            raise DocumentUploadError(f"No simulated document {tracking_id}")
        return f"{self.base_url}/{tracking_id}?expires_in={self.url_ttl_seconds}"


class SimulatedForwardingGateway(ForwardingPort):
    """Records forwarded documents instead of sending them."""

    def __init__(self, rng: Optional[random.Random] = None, failure_rate: float = 0.0):
        self.rng = rng or random.Random()
        self.failure_rate = _validate_failure_rate(failure_rate)
        self.sent: List[SentDocument] = []

    def send(self, destination: str, subject: str, attachment: EmailAttachment) -> None:
        if self.rng.random() < self.failure_rate:
            logger.info(f"SimulatedForwardingGateway: Simulating relay timeout to {destination}")
            raise TransientForwardingError(f"Simulated relay timeout to {destination}")

        self.sent.append(SentDocument(
            destination=destination,
            subject=subject,
            file_name=attachment.file_name,
            size_bytes=attachment.size_bytes,
        ))
        logger.info(f"SimulatedForwardingGateway: Forwarded {attachment.file_name!r} to {destination}")
