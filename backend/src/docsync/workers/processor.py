"""Processing worker orchestration.

Consumes one canonical EmailMessage and drives it through sender resolution,
requirement matching, storage, the requirement state transition and
forwarding. Each attachment is handled independently: a failure on one
attachment is recorded in the outcome and never aborts the others.

The processor never re-raises to request redelivery. It returns a
MessageDisposition and the queue runtime decides what RETRY means
(see docsync.workers.email_worker).
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from uuid import UUID

from ..domain.clients import Client
from ..domain.errors import ForwardingError, TransientForwardingError
from ..domain.intake.message import EmailAttachment, EmailMessage
from ..domain.ports import ClientRepositoryPort, DocumentTypeRepositoryPort, ForwardingPort
from ..domain.requirements import EarliestDueMatchingPolicy, MatchingPolicy, Requirement
from ..domain.results import ErrorKind
from ..observability.metrics import (
    attachments_processed_total,
    message_processing_seconds,
    messages_processed_total,
)
from ..services import DocumentService, RequirementService

logger = logging.getLogger(__name__)


class MessageDisposition(str, Enum):
    """What the queue runtime should do with a handled message."""
    ACK = "ack"      # done, remove from the queue
    RETRY = "retry"  # redeliver later


class AttachmentStatus(str, Enum):
    """Per-attachment result of processing."""
    FORWARDED = "forwarded"
    NO_MATCH = "no_match"
    UPLOAD_FAILED = "upload_failed"
    REJECTED = "rejected"
    FORWARD_FAILED = "forward_failed"


@dataclass(frozen=True)
class AttachmentOutcome:
    file_name: str
    status: AttachmentStatus
    requirement_id: Optional[UUID] = None
    tracking_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class ProcessingOutcome:
    """Result of processing one queue message.

    Attributes:
        disposition: ACK or RETRY
        client_id: Resolved client (None when the sender is unknown)
        attachments: One outcome per attachment that was looked at
        reason: Why the message was acked early or retried
    """
    disposition: MessageDisposition
    client_id: Optional[UUID] = None
    attachments: List[AttachmentOutcome] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def forwarded_count(self) -> int:
        return sum(1 for a in self.attachments if a.status == AttachmentStatus.FORWARDED)


class _RetryMessage(Exception):
    """Internal signal: stop processing and redeliver the message."""
    pass


def forwarding_subject(document_type_name: Optional[str], email_subject: str) -> str:
    """Subject used when relaying a document downstream."""
    if document_type_name:
        return f"Document for {document_type_name}"
    return email_subject


class EmailProcessor:
    """Orchestrates one inbound email end to end.

    Args:
        clients: Sender address → client lookup
        document_types: Document type lookup (forwarding subject)
        requirement_service: Open-requirement queries
        document_service: Upload + attach with conflict retries
        forwarder: Forwarding gateway
        matching_policy: Requirement selection (earliest due by default)

    Example:
        processor = EmailProcessor(clients, document_types, requirements, documents, forwarder)
        outcome = processor.process(message)
        if outcome.disposition == MessageDisposition.RETRY:
            raise task.retry(...)
    """

    def __init__(
        self,
        clients: ClientRepositoryPort,
        document_types: DocumentTypeRepositoryPort,
        requirement_service: RequirementService,
        document_service: DocumentService,
        forwarder: ForwardingPort,
        matching_policy: Optional[MatchingPolicy] = None,
    ):
        self.clients = clients
        self.document_types = document_types
        self.requirement_service = requirement_service
        self.document_service = document_service
        self.forwarder = forwarder
        self.matching_policy = matching_policy or EarliestDueMatchingPolicy()

    def process(self, message: EmailMessage) -> ProcessingOutcome:
        """Process one message and report what the queue should do with it."""
        started = time.monotonic()
        try:
            outcome = self._process(message)
        except _RetryMessage as e:
            outcome = ProcessingOutcome(disposition=MessageDisposition.RETRY, reason=str(e))
        except Exception as e:
            logger.error(
                f"Unexpected failure processing message {message.message_id}: {e}",
                exc_info=True,
                extra={"message_id": message.message_id},
            )
            outcome = ProcessingOutcome(disposition=MessageDisposition.RETRY, reason=str(e))
        finally:
            message_processing_seconds.observe(time.monotonic() - started)

        messages_processed_total.labels(disposition=outcome.disposition.value).inc()
        logger.info(
            f"Message {message.message_id} from {message.sender_address}: "
            f"{outcome.disposition.value} ({outcome.forwarded_count}/"
            f"{len(message.attachments)} attachments forwarded)",
            extra={
                "message_id": message.message_id,
                "disposition": outcome.disposition.value,
                "client_id": outcome.client_id,
            },
        )
        return outcome

    def _process(self, message: EmailMessage) -> ProcessingOutcome:
        client = self._resolve_client(message)
        if client is None:
            return ProcessingOutcome(
                disposition=MessageDisposition.ACK,
                reason=f"Unknown sender {message.sender!r}",
            )

        if not message.attachments:
            logger.info(
                f"Message {message.message_id} from client {client.name} has no attachments",
                extra={"message_id": message.message_id, "client_id": client.id},
            )

        outcomes = []
        for attachment in message.attachments:
            outcome = self._process_attachment(client, attachment, message)
            attachments_processed_total.labels(outcome=outcome.status.value).inc()
            outcomes.append(outcome)

        return ProcessingOutcome(
            disposition=MessageDisposition.ACK,
            client_id=client.id,
            attachments=outcomes,
        )

    def _resolve_client(self, message: EmailMessage) -> Optional[Client]:
        address = message.sender_address
        if address is None:
            logger.warning(
                f"Message {message.message_id} has unusable sender {message.sender!r}",
                extra={"message_id": message.message_id},
            )
            return None

        try:
            client = self.clients.get_by_sender_address(address)
        except Exception as e:
            logger.error(
                f"Client lookup for {address} failed: {e}",
                exc_info=True,
                extra={"message_id": message.message_id},
            )
            raise _RetryMessage(f"Client lookup failed: {e}")

        if client is None:
            logger.warning(
                f"No client registered for sender {address}, dropping message",
                extra={"message_id": message.message_id},
            )
        return client

    def _process_attachment(
        self,
        client: Client,
        attachment: EmailAttachment,
        message: EmailMessage,
    ) -> AttachmentOutcome:
        name = attachment.file_name
        log_extra = {"message_id": message.message_id, "client_id": client.id, "attachment": name}

        open_requirements = self.requirement_service.get_active_for_client(client.id)
        if not open_requirements.ok:
            raise _RetryMessage(f"Open requirements unavailable: {open_requirements.message}")

        requirement = self.matching_policy.select(client.id, open_requirements.value, name)
        if requirement is None:
            logger.warning(
                f"No open requirement for {name!r} from client {client.name}, skipping",
                extra=log_extra,
            )
            return AttachmentOutcome(name, AttachmentStatus.NO_MATCH)

        log_extra["requirement_id"] = requirement.id
        uploaded = self.document_service.upload_for_requirement(
            requirement, attachment.as_file(), name
        )
        if not uploaded.ok:
            status = (
                AttachmentStatus.UPLOAD_FAILED
                if uploaded.error_kind == ErrorKind.STORAGE
                else AttachmentStatus.REJECTED
            )
            logger.warning(
                f"Attachment {name!r} not filed ({status.value}): {uploaded.message}",
                extra=log_extra,
            )
            return AttachmentOutcome(name, status, requirement.id, reason=uploaded.message)

        tracking_id = uploaded.value
        subject = forwarding_subject(self._document_type_name(requirement), message.subject)
        try:
            self.forwarder.send(client.compliance_address, subject, attachment)
        except ForwardingError as e:
            logger.error(
                f"Forwarding {name!r} to {client.compliance_address} failed"
                f"{' (transient)' if isinstance(e, TransientForwardingError) else ''}: {e}",
                extra={**log_extra, "tracking_id": tracking_id},
            )
            return AttachmentOutcome(
                name, AttachmentStatus.FORWARD_FAILED, requirement.id, tracking_id, str(e)
            )

        logger.info(
            f"Forwarded {name!r} to {client.compliance_address}",
            extra={**log_extra, "tracking_id": tracking_id},
        )
        return AttachmentOutcome(name, AttachmentStatus.FORWARDED, requirement.id, tracking_id)

    def _document_type_name(self, requirement: Requirement) -> Optional[str]:
        try:
            document_type = self.document_types.get_by_id(requirement.document_type_id)
        except Exception as e:
            logger.warning(
                f"Document type lookup for {requirement.document_type_id} failed: {e}",
                extra={"requirement_id": requirement.id},
            )
            return None
        return document_type.name if document_type else None
