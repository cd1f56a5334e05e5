"""Shared pytest fixtures for DocuSync.

Provides:
- A fixed clock (2026-03-10 12:00 UTC) for deterministic due-date checks
- In-memory repositories seeded with the "Acme" client and an "Invoice" type
- Recording storage and forwarding gateways with per-filename failure hooks
- A wired EmailProcessor

Usage:
    def test_forwarding(processor, forwarder, message_factory):
        processor.process(message_factory(["invoice.pdf"]))
        assert len(forwarder.sent) == 1
"""

import os
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, List, Optional, Set, Tuple
from uuid import UUID

# Keep the app quiet and local before any docsync module reads settings
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("GATEWAY_BACKEND", "simulated")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from docsync.domain.clients import Client
from docsync.domain.document_types import DocumentFrequency, DocumentType
from docsync.domain.errors import ForwardingError, TransientStorageError
from docsync.domain.intake.message import EmailAttachment, EmailMessage
from docsync.domain.ports import DocumentStoragePort, ForwardingPort
from docsync.domain.requirements import Requirement
from docsync.infrastructure.persistence import (
    InMemoryClientRepository,
    InMemoryDocumentTypeRepository,
    InMemoryRequirementRepository,
)
from docsync.services import DocumentService, RequirementService
from docsync.workers.processor import EmailProcessor

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()

ACME_ID = UUID("a1b2c3d4-e5f6-7890-abcd-ef1234567890")
ACME_SENDER = "jane@acme.example"
ACME_COMPLIANCE = "compliance@acme.example"
INVOICE_TYPE_ID = UUID("11111111-2222-3333-4444-555555555555")


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingStorage(DocumentStoragePort):
    """Storage gateway that records uploads and fails for chosen filenames."""

    def __init__(self):
        self.uploads: List[Tuple[str, UUID, UUID, bytes]] = []
        self.fail_for: Set[str] = set()

    def upload(self, content: BinaryIO, filename: str, client_id: UUID, requirement_id: UUID) -> str:
        if filename in self.fail_for:
            raise TransientStorageError(f"Simulated outage for {filename}")
        self.uploads.append((filename, client_id, requirement_id, content.read()))
        return f"{client_id}/{requirement_id}/{filename}"

    def get_temporary_access_url(self, tracking_id: str) -> str:
        return f"https://storage.test/{tracking_id}?ttl=900"


class RecordingForwarder(ForwardingPort):
    """Forwarding gateway that records sends and fails for chosen filenames."""

    def __init__(self):
        self.sent: List[Tuple[str, str, str]] = []
        self.fail_for: Set[str] = set()

    def send(self, destination: str, subject: str, attachment: EmailAttachment) -> None:
        if attachment.file_name in self.fail_for:
            raise ForwardingError(f"Relay refused {attachment.file_name}")
        self.sent.append((destination, subject, attachment.file_name))


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def acme() -> Client:
    return Client(name="Acme", compliance_address=ACME_COMPLIANCE, id=ACME_ID)


@pytest.fixture
def invoice_type() -> DocumentType:
    return DocumentType(name="Invoice", frequency=DocumentFrequency.MONTHLY, id=INVOICE_TYPE_ID)


@pytest.fixture
def client_repository(acme) -> InMemoryClientRepository:
    repository = InMemoryClientRepository()
    repository.add(acme, senders=[ACME_SENDER])
    return repository


@pytest.fixture
def document_type_repository(invoice_type) -> InMemoryDocumentTypeRepository:
    return InMemoryDocumentTypeRepository([invoice_type])


@pytest.fixture
def requirement_repository() -> InMemoryRequirementRepository:
    return InMemoryRequirementRepository()


@pytest.fixture
def make_requirement(requirement_repository, clock, invoice_type):
    """Create and store a requirement for Acme due `days` after today."""

    def _make(days: int = 3, client_id: UUID = ACME_ID, document_type_id: Optional[UUID] = None) -> Requirement:
        requirement = Requirement(
            client_id=client_id,
            document_type_id=document_type_id or invoice_type.id,
            due_date=TODAY + timedelta(days=days),
            clock=clock,
        )
        requirement_repository.add(requirement)
        return requirement

    return _make


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def forwarder() -> RecordingForwarder:
    return RecordingForwarder()


@pytest.fixture
def requirement_service(requirement_repository) -> RequirementService:
    return RequirementService(requirement_repository)


@pytest.fixture
def document_service(storage, requirement_service) -> DocumentService:
    return DocumentService(storage, requirement_service)


@pytest.fixture
def processor(
    client_repository,
    document_type_repository,
    requirement_service,
    document_service,
    forwarder,
) -> EmailProcessor:
    return EmailProcessor(
        clients=client_repository,
        document_types=document_type_repository,
        requirement_service=requirement_service,
        document_service=document_service,
        forwarder=forwarder,
    )


@pytest.fixture
def message_factory():
    """Build a canonical message with one small attachment per filename."""

    def _make(
        file_names: List[str],
        sender: str = f"Jane Doe <{ACME_SENDER}>",
        subject: str = "March documents",
    ) -> EmailMessage:
        return EmailMessage(
            sender=sender,
            subject=subject,
            message_id="<msg-1@acme.example>",
            attachments=[
                EmailAttachment(file_name=name, content_type="application/pdf", content=b"%PDF-1.4 " + name.encode())
                for name in file_names
            ],
        )

    return _make

