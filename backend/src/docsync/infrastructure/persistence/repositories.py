"""SQLAlchemy repository adapters.

Each call runs in its own short transaction from the injected session
factory, so a repository instance can be shared across worker tasks.
Records are mapped to domain objects on the way out; requirements are
rehydrated with Requirement.restore().
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from ...domain.clients import Client, ClientSender, ClientStatus, normalize_address
from ...domain.document_types import DocumentFrequency, DocumentType
from ...domain.errors import ConcurrencyConflictError, NotFoundError
from ...domain.ports import (
    ClientRepositoryPort,
    DocumentTypeRepositoryPort,
    RequirementRepositoryPort,
)
from ...domain.requirements import OPEN_STATUSES, Clock, Requirement, RequirementStatus
from .models import ClientRecord, ClientSenderRecord, DocumentTypeRecord, RequirementRecord

logger = logging.getLogger(__name__)

_OPEN_STATUS_VALUES = [status.value for status in OPEN_STATUSES]


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; stored values are always UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAlchemyRequirementRepository(RequirementRepositoryPort):
    """Requirement persistence with a conditional-write update()."""

    def __init__(self, session_factory: sessionmaker, clock: Optional[Clock] = None):
        self.session_factory = session_factory
        self.clock = clock

    def get_by_id(self, requirement_id: UUID) -> Optional[Requirement]:
        with self.session_factory() as session:
            record = session.get(RequirementRecord, requirement_id)
            return self._to_domain(record) if record else None

    def get_active_by_client(self, client_id: UUID) -> List[Requirement]:
        stmt = (
            select(RequirementRecord)
            .where(
                RequirementRecord.client_id == client_id,
                RequirementRecord.status.in_(_OPEN_STATUS_VALUES),
            )
            .order_by(RequirementRecord.due_date, RequirementRecord.created_at)
        )
        with self.session_factory() as session:
            return [self._to_domain(r) for r in session.execute(stmt).scalars()]

    def list_open(self) -> List[Requirement]:
        stmt = select(RequirementRecord).where(
            RequirementRecord.status.in_(_OPEN_STATUS_VALUES)
        )
        with self.session_factory() as session:
            return [self._to_domain(r) for r in session.execute(stmt).scalars()]

    def add(self, requirement: Requirement) -> None:
        """Insert a new requirement (version 0)."""
        with self.session_factory.begin() as session:
            session.add(RequirementRecord(
                id=requirement.id,
                client_id=requirement.client_id,
                document_type_id=requirement.document_type_id,
                due_date=requirement.due_date,
                status=requirement.status.value,
                blob_id=requirement.blob_id,
                uploaded_at=requirement.uploaded_at,
                version=requirement.version,
                created_at=requirement.created_at,
                last_modified_at=requirement.last_modified_at,
                last_modified_by=requirement.last_modified_by,
            ))

    def update(self, requirement: Requirement) -> None:
        """Write the requirement if nobody else changed it since it was read.

        UPDATE requirement SET ..., version = version + 1
        WHERE id = :id AND version = :expected

        Raises:
            ConcurrencyConflictError: Row exists with another version
            NotFoundError: Row is gone
        """
        expected_version = requirement.version
        stmt = (
            update(RequirementRecord)
            .where(
                RequirementRecord.id == requirement.id,
                RequirementRecord.version == expected_version,
            )
            .values(
                due_date=requirement.due_date,
                status=requirement.status.value,
                blob_id=requirement.blob_id,
                uploaded_at=requirement.uploaded_at,
                version=expected_version + 1,
                last_modified_at=requirement.last_modified_at,
                last_modified_by=requirement.last_modified_by,
            )
            .execution_options(synchronize_session=False)
        )

        with self.session_factory.begin() as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                exists = session.execute(
                    select(RequirementRecord.id).where(RequirementRecord.id == requirement.id)
                ).first()
                if exists is None:
                    raise NotFoundError(f"Requirement {requirement.id} not found")
                raise ConcurrencyConflictError(requirement.id, expected_version)

        requirement.version = expected_version + 1

    def _to_domain(self, record: RequirementRecord) -> Requirement:
        return Requirement.restore(
            requirement_id=record.id,
            client_id=record.client_id,
            document_type_id=record.document_type_id,
            due_date=record.due_date,
            status=RequirementStatus(record.status),
            blob_id=record.blob_id,
            uploaded_at=_aware(record.uploaded_at),
            version=record.version,
            created_at=_aware(record.created_at),
            last_modified_at=_aware(record.last_modified_at),
            last_modified_by=record.last_modified_by,
            clock=self.clock,
        )


class SqlAlchemyClientRepository(ClientRepositoryPort):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_by_id(self, client_id: UUID) -> Optional[Client]:
        with self.session_factory() as session:
            record = session.get(ClientRecord, client_id)
            return self._to_domain(record) if record else None

    def get_by_sender_address(self, address: str) -> Optional[Client]:
        normalized = normalize_address(address)
        if normalized is None:
            return None

        stmt = (
            select(ClientRecord)
            .join(ClientSenderRecord, ClientSenderRecord.client_id == ClientRecord.id)
            .where(ClientSenderRecord.email_address == normalized)
        )
        with self.session_factory() as session:
            record = session.execute(stmt).scalars().first()
            return self._to_domain(record) if record else None

    def add(self, client: Client, senders: Iterable[str] = ()) -> None:
        """Insert a client together with its registered sender addresses."""
        with self.session_factory.begin() as session:
            session.add(ClientRecord(
                id=client.id,
                name=client.name,
                compliance_address=client.compliance_address,
                status=client.status.value,
            ))
            session.flush()
            for address in senders:
                sender = ClientSender(client_id=client.id, email_address=address)
                session.add(ClientSenderRecord(
                    client_id=sender.client_id,
                    email_address=sender.email_address,
                ))

    @staticmethod
    def _to_domain(record: ClientRecord) -> Client:
        return Client(
            name=record.name,
            compliance_address=record.compliance_address,
            status=ClientStatus(record.status),
            id=record.id,
        )


class SqlAlchemyDocumentTypeRepository(DocumentTypeRepositoryPort):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_by_id(self, document_type_id: UUID) -> Optional[DocumentType]:
        with self.session_factory() as session:
            record = session.get(DocumentTypeRecord, document_type_id)
            if record is None:
                return None
            return DocumentType(
                name=record.name,
                frequency=DocumentFrequency(record.frequency),
                description=record.description,
                id=record.id,
            )

    def add(self, document_type: DocumentType) -> None:
        with self.session_factory.begin() as session:
            session.add(DocumentTypeRecord(
                id=document_type.id,
                name=document_type.name,
                frequency=document_type.frequency.value,
                description=document_type.description,
            ))
