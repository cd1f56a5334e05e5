"""SQLAlchemy records for clients, sender addresses, document types and requirements.

Records hold foreign-key ids only. Domain objects are rebuilt from them by
the repositories (see repositories.py); no relationship() graphs are loaded.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClientRecord(Base):
    """Client organization owing compliance documents."""
    __tablename__ = "client"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    # Downstream mailbox receiving forwarded documents
    compliance_address = Column(Text, nullable=False)
    status = Column(
        String(16),
        CheckConstraint("status IN ('ACTIVE', 'INACTIVE')", name="ck_client_status"),
        nullable=False,
        default="ACTIVE",
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<ClientRecord(id={self.id}, name='{self.name}', status={self.status})>"


class ClientSenderRecord(Base):
    """Sender address registered for a client (stored lowercase, bare address)."""
    __tablename__ = "client_sender"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(
        Uuid,
        ForeignKey("client.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email_address = Column(String(320), nullable=False, unique=True)

    def __repr__(self):
        return f"<ClientSenderRecord(client_id={self.client_id}, email='{self.email_address}')>"


class DocumentTypeRecord(Base):
    __tablename__ = "document_type"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    frequency = Column(
        String(16),
        CheckConstraint(
            "frequency IN ('MONTHLY', 'QUARTERLY', 'SEMI_ANNUAL', 'ANNUAL')",
            name="ck_document_type_frequency",
        ),
        nullable=False,
    )
    description = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<DocumentTypeRecord(id={self.id}, name='{self.name}')>"


class RequirementRecord(Base):
    """Stored requirement.

    version is the optimistic-concurrency token: every update is written
    with WHERE version = <expected> and bumps it by one.
    """
    __tablename__ = "requirement"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(
        Uuid,
        ForeignKey("client.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type_id = Column(
        Uuid,
        ForeignKey("document_type.id"),
        nullable=False,
    )
    due_date = Column(Date, nullable=False)
    status = Column(
        String(16),
        CheckConstraint(
            "status IN ('PENDING', 'RECEIVED', 'VALIDATED', 'COMPLETED', 'OVERDUE', 'CANCELLED')",
            name="ck_requirement_status",
        ),
        nullable=False,
        default="PENDING",
    )
    blob_id = Column(Text, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=0)

    # Audit
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_modified_at = Column(DateTime(timezone=True), nullable=True)
    last_modified_by = Column(String(100), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(blob_id IS NULL) = (uploaded_at IS NULL)",
            name="ck_requirement_blob_uploaded_pair",
        ),
        Index("idx_requirement_client_status", "client_id", "status"),
        Index("idx_requirement_status_due", "status", "due_date"),
    )

    def __repr__(self):
        return (
            f"<RequirementRecord(id={self.id}, client_id={self.client_id}, "
            f"status={self.status}, version={self.version})>"
        )
