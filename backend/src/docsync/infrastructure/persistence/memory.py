"""In-memory repositories for local runs and tests.

Same contract as the SQLAlchemy adapters, including the version check on
requirement updates. Stored requirements are copied on the way in and out,
so callers never share an instance with the store.
"""

import threading
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from ...domain.clients import Client, ClientSender, normalize_address
from ...domain.document_types import DocumentType
from ...domain.errors import ConcurrencyConflictError, NotFoundError
from ...domain.ports import (
    ClientRepositoryPort,
    DocumentTypeRepositoryPort,
    RequirementRepositoryPort,
)
from ...domain.requirements import Requirement


def _copy(requirement: Requirement) -> Requirement:
    return Requirement.restore(
        requirement_id=requirement.id,
        client_id=requirement.client_id,
        document_type_id=requirement.document_type_id,
        due_date=requirement.due_date,
        status=requirement.status,
        blob_id=requirement.blob_id,
        uploaded_at=requirement.uploaded_at,
        version=requirement.version,
        created_at=requirement.created_at,
        last_modified_at=requirement.last_modified_at,
        last_modified_by=requirement.last_modified_by,
        clock=requirement.clock,
    )


class InMemoryRequirementRepository(RequirementRepositoryPort):

    def __init__(self, requirements: Iterable[Requirement] = ()):
        self._lock = threading.Lock()
        self._rows: Dict[UUID, Requirement] = {}
        for requirement in requirements:
            self.add(requirement)

    def add(self, requirement: Requirement) -> None:
        with self._lock:
            self._rows[requirement.id] = _copy(requirement)

    def get_by_id(self, requirement_id: UUID) -> Optional[Requirement]:
        with self._lock:
            stored = self._rows.get(requirement_id)
            return _copy(stored) if stored else None

    def update(self, requirement: Requirement) -> None:
        with self._lock:
            stored = self._rows.get(requirement.id)
            if stored is None:
                raise NotFoundError(f"Requirement {requirement.id} not found")
            if stored.version != requirement.version:
                raise ConcurrencyConflictError(requirement.id, requirement.version)

            requirement.version += 1
            self._rows[requirement.id] = _copy(requirement)

    def get_active_by_client(self, client_id: UUID) -> List[Requirement]:
        with self._lock:
            return [
                _copy(r) for r in self._rows.values()
                if r.client_id == client_id and not r.is_terminal
            ]

    def list_open(self) -> List[Requirement]:
        with self._lock:
            return [_copy(r) for r in self._rows.values() if not r.is_terminal]


class InMemoryClientRepository(ClientRepositoryPort):

    def __init__(self):
        self._clients: Dict[UUID, Client] = {}
        self._senders: Dict[str, UUID] = {}

    def add(self, client: Client, senders: Iterable[str] = ()) -> None:
        self._clients[client.id] = client
        for address in senders:
            sender = ClientSender(client_id=client.id, email_address=address)
            self._senders[sender.email_address] = client.id

    def get_by_id(self, client_id: UUID) -> Optional[Client]:
        return self._clients.get(client_id)

    def get_by_sender_address(self, address: str) -> Optional[Client]:
        normalized = normalize_address(address)
        client_id = self._senders.get(normalized) if normalized else None
        return self._clients.get(client_id) if client_id else None


class InMemoryDocumentTypeRepository(DocumentTypeRepositoryPort):

    def __init__(self, document_types: Iterable[DocumentType] = ()):
        self._types: Dict[UUID, DocumentType] = {t.id: t for t in document_types}

    def add(self, document_type: DocumentType) -> None:
        self._types[document_type.id] = document_type

    def get_by_id(self, document_type_id: UUID) -> Optional[DocumentType]:
        return self._types.get(document_type_id)
