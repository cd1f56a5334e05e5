"""Repository Ports - persistence contracts consumed by the intake core.

Lookups return None for "not found" rather than raising. Any exception
raised by an adapter is an infrastructure fault.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ..clients import Client
from ..document_types import DocumentType
from ..requirements.requirement import Requirement


class RequirementRepositoryPort(ABC):
    """Requirement persistence with optimistic concurrency.

    update() is a conditional write: it succeeds only if the stored version
    equals requirement.version, then increments requirement.version. The
    change must be durable when update() returns.
    """

    @abstractmethod
    def get_by_id(self, requirement_id: UUID) -> Optional[Requirement]:
        pass

    @abstractmethod
    def update(self, requirement: Requirement) -> None:
        """Persist a mutated requirement.

        Raises:
            ConcurrencyConflictError: If the stored version moved on
            NotFoundError: If the requirement no longer exists
        """
        pass

    @abstractmethod
    def get_active_by_client(self, client_id: UUID) -> List[Requirement]:
        """All requirements of a client whose status is not terminal."""
        pass

    @abstractmethod
    def list_open(self) -> List[Requirement]:
        """All requirements whose status is not terminal (overdue sweep)."""
        pass


class ClientRepositoryPort(ABC):
    """Client lookups used for sender resolution."""

    @abstractmethod
    def get_by_id(self, client_id: UUID) -> Optional[Client]:
        pass

    @abstractmethod
    def get_by_sender_address(self, address: str) -> Optional[Client]:
        """Resolve a normalized sender address to its client."""
        pass


class DocumentTypeRepositoryPort(ABC):
    """Document type lookups (forwarding subject)."""

    @abstractmethod
    def get_by_id(self, document_type_id: UUID) -> Optional[DocumentType]:
        pass
