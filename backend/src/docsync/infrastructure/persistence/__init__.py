from .memory import (
    InMemoryClientRepository,
    InMemoryDocumentTypeRepository,
    InMemoryRequirementRepository,
)
from .models import Base, ClientRecord, ClientSenderRecord, DocumentTypeRecord, RequirementRecord
from .repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyDocumentTypeRepository,
    SqlAlchemyRequirementRepository,
)

__all__ = [
    "Base",
    "ClientRecord",
    "ClientSenderRecord",
    "DocumentTypeRecord",
    "InMemoryClientRepository",
    "InMemoryDocumentTypeRepository",
    "InMemoryRequirementRepository",
    "RequirementRecord",
    "SqlAlchemyClientRepository",
    "SqlAlchemyDocumentTypeRepository",
    "SqlAlchemyRequirementRepository",
]
