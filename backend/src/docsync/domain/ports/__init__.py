from .document_storage_port import DocumentStoragePort
from .forwarding_port import ForwardingPort
from .intake_ports import MailSourcePort, MessagePublisherPort
from .repository_ports import (
    ClientRepositoryPort,
    DocumentTypeRepositoryPort,
    RequirementRepositoryPort,
)

__all__ = [
    "ClientRepositoryPort",
    "DocumentStoragePort",
    "DocumentTypeRepositoryPort",
    "ForwardingPort",
    "MailSourcePort",
    "MessagePublisherPort",
    "RequirementRepositoryPort",
]
