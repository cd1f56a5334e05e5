from .document_service import DocumentService, DocumentStatus
from .requirement_service import RequirementService

__all__ = ["DocumentService", "DocumentStatus", "RequirementService"]
