"""Document types referenced by requirements."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from .errors import ValidationError

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


class DocumentFrequency(str, Enum):
    """How often a document of this type recurs."""
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUAL = "SEMI_ANNUAL"
    ANNUAL = "ANNUAL"


@dataclass(frozen=True)
class DocumentType:
    """Named, recurring kind of compliance document (e.g. "Invoice", monthly)."""
    name: str
    frequency: DocumentFrequency
    description: Optional[str] = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Name is required")
        if len(self.name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Name cannot exceed {MAX_NAME_LENGTH} characters")
        if self.description is not None and len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters"
            )
        object.__setattr__(self, "frequency", DocumentFrequency(self.frequency))
