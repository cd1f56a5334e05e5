"""Client organizations and the sender addresses that identify them."""

from dataclasses import dataclass, field
from email.utils import parseaddr
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from .errors import ValidationError


class ClientStatus(str, Enum):
    """Client lifecycle status. Only ACTIVE clients get new requirements."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


def normalize_address(address: Optional[str]) -> Optional[str]:
    """Reduce an address header value to a bare lowercase address.

    Examples:
        "Jane Doe <Jane@Acme.example>" → "jane@acme.example"
        "not an address" → None

    Returns:
        Optional[str]: Normalized address or None if nothing usable remains
    """
    if not address:
        return None
    _, bare = parseaddr(address)
    bare = bare.strip().lower()
    if "@" not in bare or bare.startswith("@") or bare.endswith("@"):
        return None
    return bare


@dataclass
class Client:
    """A client organization owing compliance documents.

    Attributes:
        name: Display name
        compliance_address: Downstream mailbox that receives forwarded documents
        status: ACTIVE or INACTIVE
        id: Client UUID
    """
    name: str
    compliance_address: str
    status: ClientStatus = ClientStatus.ACTIVE
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Name is required")
        normalized = normalize_address(self.compliance_address)
        if normalized is None or normalized != self.compliance_address.strip().lower():
            raise ValidationError(
                f"Invalid compliance address: {self.compliance_address!r}"
            )
        self.status = ClientStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status == ClientStatus.ACTIVE

    def activate(self) -> None:
        self.status = ClientStatus.ACTIVE

    def deactivate(self) -> None:
        self.status = ClientStatus.INACTIVE


@dataclass(frozen=True)
class ClientSender:
    """Maps an email address to the client it sends documents for."""
    client_id: UUID
    email_address: str

    def __post_init__(self):
        normalized = normalize_address(self.email_address)
        if normalized is None:
            raise ValidationError(f"Invalid sender address: {self.email_address!r}")
        object.__setattr__(self, "email_address", normalized)
