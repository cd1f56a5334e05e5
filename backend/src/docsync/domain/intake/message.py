"""Canonical intake message.

Every inbound email, whatever the mail source, is normalized to an
EmailMessage before it is queued. The JSON form is the queue wire format:

    {
      "from": "jane@acme.example",
      "subject": "March invoice",
      "attachments": [
        {"fileName": "invoice.pdf", "contentType": "application/pdf",
         "content": "<base64>"}
      ]
    }

"messageId" is optional and only used to correlate log lines.
"""

import base64
import binascii
from io import BytesIO
from typing import Any, BinaryIO, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_serializer, field_validator

from ..clients import normalize_address

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class EmailAttachment(BaseModel):
    """A single file attached to an inbound email."""
    file_name: str = Field(..., alias="fileName", min_length=1, description="Original filename")
    content_type: str = Field(DEFAULT_CONTENT_TYPE, alias="contentType", description="MIME type")
    content: bytes = Field(..., description="Raw file bytes (base64 in JSON)")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator("content", mode="before")
    @classmethod
    def decode_content(cls, value: Any) -> bytes:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError(f"content is not valid base64: {e}")
        raise ValueError("content must be base64 text or bytes")

    @field_validator("content_type", mode="before")
    @classmethod
    def default_content_type(cls, value: Any) -> Any:
        return value or DEFAULT_CONTENT_TYPE

    @field_serializer("content", when_used="json")
    def encode_content(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    def as_file(self) -> BinaryIO:
        """Return attachment content as a file-like object."""
        return BytesIO(self.content)


class EmailMessage(BaseModel):
    """Normalized inbound email used between intake and processing."""
    sender: str = Field(..., alias="from", min_length=1, description="Sender address header")
    subject: str = Field("", description="Subject line")
    attachments: List[EmailAttachment] = Field(default_factory=list)
    message_id: Optional[str] = Field(None, alias="messageId", description="Source message id")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator("subject", mode="before")
    @classmethod
    def default_subject(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("attachments", mode="before")
    @classmethod
    def default_attachments(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def sender_address(self) -> Optional[str]:
        """Bare lowercase sender address, None if the header is unusable."""
        return normalize_address(self.sender)

    def to_queue_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON-compatible queue payload."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_queue_payload(cls, payload: Union[Dict[str, Any], str, bytes]) -> "EmailMessage":
        """Parse a queue payload (dict or raw JSON).

        Raises:
            pydantic.ValidationError: If the payload does not match the schema
        """
        if isinstance(payload, (str, bytes)):
            return cls.model_validate_json(payload)
        return cls.model_validate(payload)
