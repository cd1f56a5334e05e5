"""MIME parser turning raw RFC 5322 mail into canonical EmailMessages.

Supports RFC 2047 encoded filenames and nested multipart messages.
"""

import email
import email.policy
import hashlib
import logging
from email.message import Message
from typing import List, Optional

from ...domain.intake.message import DEFAULT_CONTENT_TYPE, EmailAttachment, EmailMessage

logger = logging.getLogger(__name__)


def parse_mime_message(raw_mime: bytes) -> Message:
    """Parse raw MIME bytes into an email.message.Message.

    Raises:
        ValueError: If the bytes are empty or have no headers at all
    """
    if not raw_mime or not raw_mime.strip():
        raise ValueError("Invalid MIME message: empty content")

    msg = email.message_from_bytes(raw_mime, policy=email.policy.default)
    if not msg.keys():
        raise ValueError("Invalid MIME message: no headers")
    return msg


def message_id_of(msg: Message) -> str:
    """Message-ID header, or a synthetic id derived from the headers."""
    message_id = msg.get("Message-ID")
    if message_id:
        return str(message_id).strip()

    header_hash = hashlib.sha256(
        f"{msg.get('From', '')}{msg.get('To', '')}"
        f"{msg.get('Subject', '')}{msg.get('Date', '')}".encode()
    ).hexdigest()[:16]
    synthetic = f"<synthetic-{header_hash}@docsync.generated>"
    logger.warning(f"Email missing Message-ID, generated synthetic: {synthetic}")
    return synthetic


def extract_attachments(msg: Message) -> List[EmailAttachment]:
    """Extract file attachments in message order.

    Walks the entire MIME tree. Skips:
    - Multipart containers
    - Parts without Content-Disposition or filename
    - Inline content (images, signatures)
    - Empty parts
    """
    attachments = []

    for part in msg.walk():
        if part.get_content_maintype() == "multipart":
            continue

        disposition = part.get_content_disposition()
        if disposition is None or disposition == "inline":
            continue

        # Handles RFC 2047 encoding
        filename = part.get_filename()
        if not filename:
            continue

        content = part.get_payload(decode=True)
        if not content:
            logger.warning(f"Attachment {filename} has no content, skipping")
            continue

        attachments.append(EmailAttachment(
            file_name=filename,
            content_type=part.get_content_type() or DEFAULT_CONTENT_TYPE,
            content=content,
        ))
        logger.debug(
            f"Extracted attachment: {filename} ({part.get_content_type()}, {len(content)} bytes)"
        )

    return attachments


def to_email_message(raw_mime: bytes, envelope_sender: Optional[str] = None) -> EmailMessage:
    """Parse raw MIME into a canonical EmailMessage.

    The From header wins over the SMTP envelope sender; the envelope sender
    is used when the header is missing.

    Raises:
        ValueError: If the message cannot be parsed or has no sender
    """
    msg = parse_mime_message(raw_mime)

    sender = str(msg.get("From") or envelope_sender or "").strip()
    if not sender:
        raise ValueError("Invalid MIME message: no sender")

    return EmailMessage(
        sender=sender,
        subject=str(msg.get("Subject") or ""),
        attachments=extract_attachments(msg),
        message_id=message_id_of(msg),
    )
