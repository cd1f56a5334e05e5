"""Graph mail source - fetches notified mail items with their file attachments."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from ...domain.errors import MailSourceError
from ...domain.intake.message import EmailAttachment, EmailMessage
from ...domain.ports import MailSourcePort
from .client import GraphClient

logger = logging.getLogger(__name__)

FILE_ATTACHMENT_TYPE = "#microsoft.graph.fileAttachment"
MESSAGE_FIELDS = "id,subject,from,hasAttachments,internetMessageId"


class GraphMailSource(MailSourcePort):
    """MailSourcePort reading one mailbox through Microsoft Graph.

    Only file attachments are kept; item attachments (attached emails) and
    reference attachments (cloud links) carry no document bytes.
    """

    def __init__(self, client: GraphClient, mailbox: str):
        self.client = client
        self.mailbox = mailbox

    async def fetch_message(self, message_id: str) -> EmailMessage:
        base = f"/users/{quote(self.mailbox, safe='@')}/messages/{quote(message_id, safe='')}"
        item = await self.client.get_json(base, params={"$select": MESSAGE_FIELDS})

        sender = ((item.get("from") or {}).get("emailAddress") or {}).get("address")
        if not sender:
            raise MailSourceError(f"Graph message {message_id} has no sender address")

        attachments: List[EmailAttachment] = []
        if item.get("hasAttachments"):
            attachments = await self._fetch_file_attachments(f"{base}/attachments", message_id)

        try:
            message = EmailMessage(
                sender=sender,
                subject=item.get("subject") or "",
                attachments=attachments,
                message_id=message_id,
            )
        except PydanticValidationError as e:
            raise MailSourceError(f"Graph message {message_id} is not a valid email: {e}")

        logger.info(
            f"Fetched Graph message {message_id} from {sender} with {len(attachments)} file attachments",
            extra={"message_id": message_id},
        )
        return message

    async def _fetch_file_attachments(self, path: str, message_id: str) -> List[EmailAttachment]:
        attachments = []
        next_path = path
        while next_path:
            page = await self.client.get_json(next_path)
            for raw in page.get("value", []):
                attachment = self._to_attachment(raw, message_id)
                if attachment is not None:
                    attachments.append(attachment)
            next_path = page.get("@odata.nextLink")
        return attachments

    @staticmethod
    def _to_attachment(raw: Dict[str, Any], message_id: str) -> Optional[EmailAttachment]:
        if raw.get("@odata.type") != FILE_ATTACHMENT_TYPE:
            logger.debug(f"Skipping {raw.get('@odata.type')} attachment {raw.get('name')!r}")
            return None
        if raw.get("isInline"):
            return None

        try:
            return EmailAttachment(
                file_name=raw.get("name") or "",
                content_type=raw.get("contentType"),
                content=raw.get("contentBytes") or "",
            )
        except PydanticValidationError as e:
            raise MailSourceError(
                f"Graph attachment {raw.get('name')!r} of message {message_id} is invalid: {e}"
            )
