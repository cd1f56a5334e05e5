"""SMTP handler for DocuSync email intake.

aiosmtpd handler that accepts document-bearing emails directly over SMTP,
normalizes them into canonical messages and hands them to the intake
gateway. The gateway only enqueues; no processing happens in the SMTP
session.

Architecture: Hexagonal - Infrastructure adapter implementing email ingestion
"""

import logging

from aiosmtpd.smtp import SMTP, Envelope, Session

from ...intake.gateway import IntakeGateway, IntakeStatus
from .mime_parser import to_email_message

logger = logging.getLogger(__name__)


class DocSyncSMTPHandler:
    """SMTP handler feeding the intake gateway.

    Replies:
        '250 Message accepted' - queued for processing
        '554 Message rejected' - unparseable message (sender must not retry)
        '451 Temporary error'  - queue unavailable (sender retries later)
    """

    def __init__(self, gateway: IntakeGateway):
        """Initialize SMTP handler.

        Args:
            gateway: Intake gateway used to enqueue parsed messages
        """
        self.gateway = gateway

    async def handle_DATA(
        self,
        server: SMTP,
        session: Session,
        envelope: Envelope,
    ) -> str:
        """Handle email DATA command (main SMTP handler entry point)."""
        content = envelope.original_content or envelope.content
        if isinstance(content, str):
            content = content.encode("utf-8", errors="surrogateescape")

        logger.info(
            f"Received email: from={envelope.mail_from}, to={envelope.rcpt_tos}, "
            f"size={len(content or b'')} bytes"
        )

        try:
            message = to_email_message(content, envelope_sender=envelope.mail_from)
        except ValueError as e:
            logger.warning(f"Rejected unparseable email from {envelope.mail_from}: {e}")
            return "554 Message rejected: unparseable content"

        try:
            result = await self.gateway.accept_email(message, channel="smtp")
        except Exception as e:
            logger.error(f"Unexpected error enqueueing email: {e}", exc_info=True)
            return "451 Temporary server error"

        if result.status == IntakeStatus.FAILED:
            return "451 Temporary error, try again later"

        logger.info(
            f"Queued email {message.message_id} with {len(message.attachments)} attachments",
            extra={"message_id": message.message_id, "channel": "smtp"},
        )
        return "250 Message accepted"
