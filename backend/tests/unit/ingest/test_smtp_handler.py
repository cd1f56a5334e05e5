"""Unit tests for DocSyncSMTPHandler."""

from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiosmtpd.smtp import Envelope

from docsync.infrastructure.ingest import DocSyncSMTPHandler
from docsync.intake.gateway import IntakeResult, IntakeStatus


def _envelope(content: bytes, mail_from: str = "jane@acme.example") -> Envelope:
    envelope = Envelope()
    envelope.mail_from = mail_from
    envelope.rcpt_tos = ["documents@docsync.local"]
    envelope.content = content
    envelope.original_content = content
    return envelope


def _raw_email() -> bytes:
    msg = MIMEMultipart()
    msg["From"] = "jane@acme.example"
    msg["Subject"] = "Invoice"
    msg["Message-ID"] = "<m1@acme.example>"
    part = MIMEApplication(b"%PDF", _subtype="pdf")
    part.add_header("Content-Disposition", "attachment", filename="invoice.pdf")
    msg.attach(part)
    return msg.as_bytes()


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.accept_email = AsyncMock(
        return_value=IntakeResult(status=IntakeStatus.ACCEPTED, task_ids=["task-1"])
    )
    return gateway


class TestSMTPHandler:

    @pytest.mark.asyncio
    async def test_accepted_email_returns_250(self, gateway):
        handler = DocSyncSMTPHandler(gateway)

        reply = await handler.handle_DATA(MagicMock(), MagicMock(), _envelope(_raw_email()))

        assert reply.startswith("250")
        message = gateway.accept_email.await_args.args[0]
        assert message.attachments[0].file_name == "invoice.pdf"
        assert gateway.accept_email.await_args.kwargs == {"channel": "smtp"}

    @pytest.mark.asyncio
    async def test_unparseable_email_returns_554(self, gateway):
        handler = DocSyncSMTPHandler(gateway)

        reply = await handler.handle_DATA(MagicMock(), MagicMock(), _envelope(b""))

        assert reply.startswith("554")
        gateway.accept_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_queue_failure_returns_451(self, gateway):
        gateway.accept_email.return_value = IntakeResult(status=IntakeStatus.FAILED, reason="broker down")
        handler = DocSyncSMTPHandler(gateway)

        reply = await handler.handle_DATA(MagicMock(), MagicMock(), _envelope(_raw_email()))

        assert reply.startswith("451")

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_451(self, gateway):
        gateway.accept_email.side_effect = RuntimeError("boom")
        handler = DocSyncSMTPHandler(gateway)

        reply = await handler.handle_DATA(MagicMock(), MagicMock(), _envelope(_raw_email()))

        assert reply.startswith("451")
