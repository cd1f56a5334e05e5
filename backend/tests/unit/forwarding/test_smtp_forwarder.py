"""Unit tests for SmtpForwardingGateway with smtplib mocked out."""

import smtplib
import socket
from unittest.mock import MagicMock, patch

import pytest

from docsync.domain.errors import ForwardingError, TransientForwardingError
from docsync.domain.intake.message import EmailAttachment
from docsync.infrastructure.forwarding import SmtpForwardingGateway, SmtpRelayConfig


@pytest.fixture
def config():
    return SmtpRelayConfig(
        host="relay.test",
        port=587,
        from_address="docsync@firm.example",
        username="relay-user",
        password="relay-pass",
    )


@pytest.fixture
def attachment():
    return EmailAttachment(file_name="invoice.pdf", content_type="application/pdf", content=b"%PDF-1.4")


@pytest.fixture
def smtp():
    with patch("docsync.infrastructure.forwarding.smtp_forwarder.smtplib.SMTP") as smtp_cls:
        session = MagicMock()
        smtp_cls.return_value.__enter__.return_value = session
        yield smtp_cls, session


class TestSend:

    def test_sends_one_message(self, config, attachment, smtp):
        smtp_cls, session = smtp
        gateway = SmtpForwardingGateway(config)

        gateway.send("compliance@acme.example", "Document for Invoice", attachment)

        smtp_cls.assert_called_once_with("relay.test", 587, timeout=30.0)
        session.starttls.assert_called_once()
        session.login.assert_called_once_with("relay-user", "relay-pass")
        sent = session.send_message.call_args.args[0]
        assert sent["To"] == "compliance@acme.example"
        assert sent["Subject"] == "FWD: Document for Invoice"

    def test_no_login_without_credentials(self, config, attachment, smtp):
        _, session = smtp
        config.username = None
        config.use_starttls = False

        SmtpForwardingGateway(config).send("compliance@acme.example", "Docs", attachment)

        session.starttls.assert_not_called()
        session.login.assert_not_called()

    @pytest.mark.parametrize("error", [
        socket.timeout("timed out"),
        smtplib.SMTPServerDisconnected("gone"),
        smtplib.SMTPConnectError(421, b"busy"),
        ConnectionRefusedError("refused"),
        smtplib.SMTPResponseException(451, b"try later"),
    ])
    def test_transient_failures(self, config, attachment, smtp, error):
        smtp_cls, _ = smtp
        smtp_cls.side_effect = error

        with pytest.raises(TransientForwardingError):
            SmtpForwardingGateway(config).send("compliance@acme.example", "Docs", attachment)

    @pytest.mark.parametrize("error", [
        smtplib.SMTPResponseException(550, b"mailbox unavailable"),
        smtplib.SMTPAuthenticationError(535, b"bad credentials"),
        smtplib.SMTPRecipientsRefused({"compliance@acme.example": (550, b"no such user")}),
    ])
    def test_permanent_failures(self, config, attachment, smtp, error):
        _, session = smtp
        session.send_message.side_effect = error

        with pytest.raises(ForwardingError) as exc_info:
            SmtpForwardingGateway(config).send("compliance@acme.example", "Docs", attachment)
        assert not isinstance(exc_info.value, TransientForwardingError)


class TestBuildMessage:

    def test_attachment_reattached(self, config, attachment):
        msg = SmtpForwardingGateway(config).build_message("compliance@acme.example", "Docs", attachment)

        parts = [p for p in msg.walk() if p.get_filename()]
        assert len(parts) == 1
        assert parts[0].get_filename() == "invoice.pdf"
        assert parts[0].get_payload(decode=True) == b"%PDF-1.4"
        assert msg["From"] == "DocuSync <docsync@firm.example>"
