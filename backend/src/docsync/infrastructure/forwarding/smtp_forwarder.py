"""SMTP Forwarding Gateway - relays received documents to client mailboxes.

Each call opens one SMTP session, sends a single message carrying the
attachment and closes the session. Every socket operation is bounded by the
configured timeout.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import logging
import smtplib
import socket
from dataclasses import dataclass
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import Optional

from ...config import Settings
from ...domain.errors import ForwardingError, TransientForwardingError
from ...domain.intake.message import DEFAULT_CONTENT_TYPE, EmailAttachment
from ...domain.ports import ForwardingPort

logger = logging.getLogger(__name__)

SENDER_DISPLAY_NAME = "DocuSync"
SUBJECT_PREFIX = "FWD: "


@dataclass
class SmtpRelayConfig:
    """Connection settings of the outbound relay."""
    host: str
    port: int = 587
    from_address: str = "docsync@localhost"
    username: Optional[str] = None
    password: Optional[str] = None
    use_starttls: bool = True
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpRelayConfig":
        return cls(
            host=settings.FORWARD_SMTP_HOST,
            port=settings.FORWARD_SMTP_PORT,
            from_address=settings.FORWARD_FROM_ADDRESS,
            username=settings.FORWARD_SMTP_USERNAME,
            password=settings.FORWARD_SMTP_PASSWORD,
            use_starttls=settings.FORWARD_SMTP_STARTTLS,
            timeout=settings.FORWARD_SMTP_TIMEOUT_SECONDS,
        )


class SmtpForwardingGateway(ForwardingPort):
    """ForwardingPort implementation on top of smtplib.

    Error mapping:
    - timeouts, refused/dropped connections, 4xx replies → TransientForwardingError
    - any other SMTP failure (5xx, auth, rejected recipient) → ForwardingError
    """

    def __init__(self, config: SmtpRelayConfig):
        self.config = config

    def send(self, destination: str, subject: str, attachment: EmailAttachment) -> None:
        msg = self.build_message(destination, subject, attachment)

        try:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout) as smtp:
                if self.config.use_starttls:
                    smtp.starttls()
                if self.config.username and self.config.password:
                    smtp.login(self.config.username, self.config.password)
                smtp.send_message(msg)
        except (socket.timeout, smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError) as e:
            raise TransientForwardingError(f"SMTP relay unavailable: {e}")
        except smtplib.SMTPResponseException as e:
            if 400 <= e.smtp_code < 500:
                raise TransientForwardingError(f"SMTP relay deferred ({e.smtp_code}): {e.smtp_error!r}")
            raise ForwardingError(f"SMTP relay rejected message ({e.smtp_code}): {e.smtp_error!r}")
        except smtplib.SMTPException as e:
            raise ForwardingError(f"SMTP relay rejected message: {e}")
        except OSError as e:
            raise TransientForwardingError(f"SMTP relay connection failed: {e}")

        logger.info(
            f"Relayed {attachment.file_name!r} ({attachment.size_bytes} bytes) to {destination} "
            f"via {self.config.host}:{self.config.port}"
        )

    def build_message(
        self,
        destination: str,
        subject: str,
        attachment: EmailAttachment,
    ) -> MIMEMultipart:
        """Build the outgoing MIME message with the attachment re-attached."""
        msg = MIMEMultipart()
        msg["From"] = formataddr((SENDER_DISPLAY_NAME, self.config.from_address))
        msg["To"] = destination
        msg["Subject"] = f"{SUBJECT_PREFIX}{subject}"
        msg["Message-ID"] = make_msgid(domain=self.config.from_address.split("@")[-1])

        msg.attach(MIMEText(f"Forwarded document: {attachment.file_name}", "plain"))

        content_type = attachment.content_type or DEFAULT_CONTENT_TYPE
        maintype, _, subtype = content_type.partition("/")
        part = MIMEBase(maintype or "application", subtype or "octet-stream")
        part.set_payload(attachment.content)
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", "attachment", filename=attachment.file_name)
        msg.attach(part)

        return msg
