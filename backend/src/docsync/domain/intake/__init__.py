from .message import EmailAttachment, EmailMessage

__all__ = ["EmailAttachment", "EmailMessage"]
