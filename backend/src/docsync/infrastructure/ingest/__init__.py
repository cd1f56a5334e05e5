from .mime_parser import extract_attachments, parse_mime_message, to_email_message
from .smtp_handler import DocSyncSMTPHandler

__all__ = ["DocSyncSMTPHandler", "extract_attachments", "parse_mime_message", "to_email_message"]
