"""Forwarding Port - relays a received document to a downstream mailbox."""

from abc import ABC, abstractmethod

from ..intake.message import EmailAttachment


class ForwardingPort(ABC):
    """Port interface for the Forwarding Gateway.

    send() is synchronous with respect to the worker step that calls it:
    returning normally means the downstream relay accepted the document.
    """

    @abstractmethod
    def send(self, destination: str, subject: str, attachment: EmailAttachment) -> None:
        """Relay one attachment to a destination address.

        Args:
            destination: Client compliance mailbox
            subject: Subject describing the document
            attachment: Attachment to relay

        Raises:
            TransientForwardingError: Timeout or connection failure
            ForwardingError: Relay rejected the message
        """
        pass
