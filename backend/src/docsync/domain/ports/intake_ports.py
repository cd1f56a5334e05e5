"""Intake Ports - mail source and durable queue contracts.

Both are async: they are driven from the webhook request path and the
SMTP intake server, which run on an event loop.
"""

from abc import ABC, abstractmethod

from ..intake.message import EmailMessage


class MailSourcePort(ABC):
    """Fetches full mail items referenced by push notifications."""

    @abstractmethod
    async def fetch_message(self, message_id: str) -> EmailMessage:
        """Fetch a mail item with its file attachments.

        Args:
            message_id: Mail source identifier of the item

        Returns:
            EmailMessage: Canonical message

        Raises:
            MailSourceError: If the item cannot be fetched
        """
        pass


class MessagePublisherPort(ABC):
    """Publishes canonical messages to the durable processing queue."""

    @abstractmethod
    async def publish(self, message: EmailMessage) -> str:
        """Enqueue a message for the processing worker.

        Returns:
            str: Queue-assigned id of the enqueued message

        Raises:
            PublishError: If the queue did not accept the message
        """
        pass
