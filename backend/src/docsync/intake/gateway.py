"""Intake gateway - turns inbound mail events into queued canonical messages.

Two entry points:
- accept_notifications(): Microsoft Graph change notifications. Each
  "created" notification is fetched from the mail source and published.
- accept_email(): an already canonical message (email webhook, SMTP intake).

The gateway never processes messages itself; it only hands them to the
durable queue. Callers map IntakeStatus to their transport:

    ACCEPTED → HTTP 200 / SMTP 250
    REJECTED → HTTP 400 / SMTP 554
    FAILED   → HTTP 503 / SMTP 451 (sender should retry)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..domain.errors import MailSourceError, PublishError
from ..domain.intake.message import EmailMessage
from ..domain.ports import MailSourcePort, MessagePublisherPort
from ..observability.metrics import intake_messages_total
from .graph_notifications import ChangeNotification, ChangeNotificationCollection

logger = logging.getLogger(__name__)


class IntakeStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class IntakeResult:
    """Outcome of one intake call.

    Attributes:
        status: ACCEPTED, REJECTED or FAILED
        task_ids: Queue ids of the messages published by this call
        skipped: Notifications ignored (not "created", bad clientState, no id)
        reason: Why the call was rejected or failed
    """
    status: IntakeStatus
    task_ids: List[str] = field(default_factory=list)
    skipped: int = 0
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status == IntakeStatus.ACCEPTED


class IntakeGateway:
    """Entry point for inbound mail.

    Args:
        publisher: Durable queue publisher
        mail_source: Mail source used to fetch notified messages (Graph)
        client_state: Expected clientState secret of Graph notifications;
                      None disables the check
    """

    def __init__(
        self,
        publisher: MessagePublisherPort,
        mail_source: Optional[MailSourcePort] = None,
        client_state: Optional[str] = None,
    ):
        self.publisher = publisher
        self.mail_source = mail_source
        self.client_state = client_state

    async def accept_notifications(self, payload: Dict[str, Any]) -> IntakeResult:
        """Fetch and enqueue every mail item announced by a notification batch.

        Processing stops at the first fetch or publish failure and reports
        FAILED; Graph redelivers the whole batch, so items published before
        the failure may be queued twice.
        """
        try:
            collection = ChangeNotificationCollection.model_validate(payload)
        except PydanticValidationError as e:
            logger.warning(f"Rejected malformed Graph notification payload: {e.error_count()} errors")
            intake_messages_total.labels(channel="graph", status=IntakeStatus.REJECTED.value).inc()
            return IntakeResult(status=IntakeStatus.REJECTED, reason="Malformed notification payload")

        if self.mail_source is None:
            logger.error("Graph notification received but no mail source is configured")
            intake_messages_total.labels(channel="graph", status=IntakeStatus.FAILED.value).inc()
            return IntakeResult(status=IntakeStatus.FAILED, reason="Mail source not configured")

        result = IntakeResult(status=IntakeStatus.ACCEPTED)
        for notification in collection.value:
            message_id = self._message_id_to_fetch(notification)
            if message_id is None:
                result.skipped += 1
                intake_messages_total.labels(channel="graph", status="skipped").inc()
                continue

            try:
                message = await self.mail_source.fetch_message(message_id)
                task_id = await self.publisher.publish(message)
            except (MailSourceError, PublishError) as e:
                logger.error(
                    f"Intake of Graph message {message_id} failed: {e}",
                    extra={"message_id": message_id, "channel": "graph"},
                )
                intake_messages_total.labels(channel="graph", status=IntakeStatus.FAILED.value).inc()
                result.status = IntakeStatus.FAILED
                result.reason = str(e)
                return result

            result.task_ids.append(task_id)
            intake_messages_total.labels(channel="graph", status=IntakeStatus.ACCEPTED.value).inc()

        logger.info(
            f"Graph notification batch: {len(result.task_ids)} queued, {result.skipped} skipped",
            extra={"channel": "graph"},
        )
        return result

    async def accept_email(self, message: EmailMessage, channel: str = "webhook") -> IntakeResult:
        """Enqueue a canonical message as-is."""
        try:
            task_id = await self.publisher.publish(message)
        except PublishError as e:
            logger.error(
                f"Intake of {channel} message {message.message_id} failed: {e}",
                extra={"message_id": message.message_id, "channel": channel},
            )
            intake_messages_total.labels(channel=channel, status=IntakeStatus.FAILED.value).inc()
            return IntakeResult(status=IntakeStatus.FAILED, reason=str(e))

        intake_messages_total.labels(channel=channel, status=IntakeStatus.ACCEPTED.value).inc()
        return IntakeResult(status=IntakeStatus.ACCEPTED, task_ids=[task_id])

    def _message_id_to_fetch(self, notification: ChangeNotification) -> Optional[str]:
        if not notification.is_created:
            logger.debug(f"Ignoring '{notification.change_type}' notification for {notification.resource}")
            return None

        if self.client_state is not None and notification.client_state != self.client_state:
            logger.warning(
                f"Ignoring notification with unexpected clientState "
                f"(subscription {notification.subscription_id})"
            )
            return None

        message_id = notification.message_id
        if message_id is None:
            logger.warning(f"Notification without message id: resource={notification.resource!r}")
        return message_id
