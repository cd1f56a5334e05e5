"""Queue consumer for canonical email messages.

The task body is deliberately thin: parse the payload, run the processor,
translate its disposition into Celery semantics. Retry policy (how many
times, how long to wait) lives here and in settings, not in the processor.
"""

import logging
from typing import Any, Dict, Union

from celery import shared_task
from celery.exceptions import MaxRetriesExceededError
from celery.signals import worker_ready
from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..domain.intake.message import EmailMessage
from ..domain.results import ErrorKind
from ..observability.metrics import messages_processed_total
from ..observability.request_id import correlation_scope
from .processor import EmailProcessor, MessageDisposition

logger = logging.getLogger(__name__)


def retry_countdown(
    retries: int,
    base_seconds: int = settings.PROCESSING_RETRY_BASE_SECONDS,
    max_seconds: int = settings.PROCESSING_RETRY_MAX_SECONDS,
) -> int:
    """Exponential backoff: base, 2*base, 4*base ... capped at max_seconds."""
    return min(base_seconds * (2 ** retries), max_seconds)


def handle_queue_payload(
    payload: Union[Dict[str, Any], str, bytes],
    processor: EmailProcessor,
) -> MessageDisposition:
    """Parse one queue payload and process it.

    A payload that does not match the message schema can never succeed,
    so it is acknowledged (dropped) after logging instead of retried.
    """
    try:
        message = EmailMessage.from_queue_payload(payload)
    except PydanticValidationError as e:
        logger.error(f"Dropping malformed queue payload: {e.error_count()} validation errors")
        messages_processed_total.labels(disposition=MessageDisposition.ACK.value).inc()
        return MessageDisposition.ACK

    with correlation_scope(message.message_id):
        return processor.process(message).disposition


@shared_task(name="docsync.process_email", bind=True, max_retries=settings.PROCESSING_MAX_RETRIES)
def process_email_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Process one email from the email-processing queue.

    Args:
        payload: EmailMessage queue payload ({"from", "subject", "attachments", "messageId"})

    Returns:
        Dict with the final disposition
    """
    from ..dependencies import get_processor

    disposition = handle_queue_payload(payload, get_processor())
    if disposition == MessageDisposition.ACK:
        return {"status": disposition.value}

    countdown = retry_countdown(self.request.retries)
    logger.warning(
        f"Message will be redelivered in {countdown}s "
        f"(attempt {self.request.retries + 1}/{self.max_retries})"
    )
    try:
        raise self.retry(countdown=countdown)
    except MaxRetriesExceededError:
        logger.error(
            f"Giving up on message after {self.request.retries} retries",
            extra={"message_id": payload.get("messageId") if isinstance(payload, dict) else None},
        )
        return {"status": "failed", "error_kind": ErrorKind.UNAVAILABLE.value}


@worker_ready.connect
def ensure_storage_retention(sender=None, **kwargs):
    """Install the bucket retention rule when a worker starts."""
    from ..dependencies import get_processor
    from ..domain.errors import DocumentUploadError
    from ..infrastructure.storage import S3DocumentStorage

    storage = get_processor().document_service.storage
    if not isinstance(storage, S3DocumentStorage):
        return
    try:
        storage.ensure_retention_policy()
    except DocumentUploadError as e:
        logger.error(f"Could not install storage retention policy: {e}")
