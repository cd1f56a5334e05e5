"""Celery message publisher - enqueues canonical messages for the worker.

The processing task is addressed by name, so the intake side never imports
worker code. Messages travel as the JSON queue payload of EmailMessage.
"""

import asyncio
import functools
import logging

from celery import Celery
from kombu.exceptions import KombuError

from ...domain.errors import PublishError
from ...domain.intake.message import EmailMessage
from ...domain.ports import MessagePublisherPort

logger = logging.getLogger(__name__)

PROCESS_EMAIL_TASK = "docsync.process_email"


class CeleryMessagePublisher(MessagePublisherPort):
    """MessagePublisherPort backed by a Celery broker.

    Usage:
        publisher = CeleryMessagePublisher(celery_app, queue="email-processing")
        task_id = await publisher.publish(message)
    """

    def __init__(self, celery_app: Celery, queue: str, task_name: str = PROCESS_EMAIL_TASK):
        self.celery_app = celery_app
        self.queue = queue
        self.task_name = task_name

    async def publish(self, message: EmailMessage) -> str:
        payload = message.to_queue_payload()
        send = functools.partial(
            self.celery_app.send_task,
            self.task_name,
            kwargs={"payload": payload},
            queue=self.queue,
        )

        # send_task blocks on the broker connection
        loop = asyncio.get_running_loop()
        try:
            async_result = await loop.run_in_executor(None, send)
        except (KombuError, OSError) as e:
            logger.error(
                f"Failed to enqueue message {message.message_id}: {e}",
                extra={"message_id": message.message_id},
            )
            raise PublishError(f"Queue rejected message: {e}")

        logger.info(
            f"Enqueued message {message.message_id} from {message.sender_address} "
            f"({len(message.attachments)} attachments) as task {async_result.id}",
            extra={"message_id": message.message_id},
        )
        return async_result.id
