"""Unit tests for the queue consumer (email_worker)."""

from unittest.mock import MagicMock, patch

import pytest
from celery.exceptions import MaxRetriesExceededError, Retry

from docsync.observability.request_id import get_request_id
from docsync.workers.email_worker import handle_queue_payload, process_email_task, retry_countdown
from docsync.workers.processor import MessageDisposition, ProcessingOutcome

VALID_PAYLOAD = {
    "from": "jane@acme.example",
    "subject": "Docs",
    "messageId": "<m-42@acme.example>",
    "attachments": [],
}


class TestRetryCountdown:

    @pytest.mark.parametrize("retries,expected", [(0, 30), (1, 60), (2, 120), (5, 960), (6, 1800), (10, 1800)])
    def test_exponential_backoff_capped(self, retries, expected):
        assert retry_countdown(retries, base_seconds=30, max_seconds=1800) == expected


class TestHandleQueuePayload:

    def test_malformed_payload_is_acked(self):
        processor = MagicMock()

        disposition = handle_queue_payload({"subject": "no sender"}, processor)

        assert disposition == MessageDisposition.ACK
        processor.process.assert_not_called()

    def test_malformed_json_is_acked(self):
        processor = MagicMock()

        assert handle_queue_payload("{not json", processor) == MessageDisposition.ACK

    def test_processor_disposition_returned(self):
        processor = MagicMock()
        processor.process.return_value = ProcessingOutcome(disposition=MessageDisposition.RETRY)

        assert handle_queue_payload(VALID_PAYLOAD, processor) == MessageDisposition.RETRY

    def test_request_id_follows_message_id(self):
        seen = []
        processor = MagicMock()
        processor.process.side_effect = lambda message: (
            seen.append(get_request_id()) or ProcessingOutcome(disposition=MessageDisposition.ACK)
        )

        handle_queue_payload(VALID_PAYLOAD, processor)

        assert seen == ["<m-42@acme.example>"]
        assert get_request_id() == "no-request-id"


class TestProcessEmailTask:

    @pytest.fixture
    def processor(self):
        processor = MagicMock()
        with patch("docsync.dependencies.get_processor", return_value=processor):
            yield processor

    def test_ack_returns_status(self, processor):
        processor.process.return_value = ProcessingOutcome(disposition=MessageDisposition.ACK)

        assert process_email_task(VALID_PAYLOAD) == {"status": "ack"}

    def test_retry_schedules_redelivery(self, processor):
        processor.process.return_value = ProcessingOutcome(disposition=MessageDisposition.RETRY)

        with patch("celery.app.task.Task.retry", side_effect=Retry()) as retry:
            with pytest.raises(Retry):
                process_email_task(VALID_PAYLOAD)

        retry.assert_called_once_with(countdown=retry_countdown(0))

    def test_gives_up_after_max_retries(self, processor):
        processor.process.return_value = ProcessingOutcome(disposition=MessageDisposition.RETRY)

        with patch("celery.app.task.Task.retry", side_effect=MaxRetriesExceededError()):
            result = process_email_task(VALID_PAYLOAD)

        assert result["status"] == "failed"
