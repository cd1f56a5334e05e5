"""Intake webhook endpoints.

POST /webhooks/graph  - Microsoft Graph change notifications (and the
                        subscription validation handshake)
POST /webhooks/email  - Canonical email message JSON

Both map the gateway outcome to HTTP: 200 accepted, 400 rejected,
503 failed (the sender retries).
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from ....dependencies import get_intake_gateway
from ....domain.intake.message import EmailMessage
from ....intake.gateway import IntakeGateway, IntakeResult, IntakeStatus
from ....observability.metrics import intake_messages_total
from .schemas import IntakeResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Intake"])

STATUS_CODES = {
    IntakeStatus.ACCEPTED: status.HTTP_200_OK,
    IntakeStatus.REJECTED: status.HTTP_400_BAD_REQUEST,
    IntakeStatus.FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _respond(result: IntakeResult) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_CODES[result.status],
        content=IntakeResponse.from_result(result).model_dump(),
    )


def _rejected(reason: str) -> JSONResponse:
    return _respond(IntakeResult(status=IntakeStatus.REJECTED, reason=reason))


async def _read_json(request: Request) -> Optional[Any]:
    body = await request.body()
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


@router.post(
    "/graph",
    summary="Receive Microsoft Graph change notifications",
    responses={400: {"model": IntakeResponse}, 503: {"model": IntakeResponse}},
)
async def graph_webhook(
    request: Request,
    validation_token: Optional[str] = Query(None, alias="validationToken"),
    gateway: IntakeGateway = Depends(get_intake_gateway),
):
    """Queue every newly created message announced by the notification batch.

    Graph validates a new subscription by POSTing with a validationToken
    query parameter and expects the token echoed back as text/plain.
    """
    if validation_token is not None:
        logger.info("Answering Graph subscription validation request")
        return PlainTextResponse(content=validation_token, status_code=status.HTTP_200_OK)

    payload = await _read_json(request)
    if not isinstance(payload, dict):
        logger.warning("Rejected Graph notification: body is not a JSON object")
        intake_messages_total.labels(channel="graph", status=IntakeStatus.REJECTED.value).inc()
        return _rejected("Body must be a JSON object")

    result = await gateway.accept_notifications(payload)
    return _respond(result)


@router.post(
    "/email",
    summary="Receive a canonical email message",
    responses={400: {"model": IntakeResponse}, 503: {"model": IntakeResponse}},
)
async def email_webhook(
    request: Request,
    gateway: IntakeGateway = Depends(get_intake_gateway),
):
    """Queue an email posted as {"from", "subject", "attachments"} JSON."""
    payload = await _read_json(request)
    if payload is None:
        intake_messages_total.labels(channel="webhook", status=IntakeStatus.REJECTED.value).inc()
        return _rejected("Body is not valid JSON")

    try:
        message = EmailMessage.from_queue_payload(payload)
    except ValidationError as e:
        logger.warning(f"Rejected email webhook payload: {e.error_count()} validation errors")
        intake_messages_total.labels(channel="webhook", status=IntakeStatus.REJECTED.value).inc()
        return _rejected("Invalid email message")

    result = await gateway.accept_email(message, channel="webhook")
    return _respond(result)
