"""Correlation IDs for log lines.

One id follows an email through the system: the X-Request-ID of the
webhook call that queued it, then the message id while the worker
processes it. The id lives in a ContextVar, so concurrent requests and
tasks never see each other's value.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_REQUEST_ID = "no-request-id"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Current correlation id, or "no-request-id" outside any scope."""
    return request_id_var.get() or NO_REQUEST_ID


def set_request_id(request_id: Optional[str]) -> None:
    request_id_var.set(request_id)


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation id for the duration of a block.

    A fresh id is generated when none is given. The previous value is
    restored on exit, so scopes nest.

    Usage:
        with correlation_scope(message.message_id):
            processor.process(message)
    """
    bound = correlation_id or generate_request_id()
    token = request_id_var.set(bound)
    try:
        yield bound
    finally:
        request_id_var.reset(token)
