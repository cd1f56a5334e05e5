"""HTTP middleware: correlation id propagation and access logging."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .request_id import correlation_scope

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind X-Request-ID (or a new id) to every request and echo it back.

    Graph and the email webhook callers may send their own X-Request-ID;
    the same id then shows up on the queued message's intake log lines.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.monotonic()
        with correlation_scope(request.headers.get(REQUEST_ID_HEADER)) as request_id:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    f"{request.method} {request.url.path} failed: {e}",
                    extra={"duration_ms": _elapsed_ms(started)},
                    exc_info=True,
                )
                raise

            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={"status_code": response.status_code, "duration_ms": _elapsed_ms(started)},
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
