"""
Request correlation.

Every admin request gets an id (taken from a well-formed X-Request-ID header
or generated) that is stored in a ContextVar, attached to each log record by
CorrelationIdFilter and echoed in the response headers. CLI runs use
``correlation_scope`` to tag their log lines the same way.
"""

import logging
import re
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from admin_shared.config.logging import get_logger

logger = get_logger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Incoming ids are echoed back and logged, so only accept short opaque tokens
_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def get_request_id() -> str:
    """Current correlation id, or an empty string outside a request."""
    return request_id_var.get()


def new_request_id() -> str:
    return uuid.uuid4().hex


def accept_request_id(value: str | None) -> str:
    """The incoming id when it is well formed, a fresh one otherwise."""
    if value and _REQUEST_ID_PATTERN.fullmatch(value):
        return value
    return new_request_id()


@contextmanager
def correlation_scope(request_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation id for the duration of a block.

    Usage:
        with correlation_scope() as run_id:
            export_csv(service, params)
    """
    request_id = request_id or new_request_id()
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Bind a correlation id to each request and log its outcome.

    The id is available as ``request.state.request_id`` and returned in the
    X-Request-ID response header.
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = accept_request_id(request.headers.get(self.HEADER_NAME))
        started = time.perf_counter()

        with correlation_scope(request_id):
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id

            logger.debug(
                "Request handled",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            return response


class CorrelationIdFilter(logging.Filter):
    """
    Logging filter that stamps ``record.request_id`` ("-" when unset).

    Usage:
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True
