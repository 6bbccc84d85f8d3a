import logging
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.base.middleware.request_context import reset_request_context

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_HEADER = "x-correlation-id"

logger = logging.getLogger(__name__)


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Tags every request with a correlation ID, echoed back in the response headers."""

    async def dispatch(self, request: Request, call_next):
        value = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())

        correlation_id.set(value)
        reset_request_context()
        logger.debug("Handling %s %s", request.method, request.url.path)

        response: Response = await call_next(request)
        response.headers[CORRELATION_HEADER] = value
        return response


class CorrelationFilter(logging.Filter):
    """Logging filter to add correlation ID to log records."""

    def filter(self, record):
        record.correlation_id = correlation_id.get("")
        return True
