from contextvars import ContextVar
import logging

# Request-scoped properties copied onto every log record.
# Middlewares call set_request_context("user_id", ...) once the value is known.
request_context: ContextVar[dict[str, str] | None] = ContextVar(
    "request_context", default=None
)


def set_request_context(key: str, value: str) -> None:
    """Set a key in the request context. Creates a new dict if needed."""
    ctx = request_context.get(None)
    if ctx is None:
        ctx = {}
        request_context.set(ctx)
    ctx[key] = value


def reset_request_context() -> None:
    """Drop all request properties. Called at the start of each request."""
    request_context.set(None)


class RequestContextFilter(logging.Filter):
    """Logging filter that adds all request context properties to log records."""

    def filter(self, record):
        ctx = request_context.get(None)
        if ctx:
            for key, value in ctx.items():
                setattr(record, key, value)
        return True
