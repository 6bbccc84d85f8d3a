import logging
import traceback

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.base.utils.env_utils import is_local_development

logger = logging.getLogger(__name__)


class GlobalExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    Turns unhandled exceptions into a ProblemDetails-style 500 response.
    The traceback is only included in local development.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as ex:
            return self._handle_exception(request, ex)

    def _handle_exception(self, request: Request, ex: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
            exc_info=ex,
        )

        content = {
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": request.url.path,
        }
        if is_local_development():
            content["title"] = ex.__class__.__name__
            content["detail"] = str(ex)
            content["trace"] = traceback.format_exc()

        return JSONResponse(content=content, status_code=500)
