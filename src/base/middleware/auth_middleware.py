import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.base.middleware.request_context import set_request_context

logger = logging.getLogger(__name__)

# Paths that don’t require auth
WHITELIST = [
    "/",
    "/health",
    "/register",
    "/login",
    "/auth/google",
    "/docs",
    "/docs/oauth2-redirect",
    "/openapi.json",
    "/favicon.ico",
]


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware that authenticates every non-whitelisted HTTP request.

    Delegates the decision to the ``SessionAuthenticator`` on ``app.state``; on
    success the principal and the raw token are placed on ``request.state``.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        method = request.method

        if path in WHITELIST or method == "OPTIONS":
            logger.debug(f"Skipping auth for whitelisted path: {method} {path}")
            return await call_next(request)

        authenticator = request.app.state.authenticator
        outcome = await authenticator.authenticate(request.headers.get("authorization"))

        if not outcome.accepted:
            logger.warning(f"Rejected {method} {path}: {outcome.error.value}")
            return JSONResponse(
                status_code=outcome.error.status_code,
                content={"detail": outcome.error.message},
            )

        request.state.user = outcome.user
        request.state.token = outcome.token
        set_request_context("user_id", outcome.user.id)
        logger.debug(f"Authenticated {method} {path}")

        return await call_next(request)
