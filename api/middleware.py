"""Request-scoped middleware for API requests."""

import logging
from typing import Callable
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from utils.user_context import Caller, set_current_caller, clear_current_caller

logger = logging.getLogger(__name__)

CallerResolver = Callable[[str], Caller | None]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class CallerMiddleware(BaseHTTPMiddleware):
    """Middleware that resolves the caller and sets caller context.

    For protected routes:
    1. Extracts the token from the 'session_token' cookie or a Bearer header
    2. Resolves it to a Caller (user, company, role) via the injected resolver
    3. Sets the caller in request.state and caller context (for RLS)
    4. Clears context after request completes

    Public paths bypass resolution entirely.
    """

    PUBLIC_PATHS = [
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, resolve_caller: CallerResolver):
        super().__init__(app)
        self._resolve_caller = resolve_caller

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path):
                return True
        return False

    @staticmethod
    def _extract_token(request: Request) -> str | None:
        token = request.cookies.get("session_token")
        if token:
            return token
        authorization = request.headers.get("authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
        return None

    def _unauthenticated(self) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=error_response(
                ErrorCodes.NOT_AUTHENTICATED,
                "Authentication required",
            ).model_dump(mode="json"),
        )

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        if self._is_public_path(request.url.path):
            return await call_next(request)

        token = self._extract_token(request)
        if not token:
            return self._unauthenticated()

        caller = self._resolve_caller(token)
        if caller is None:
            logger.info("Rejected unknown token for %s", request.url.path)
            return self._unauthenticated()

        set_current_caller(caller)
        request.state.caller = caller

        try:
            return await call_next(request)
        finally:
            clear_current_caller()
