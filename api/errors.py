"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.errors import FieldOpsError, InvalidStateError

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_CODE = {
    ErrorCodes.CONFIG_NOT_FOUND: 404,
    ErrorCodes.NOT_FOUND: 404,
    ErrorCodes.FORBIDDEN: 403,
    ErrorCodes.INVALID_STATE: 409,
    ErrorCodes.ALREADY_CONVERTED: 409,
    ErrorCodes.STORAGE_UNAVAILABLE: 503,
}


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(FieldOpsError)
    async def domain_error_handler(request: Request, exc: FieldOpsError):
        status_code = HTTP_STATUS_BY_CODE.get(exc.code, 400)
        details = None
        if isinstance(exc, InvalidStateError) and exc.current_status is not None:
            details = {"current_status": exc.current_status}
        if status_code >= 500:
            logger.warning("%s: %s", exc.code, exc.message)
        return JSONResponse(
            status_code=status_code,
            content=error_response(exc.code, exc.message, details).model_dump(mode="json"),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return JSONResponse(
                status_code=404,
                content=error_response(ErrorCodes.NOT_FOUND, message).model_dump(mode="json"),
            )
        return JSONResponse(
            status_code=400,
            content=error_response(ErrorCodes.INVALID_REQUEST, message).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
            ).model_dump(mode="json"),
        )
