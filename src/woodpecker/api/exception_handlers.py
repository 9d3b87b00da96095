"""
Exception handlers for the FastAPI application.

Every error leaves the API as ``{"error": {"code", "message", "details"?}}``.
"""
import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from woodpecker.exceptions import ErrorCode, WoodpeckerError

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    details: Dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    content: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details:
        content["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def woodpecker_error_handler(request: Request, exc: WoodpeckerError) -> JSONResponse:
    """Handle all WoodpeckerError exceptions."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc!r}")
    return create_error_response(
        status_code=exc.status_code,
        code=exc.code.value,
        message=exc.message,
        details=exc.details if exc.details else None,
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle malformed request bodies and parameters."""
    errors = []
    for error in exc.errors():
        # Drop the leading "body"/"path"/"query" segment
        loc = ".".join(str(x) for x in error["loc"][1:]) or str(error["loc"][0])
        errors.append({
            "field": loc,
            "message": error["msg"],
            "type": error["type"],
        })

    return create_error_response(
        status_code=400,
        code=ErrorCode.VALIDATION_ERROR.value,
        message="Request validation failed",
        details={"errors": errors},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return create_error_response(
        status_code=500,
        code=ErrorCode.INTERNAL_ERROR.value,
        message="An unexpected error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(WoodpeckerError, woodpecker_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    # Catches everything else, so it goes last
    app.add_exception_handler(Exception, generic_exception_handler)
