#!/usr/bin/env python3
"""
Error handlers for the web application.

Domain errors raised by the repository and pipeline are rendered with the
same JSON body as every other error: {success: false, error, type}.
"""

import logging
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

from core.errors import (
    MatchingError,
    MatchNotFoundError,
    EntityNotFoundError,
    InvalidStatusError,
    InvalidStatusTransitionError,
    CollaboratorUnavailableError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    ((MatchNotFoundError, EntityNotFoundError), 404),
    ((InvalidStatusTransitionError,), 409),
    ((InvalidStatusError,), 422),
    ((CollaboratorUnavailableError,), 503),
)


def status_code_for(exc: MatchingError) -> int:
    for types, status_code in _STATUS_CODES:
        if isinstance(exc, types):
            return status_code
    return 500


def _error_body(error, error_type: str) -> dict:
    return {
        "success": False,
        "error": error,
        "type": error_type
    }


async def matching_exception_handler(
    request: Request,
    exc: MatchingError
) -> JSONResponse:
    """
    Handle domain exceptions.

    Args:
        request: The FastAPI request.
        exc: The domain exception.

    Returns:
        JSONResponse with error details.
    """
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Service error in {request.url.path}: {exc}")
    else:
        logger.info(f"{exc.__class__.__name__} in {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content=_error_body(str(exc), exc.__class__.__name__)
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """
    Handle FastAPI HTTP exceptions with consistent format.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, "HTTPException")
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.
    """
    logger.exception(f"Unexpected error in {request.url.path}")

    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", "InternalError")
    )
