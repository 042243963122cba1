# SPDX-License-Identifier: MIT
"""Map registry errors onto HTTP responses."""

import logging

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..errors import ErrorCode, RegistryError

logger = logging.getLogger(__name__)

# HTTP status codes for each error
ERROR_STATUS_CODES = {
    ErrorCode.VALIDATION_FAILED: 400,
    ErrorCode.DUPLICATE_TITLE: 400,
    ErrorCode.BAD_VERSION: 400,
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.NOT_AUTHORIZED: 403,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.UNKNOWN_EXTENSION: 404,
    ErrorCode.NOT_CONFIGURED: 500,
    ErrorCode.UNREADABLE_REGISTRY: 500,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.REGISTRY_NOT_LOADED: 503,
}


def status_code_for(exc: RegistryError) -> int:
    """Get HTTP status code for a registry error."""
    return ERROR_STATUS_CODES.get(exc.code, 500)


async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    """Handle RegistryError exceptions."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=exc.to_response())


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle storage transport failures (disk, S3) that reach a route."""
    logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "The registry storage could not complete the request",
            }
        },
    )


def add_error_handlers(app: FastAPI) -> None:
    """Register error handlers with the FastAPI application."""
    app.add_exception_handler(RegistryError, registry_error_handler)
    for exc_class in (OSError, BotoCoreError, ClientError):
        app.add_exception_handler(exc_class, storage_error_handler)
