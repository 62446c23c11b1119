"""Exception handler middleware for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import GistStoreException

logger = logging.getLogger(__name__)


async def gist_store_exception_handler(request: Request, exc: GistStoreException) -> JSONResponse:
    """
    Handle custom exceptions and return structured JSON responses.

    Not-found and validation outcomes are expected and logged quietly;
    storage failures are logged as errors.

    Args:
        request: FastAPI request object
        exc: GistStoreException instance

    Returns:
        JSONResponse with error details
    """
    extra = {
        "error_code": exc.error_code.value,
        "path": request.url.path,
        "method": request.method,
        "details": exc.details,
        "status_code": exc.status_code,
    }
    if exc.status_code >= 500:
        logger.error(f"GistStoreException: {exc.error_code.value}", extra=extra)
    elif exc.status_code == 404:
        logger.info(f"GistStoreException: {exc.error_code.value}", extra=extra)
    else:
        logger.warning(f"GistStoreException: {exc.error_code.value}", extra=extra)

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
