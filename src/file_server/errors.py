"""Error taxonomy for the file registry and the FastAPI handlers that render it."""

import logging
from typing import Any, Dict, Optional

import pydantic
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class FileRegistryError(Exception):
    """Base class for classified registry failures.

    ``status_code`` and ``code`` let the HTTP layer render a failure without
    knowing which operation raised it.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "FILE_REGISTRY_ERROR"

    def __init__(self, message: str, *, owner_id: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.owner_id = owner_id
        self.key = key


class InvalidNameError(FileRegistryError):
    """The caller-supplied file name has no usable characters."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_NAME"


class FileRecordNotFoundError(FileRegistryError):
    """No metadata record exists for the requested file."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ContentNotFoundError(FileRegistryError):
    """A metadata record exists but the content store has no blob for it."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "CONTENT_NOT_FOUND"


class OwnerNotResolvedError(FileRegistryError):
    """The request carries no principal and no default owner is configured."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "OWNER_NOT_RESOLVED"


class StoreUnavailableError(FileRegistryError):
    """A backing store could not complete the request."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_UNAVAILABLE"


class MetadataUnavailableError(StoreUnavailableError):
    code = "METADATA_UNAVAILABLE"


class ContentUnavailableError(StoreUnavailableError):
    code = "CONTENT_UNAVAILABLE"


def error_body(message: str, code: str, details: Optional[Any] = None) -> Dict[str, Any]:
    """Uniform JSON error payload."""
    error: Dict[str, Any] = {"message": message, "code": code}
    if details is not None:
        error["details"] = details
    return {"error": error}


async def handle_file_registry_errors(request: Request, exc: FileRegistryError) -> JSONResponse:
    """Render a classified registry failure.

    Store outages were already logged with context by the adapter that raised
    them, so only a short line is added here.
    """
    if isinstance(exc, StoreUnavailableError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.code),
    )


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    errors = exc.errors()
    return JSONResponse(
        status_code=422,
        content=error_body(
            "Request validation failed",
            "VALIDATION_ERROR",
            details=[{"msg": error["msg"], "input": str(error.get("input"))} for error in errors],
        ),
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Turn any unhandled exception into a logged 500."""
    try:
        return await call_next(request)
    except Exception:
        logger.exception(f"Unhandled error during {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Internal server error", "INTERNAL_ERROR"),
        )
