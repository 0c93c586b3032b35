"""Application error taxonomy and its mapping onto HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.logging import get_logger


logger = get_logger(__name__)


class AppError(Exception):
    """Base class for errors that are rendered as JSON error responses."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Missing or malformed request fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "validation_error"


class NotInitialized(AppError):
    """A store operation that needs prior state ran against a fresh session."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "not_initialized"


class StorageFailure(AppError):
    kind = "storage_failure"


class InferenceFailure(AppError):
    kind = "inference_failure"


class RunNotFound(AppError):
    """Raised by the orchestrator for unknown run ids; reported as a status, not an HTTP error."""

    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, kind=exc.kind, error=exc.message)
    else:
        logger.info("request_rejected", path=request.url.path, kind=exc.kind, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "message": exc.message},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies are reported the same way as missing fields
    return await app_error_handler(request, ValidationError(f"Invalid request: {exc.errors()}"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
