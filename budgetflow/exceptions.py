from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Payload is malformed or out of range for the requested action."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class PermissionDeniedError(AppError):
    """Actor's role, stage, ministry or ownership does not allow the action."""

    def __init__(self, message: str = "Not permitted to perform this action") -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class InvalidTransitionError(AppError):
    """The action is not a legal edge from the request's current status."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class ConflictError(AppError):
    """The supplied version is stale; re-read and retry."""

    def __init__(self, message: str = "Request was modified concurrently; reload and retry") -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class NotFoundError(AppError):
    """Unknown id, or an id owned by an organization the actor does not belong to."""

    def __init__(self, message: str = "Request not found") -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class PersistenceError(AppError):
    """The store failed or timed out. Retry the whole operation."""

    def __init__(self, message: str = "Storage temporarily unavailable; retry the operation") -> None:
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class LedgerInvariantError(AppError):
    """A ledger adjustment would drive a counter below zero."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
