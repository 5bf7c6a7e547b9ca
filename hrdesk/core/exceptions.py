"""Exception taxonomy and FastAPI exception handlers."""

from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from hrdesk.core.logging import get_logger, request_context

logger = get_logger(__name__)


class HRDeskException(Exception):
    """Base exception for HRDesk."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = "E5000",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(HRDeskException):
    """No valid session."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, code="E2000")


class AuthorizationError(HRDeskException):
    """Role or ownership check failed."""

    def __init__(self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message, status_code=status.HTTP_403_FORBIDDEN, code="E2001", details=details
        )


class InvalidInputError(HRDeskException):
    """Input failed validation."""

    def __init__(self, message: str = "Invalid input", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="E4220",
            details=details,
        )


class HistoryValidationError(InvalidInputError):
    """Stored conversation history no longer matches the message schema."""

    def __init__(self, message: str = "Stored history is invalid", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class NotFoundError(HRDeskException):
    """Resource not found."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, code="E4040")


class PersistenceError(HRDeskException):
    """The store rejected or failed a write."""

    def __init__(self, message: str = "Persistence failure", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="E5030",
            details=details,
        )


class AuditWriteFailure(HRDeskException):
    """An audit entry could not be written. Logged, never surfaced to callers."""

    def __init__(self, message: str = "Audit write failed"):
        super().__init__(message, code="E5002")


class ExecutionContextError(HRDeskException):
    """A tool ran without a bound execution context."""

    def __init__(self, message: str = "No execution context bound"):
        super().__init__(message, code="E5001")


class ProviderError(HRDeskException):
    """Generation provider error."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(
            message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            code="E3000",
            details={"provider": provider} if provider else {},
        )


def _request_id() -> Optional[str]:
    ctx = request_context.get()
    return ctx.get("request_id") if ctx else None


def error_body(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    """Build the JSON error envelope shared by every handler."""
    return {
        "detail": message,
        "error": {
            "code": code,
            "message": message,
            "request_id": _request_id(),
        },
        **extra,
    }


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(HRDeskException)
    async def hrdesk_exception_handler(request: Request, exc: HRDeskException) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"HRDesk error: {exc.message}",
            data={"status_code": exc.status_code, "code": exc.code, "details": exc.details},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, **exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        logger.warning("Request validation error", data={"errors": errors})
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body("E4220", "Validation error", errors=errors),
        )

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
        errors = exc.errors(include_url=False, include_context=False)
        logger.warning("Validation error", data={"errors": errors})
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body("E4220", "Validation error", errors=errors),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(f"E{exc.status_code}0", exc.detail),
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("E5000", "Internal server error"),
        )
