"""Core module: logging, exceptions, middleware."""

from hrdesk.core.exceptions import (
    AuditWriteFailure,
    AuthenticationError,
    AuthorizationError,
    ExecutionContextError,
    HistoryValidationError,
    HRDeskException,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    ProviderError,
    setup_exception_handlers,
)
from hrdesk.core.logging import get_logger, setup_logging
from hrdesk.core.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)

__all__ = [
    "AuditWriteFailure",
    "AuthenticationError",
    "AuthorizationError",
    "ExecutionContextError",
    "HistoryValidationError",
    "HRDeskException",
    "InvalidInputError",
    "NotFoundError",
    "PersistenceError",
    "ProviderError",
    "RequestContextMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
    "get_logger",
    "setup_exception_handlers",
    "setup_logging",
]
