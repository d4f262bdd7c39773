"""
Domain error taxonomy and severity-aware error logging.

Store and policy code raise these; the HTTP boundary maps each one to a
status code through ``status_code`` and reports the ``kind`` to clients.
"""
from enum import Enum
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

class ErrorSeverity(Enum):
    """Error severity levels for log routing."""
    LOW = "low"           # 404s, validation errors, expected failures
    MEDIUM = "medium"     # unexpected 500s, recoverable errors
    HIGH = "high"         # auth failures, storage faults
    CRITICAL = "critical" # service down, data loss


class AppError(Exception):
    """Base class for every error the API reports to clients."""

    status_code: int = 500
    kind: str = "Error"
    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error": self.kind}


class NotFoundError(AppError):
    status_code = 404
    kind = "NotFound"
    severity = ErrorSeverity.LOW


class ConflictError(AppError):
    """Overlapping booking for the same therapy and date."""
    status_code = 400
    kind = "Conflict"
    severity = ErrorSeverity.LOW


class BadRequestError(AppError):
    status_code = 400
    kind = "BadRequest"
    severity = ErrorSeverity.LOW


class ForbiddenError(AppError):
    status_code = 403
    kind = "Forbidden"
    severity = ErrorSeverity.HIGH


class UnauthorizedError(AppError):
    status_code = 401
    kind = "Unauthorized"
    severity = ErrorSeverity.HIGH


class StorageError(AppError):
    """Persistence fault not otherwise classified."""
    status_code = 500
    kind = "StorageError"
    severity = ErrorSeverity.HIGH


class ConfigurationError(AppError):
    """Server-side misconfiguration, e.g. a missing signing secret."""
    status_code = 500
    kind = "ConfigurationError"
    severity = ErrorSeverity.CRITICAL


def determine_severity(error: Exception) -> ErrorSeverity:
    """Severity for an arbitrary exception; AppErrors carry their own."""
    if isinstance(error, AppError):
        return error.severity
    if "timeout" in str(error).lower():
        return ErrorSeverity.MEDIUM
    return ErrorSeverity.HIGH


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              severity: Optional[ErrorSeverity] = None) -> ErrorSeverity:
    """Log an error once, at a level matching its severity."""
    context = dict(context or {})
    if isinstance(error, AppError):
        for key, value in error.context.items():
            context.setdefault(key, value)

    if severity is None:
        severity = determine_severity(error)

    event = dict(
        error_type=type(error).__name__,
        error=str(error),
        severity=severity.value,
        **context,
    )
    if severity is ErrorSeverity.LOW:
        logger.info("handled_error", **event)
    elif severity is ErrorSeverity.MEDIUM:
        logger.warning("handled_error", **event)
    elif severity is ErrorSeverity.CRITICAL:
        logger.critical("handled_error", **event)
    else:
        logger.error("handled_error", **event)

    return severity
