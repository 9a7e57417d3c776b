"""
Typed error kinds raised by the deal engine.

Every error carries a stable machine-readable ``code`` and the HTTP status
it maps to, so callers branch on the exception class instead of matching
message strings.
"""

import logging
from typing import Any, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)

# Name of the PostgreSQL exclusion constraint on availability_windows
AVAILABILITY_EXCLUSION_CONSTRAINT = "ex_availability_windows_no_overlap"

# SQLSTATE codes for transient failures: serialization, deadlock, lock timeout
TRANSIENT_SQLSTATES = {"40001", "40P01", "55P03"}


class DealEngineError(Exception):
    """Base class for all engine errors."""

    code = "DEAL_ENGINE_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        error = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return error


class ValidationError(DealEngineError):
    """Malformed or missing input, or a broken record invariant."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(DealEngineError):
    """Referenced property or deal does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(DealEngineError):
    """Availability overlap, or an operation the record's kind does not allow."""

    code = "CONFLICT"
    status_code = 409


class TransactionFailure(DealEngineError):
    """
    Storage-layer abort such as a serialization failure.

    Nothing was committed, so retrying the whole operation is safe.
    """

    code = "TRANSACTION_FAILURE"
    status_code = 503


class StorageFailure(DealEngineError):
    """I/O error unrelated to business rules."""

    code = "STORAGE_FAILURE"
    status_code = 500


class AuthenticationError(DealEngineError):
    """Missing bearer token. Raised before the engine runs."""

    code = "TOKEN_REQUIRED"
    status_code = 401


class InvalidTokenError(AuthenticationError):
    """Bearer token does not verify or has expired."""

    code = "INVALID_TOKEN"
    status_code = 403


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    return None


def translate_db_error(exc: SQLAlchemyError) -> DealEngineError:
    """Map a SQLAlchemy error onto the engine's error kinds."""
    text = str(exc).lower()

    if isinstance(exc, IntegrityError):
        if AVAILABILITY_EXCLUSION_CONSTRAINT in text:
            return ConflictError(
                "Property is already committed for an overlapping window",
                code="AVAILABILITY_CONFLICT",
            )
        if "availability_locks" in text:
            return TransactionFailure("Concurrent reservation in progress, retry the request")

    if isinstance(exc, DBAPIError):
        if _sqlstate(exc) in TRANSIENT_SQLSTATES:
            return TransactionFailure("Transaction aborted by a concurrent write, retry the request")
        # SQLite reports lock contention as an OperationalError
        if "database is locked" in text or "could not serialize" in text:
            return TransactionFailure("Transaction aborted by a concurrent write, retry the request")

    logger.exception(f"Storage failure: {exc.__class__.__name__}")
    return StorageFailure("Storage layer failed to complete the request")
