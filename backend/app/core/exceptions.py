"""
Domain errors and safe HTTP error factories.

Workflow services raise PharmacyError subclasses; they carry the HTTP status
the API maps them to. Routes use BusinessError for request-level failures.
Internal details are logged, never returned to the client outside DEBUG.
"""
from typing import List, Optional
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class PharmacyError(Exception):
    """Base for errors raised inside workflow services."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class NotFoundError(PharmacyError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidStateError(PharmacyError):
    """Workflow precondition failed, e.g. dispensing a pending prescription."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransitionError(PharmacyError):
    """Reorder request is not in a status the requested transition starts from."""

    status_code = status.HTTP_409_CONFLICT


class InsufficientStockError(PharmacyError):
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(PharmacyError):
    """The row changed between read and write."""

    status_code = status.HTTP_409_CONFLICT


class BusinessError:
    """Request-level HTTP errors with non-leaky messages."""

    @staticmethod
    def unauthorized(detail: str, reason: str = "") -> HTTPException:
        """401 for every authentication failure. Reason is logged only."""
        logger.warning(f"Unauthorized access attempt: {reason or detail}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @staticmethod
    def forbidden(
        detail: str = "You do not have permission to access this resource.",
        reason: str = "",
    ) -> HTTPException:
        logger.warning(f"Forbidden access: {reason or detail}")
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """400 for input errors the caller can fix; the detail is returned as-is."""
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

