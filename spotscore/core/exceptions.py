"""Custom exception classes for the scoring engine.

Three failure categories exist. Signal-unavailable failures stay
inside the gateway (``GatewayException``). Spot-level failures are
ordinary exceptions caught at the batch boundary. Fatal failures
(``SpotNotFoundException``, ``DatabaseException``) abort the job.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class FatalException(AppException):
    """Errors after which no partial result is meaningful."""


class NotFoundException(FatalException):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details=details)


class SpotNotFoundException(NotFoundException):
    """Raised when a spot id does not exist."""

    def __init__(self, spot_id: str) -> None:
        super().__init__(
            message=f"Spot {spot_id} not found",
            details={"spot_id": spot_id},
        )
        self.spot_id = spot_id


class DatabaseException(FatalException):
    """Raised when a database operation fails."""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details=details)


class GatewayException(AppException):
    """Raised by an upstream client on a bad status or malformed payload.

    Never propagates past a gateway boundary; see
    ``spotscore.gateway.base.degrade_to``.
    """

    def __init__(
        self,
        source: str,
        message: str = "Upstream data source unavailable",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details={"source": source, **(details or {})})
        self.source = source
