"""
Exception Hierarchy Module
==========================

Defines the custom exception hierarchy for the investigation engine.
All exceptions inherit from OsintForensicsBaseException for consistent handling.
"""

from typing import Any, Optional


class OsintForensicsBaseException(Exception):
    """
    Base exception for all investigation engine exceptions.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for programmatic handling
        details: Optional dictionary with additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Optional machine-readable error code
            details: Optional dictionary with additional context
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# -------------------
# Investigation Errors
# -------------------

class InvestigationError(OsintForensicsBaseException):
    """Base class for investigation lifecycle errors."""
    pass


class InvestigationBootstrapError(InvestigationError):
    """
    Raised when the investigation bootstrap rejects a query.

    No investigation is created; the session controller records the
    message as its top-level error.
    """
    pass


class InvalidTransitionError(InvestigationError):
    """Raised when a pipeline or investigation is asked for a transition its state forbids."""
    pass


# -------------------
# Stage Errors
# -------------------

class StageError(OsintForensicsBaseException):
    """
    Base class for stage-level failures.

    These never propagate past the executor: they are caught and recorded
    as the failing pipeline's error message.
    """
    pass


class UnknownPipelineError(StageError):
    """Raised when no stage runner is registered for a pipeline kind."""
    pass


class StageExecutionError(StageError):
    """Raised by a stage runner when its analysis fails."""
    pass


class StageTimeoutError(StageError):
    """Raised when a stage exceeds the query's timeout and timeouts are enforced."""
    pass


# -------------------
# Report Errors
# -------------------

class ReportError(OsintForensicsBaseException):
    """Base class for report-related errors."""
    pass


class ReportExportError(ReportError):
    """Raised when a report cannot be exported in the requested format."""
    pass
