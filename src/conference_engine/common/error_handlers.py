"""
Common error handling utilities
"""

import logging
from typing import Any

from fastapi import HTTPException, status
from pydantic import BaseModel

from conference_engine.models import Severity

logger = logging.getLogger(__name__)


class ErrorDetail(BaseModel):
    """Error detail model"""

    code: str
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standardized error response model"""

    error: ErrorDetail

    @classmethod
    def create(
        cls, code: str, message: str, details: dict[str, Any] | None = None
    ) -> "ErrorResponse":
        """Create a standardized error response"""
        return cls(error=ErrorDetail(code=code, message=message, details=details))


class ServiceError(Exception):
    """Base exception for engine errors"""

    severity = Severity.ERROR

    def __init__(self, message: str, error_code: str | None = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class ResourceNotFoundError(ServiceError):
    """Raised when a referenced event, submission, session or assignment is absent"""

    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} with ID {resource_id} not found"
        super().__init__(message, "RESOURCE_NOT_FOUND")


NotFoundError = ResourceNotFoundError


class NoReviewersAvailableError(ServiceError):
    """Raised when an event has no active reviewers"""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(
            f"No active reviewers available for event {event_id}",
            "NO_REVIEWERS_AVAILABLE",
        )


class NoPendingWorkError(ServiceError):
    """Raised when an event has no pending submissions to distribute"""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(
            f"No pending submissions to assign for event {event_id}",
            "NO_PENDING_WORK",
        )


class DuplicateAssignmentError(ServiceError):
    """Raised when a submission already has a manual assignment"""

    def __init__(self, submission_id: str, assignment_id: str):
        self.submission_id = submission_id
        self.assignment_id = assignment_id
        super().__init__(
            f"Submission {submission_id} already has a manual assignment ({assignment_id})",
            "DUPLICATE_ASSIGNMENT",
        )


class ValidationError(ServiceError):
    """Raised when validation fails"""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message, "VALIDATION_ERROR")


class GenerationMismatchError(ServiceError):
    """Raised when a destructive run was requested against a stale generation"""

    def __init__(self, event_id: str, kind: str, expected: int, actual: int):
        self.event_id = event_id
        self.kind = kind
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{kind} generation for event {event_id} is {actual}, expected {expected}",
            "GENERATION_MISMATCH",
        )


class StorageError(ServiceError):
    """Raised when the backing store rejects an operation"""

    def __init__(self, message: str):
        super().__init__(message, "STORAGE_ERROR")


def safe_execute(session, operation, rollback_on_error: bool = True):
    """Safely execute database operations with error handling"""
    try:
        result = operation()
        session.commit()
        return result
    except Exception as e:
        if rollback_on_error:
            session.rollback()

        logger.error(f"Database operation failed: {e}")
        raise StorageError(f"Database operation failed: {str(e)}") from e


_STATUS_BY_ERROR: list[tuple[type[ServiceError], int]] = [
    (ResourceNotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateAssignmentError, status.HTTP_409_CONFLICT),
    (GenerationMismatchError, status.HTTP_409_CONFLICT),
    (NoReviewersAvailableError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (NoPendingWorkError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def handle_service_error(error: Exception) -> HTTPException:
    """Convert engine errors to HTTP exceptions with standardized format"""
    if isinstance(error, ServiceError):
        status_code = next(
            (code for cls, code in _STATUS_BY_ERROR if isinstance(error, cls)),
            status.HTTP_400_BAD_REQUEST,
        )
        details = {"field": error.field} if getattr(error, "field", None) else {}
        return HTTPException(
            status_code=status_code,
            detail=ErrorResponse.create(
                code=error.error_code or "SERVICE_ERROR",
                message=error.message,
                details=details,
            ).model_dump(),
        )

    logger.error(f"Unhandled service error: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=ErrorResponse.create(
            code="INTERNAL_SERVER_ERROR",
            message="Internal server error",
            details={"error_type": type(error).__name__},
        ).model_dump(),
    )
