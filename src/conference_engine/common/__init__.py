"""
Common utilities module
"""

from conference_engine.common.error_handlers import (
    DuplicateAssignmentError,
    ErrorResponse,
    GenerationMismatchError,
    NoPendingWorkError,
    NoReviewersAvailableError,
    NotFoundError,
    ResourceNotFoundError,
    ServiceError,
    StorageError,
    ValidationError,
    handle_service_error,
    safe_execute,
)

__all__ = [
    'DuplicateAssignmentError',
    'ErrorResponse',
    'GenerationMismatchError',
    'NoPendingWorkError',
    'NoReviewersAvailableError',
    'NotFoundError',
    'ResourceNotFoundError',
    'ServiceError',
    'StorageError',
    'ValidationError',
    'handle_service_error',
    'safe_execute',
]
