# nightowl/core/exceptions.py
from typing import Dict, Any, Optional
from fastapi import status


class BusinessException(Exception):
    """Base exception for business rule violations."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "business_error"

    def __init__(
        self, message: str, code: str = None, details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class ResourceNotFoundException(BusinessException):
    """Raised when an update targets a row that does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "resource_not_found"


class ValidationException(BusinessException):
    """Raised for invalid arguments such as non-positive XP amounts."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "validation_error"


class CapacityExceededException(BusinessException):
    """Raised when a user already holds the maximum number of active quests."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "capacity_exceeded"


class TransactionFailureException(BusinessException):
    """
    Raised when the store fails inside a unit of work.

    The whole unit of work has been rolled back when this is raised.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "transaction_failure"

