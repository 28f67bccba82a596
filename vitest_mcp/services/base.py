"""
Result and error types shared by the services.

Services validate their input into a ``ServiceResult`` instead of raising,
so the orchestrators can turn any failure into a well-formed tool result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Error codes reported to the agent as ``errorCode``."""
    # Input validation
    VALIDATION_ERROR = "validation_error"
    MISSING_INPUT = "missing_input"
    PROJECT_ROOT_NOT_SET = "project_root_not_set"

    # File operations
    FILE_NOT_FOUND = "file_not_found"
    ACCESS_DENIED = "access_denied"

    # Execution
    EXECUTION_ERROR = "execution_error"
    TIMEOUT_ERROR = "timeout_error"
    PARSE_ERROR = "parse_error"

    # General
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class ServiceError:
    """Why a service call failed; ``details`` is extra context for the response."""
    code: ErrorCode
    message: str
    details: dict | None = None


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """
    Either ``data`` (success) or ``error`` (failure), never both.

        resolved = resolver.resolve(target)
        if not resolved.success:
            return StructuredTestResult.failure(resolved.error.message, resolved.error.code.value)
    """
    success: bool
    data: T | None = None
    error: ServiceError | None = None

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: ErrorCode, message: str, details: dict | None = None) -> ServiceResult[T]:
        return cls(success=False, error=ServiceError(code=code, message=message, details=details))
