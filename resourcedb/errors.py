"""
Error types for ResourceDB.

This module defines every outcome a store operation can fail with:
- ResourceError: Base exception
- NotFoundError: Referenced id is not in the table
- InvalidArgumentError: Supplied fields failed validation
- DeadlineExceededError: Caller's deadline elapsed
- InternalError: Invariant violation inside the store
- ResourceConnectionError: HTTP client could not reach the server

Invariants:
    - All errors inherit from ResourceError
    - Every error carries a stable code and an HTTP status
    - Only DeadlineExceededError is retryable
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ResourceError(Exception):
    """Base exception for all ResourceDB errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    http_status = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "RESOURCE_ERROR"
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error body used by the HTTP surface."""
        return {
            "error": self.message,
            "error_code": self.code,
            "details": self.details,
        }


class NotFoundError(ResourceError):
    """Resource not found.

    Raised when the referenced id does not exist in the table at the
    time of the operation (including ids that were deleted).
    """

    http_status = 404

    def __init__(
        self,
        resource_id: int,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message or f"Resource {resource_id} not found",
            code="NOT_FOUND",
            details={"resource_id": resource_id},
        )
        self.resource_id = resource_id


class InvalidArgumentError(ResourceError):
    """Supplied fields failed validation.

    Raised when:
    - Fields are missing or not a mapping
    - A required attribute is missing
    - An attribute has the wrong type or value
    """

    http_status = 400

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="INVALID_ARGUMENT",
            details={"field": field_name, "errors": errors or []},
        )
        self.field_name = field_name
        self.errors = errors or []


class DeadlineExceededError(ResourceError):
    """The caller's deadline elapsed before or during the operation.

    Distinguished from the other errors so callers can retry on it alone.
    No state has been mutated when this is raised.
    """

    http_status = 504

    def __init__(
        self,
        operation: str,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message or f"Deadline exceeded during {operation}",
            code="DEADLINE_EXCEEDED",
            details={"operation": operation},
        )
        self.operation = operation


class InternalError(ResourceError):
    """Invariant violation, e.g. an id collision.

    Never raised under correct use; seeing one means the mutual-exclusion
    discipline is broken.
    """

    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INTERNAL")


class ResourceConnectionError(ResourceError):
    """Failed to reach a ResourceDB server.

    Raised by the HTTP client when the transport fails.
    """

    http_status = 503

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details={"address": address},
        )
        self.address = address


def is_retryable(error: BaseException) -> bool:
    """Whether a failed operation may be retried as-is."""
    return isinstance(error, DeadlineExceededError)


def error_from_dict(data: Dict[str, Any], status: int) -> ResourceError:
    """Rebuild a ResourceError from an HTTP error body.

    Args:
        data: Decoded JSON body with error, error_code and details
        status: HTTP status code of the response

    Returns:
        The matching ResourceError subclass instance
    """
    message = data.get("error") or f"HTTP {status}"
    code = data.get("error_code")
    details = data.get("details") or {}

    if code == "NOT_FOUND" or (code is None and status == 404):
        return NotFoundError(details.get("resource_id"), message=message)
    if code == "INVALID_ARGUMENT" or (code is None and status == 400):
        return InvalidArgumentError(
            message,
            field_name=details.get("field"),
            errors=details.get("errors"),
        )
    if code == "DEADLINE_EXCEEDED" or (code is None and status in (408, 504)):
        return DeadlineExceededError(details.get("operation", "request"), message=message)
    if code == "INTERNAL":
        return InternalError(message)
    return ResourceError(message, code=code, details=details)
