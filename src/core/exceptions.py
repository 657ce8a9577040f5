"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. Every exception carries a
``details`` dict so callers can log it as structured data.
"""

from typing import Any, List, Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConcurrencyConflictException(RepositoryException):
    """
    Raised when a record was modified since it was read.

    The sweep and user actions both read-modify-write the same work order;
    the loser of that race gets this error and must re-read.
    """

    def __init__(
        self,
        resource_id: str,
        expected_version: int,
        actual_version: int
    ):
        self.resource_id = resource_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict on '{resource_id}': expected {expected_version}, found {actual_version}",
            {
                "resource_id": resource_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            }
        )


class InvalidTransitionException(DomainException):
    """
    Raised when an action is not permitted from the current status.

    Not retryable. ``allowed_actions`` lets the caller tell the user what
    they can do instead.
    """

    def __init__(
        self,
        action: Any,
        status: Any,
        allowed_actions: List[Any],
        message: Optional[str] = None
    ):
        self.action = _raw(action)
        self.status = _raw(status)
        self.allowed_actions = [_raw(a) for a in allowed_actions]
        if message is None:
            allowed = ", ".join(self.allowed_actions) if self.allowed_actions else "none"
            message = (
                f"Action '{self.action}' is not allowed when status is '{self.status}'. "
                f"Allowed actions: {allowed}"
            )
        super().__init__(
            message,
            {
                "action": self.action,
                "status": self.status,
                "allowed_actions": self.allowed_actions,
            }
        )


class UnknownEnumValueException(ValidationException):
    """Raised when a lookup receives a priority, type or status it does not know."""

    def __init__(self, enum_name: str, value: Any):
        self.enum_name = enum_name
        self.value = value
        super().__init__(
            f"Unknown {enum_name} value: {value!r}",
            {"enum": enum_name, "value": repr(value)}
        )


def _raw(value: Any) -> Any:
    return getattr(value, "value", value)
