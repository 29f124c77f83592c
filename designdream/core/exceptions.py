"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


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


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class InvalidConfigException(ConfigurationException):
    """Malformed business-hours, threshold or severity configuration."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class DuplicateActiveSLAException(DomainException):
    """Raised when a request already has an active or paused SLA record."""

    def __init__(self, request_id: str, existing_id: Optional[str] = None):
        self.request_id = request_id
        self.existing_id = existing_id
        super().__init__(
            f"Request {request_id} already has an open SLA record",
            {"request_id": request_id, "existing_sla_id": existing_id}
        )


class InvalidTransitionException(DomainException):
    """Raised when an operation is not legal from the record's current status."""

    def __init__(self, sla_id: str, operation: str, current_status: str):
        self.sla_id = sla_id
        self.operation = operation
        self.current_status = current_status
        super().__init__(
            f"Cannot {operation} SLA {sla_id} while it is {current_status}",
            {"sla_id": sla_id, "operation": operation, "status": current_status}
        )


class AlreadyTerminalException(DomainException):
    """Raised for any transition attempted on a met or violated record."""

    def __init__(self, sla_id: str, operation: str, current_status: str):
        self.sla_id = sla_id
        self.operation = operation
        self.current_status = current_status
        super().__init__(
            f"SLA {sla_id} is already {current_status}; cannot {operation}",
            {"sla_id": sla_id, "operation": operation, "status": current_status}
        )


class ConcurrentModificationException(RepositoryException):
    """Raised when a compare-and-swap update finds a newer version stored."""

    def __init__(self, sla_id: str, expected_version: int):
        self.sla_id = sla_id
        self.expected_version = expected_version
        super().__init__(
            f"SLA {sla_id} was modified concurrently",
            {"sla_id": sla_id, "expected_version": expected_version}
        )
