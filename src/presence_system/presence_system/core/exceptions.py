class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidStatusError(ValidationError):
    """Raised when a status is outside present/absent/late."""


class NotFoundError(DomainError):
    """Raised when an employee, device or event reference cannot be resolved."""


class StorageError(DomainError):
    """Raised when the underlying store fails (connection lost, bad query, ...)."""
