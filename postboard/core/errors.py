"""Typed outcomes raised by the repository layer.

Routers translate them to HTTP status codes through ``status_code``; nothing
below the adapter knows about transport.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base class for repository failures."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(RepositoryError):
    """Raised when an id or email lookup misses."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, key: object | None = None):
        message = f"{resource} not found" if key is None else f"{resource} {key} not found"
        super().__init__(message)
        self.resource = resource
        self.key = key


class ConflictError(RepositoryError):
    """Raised when a unique field (account email) is already taken."""

    code = "CONFLICT"
    status_code = 409


class ValidationError(RepositoryError):
    """Raised when a field is outside its allowed shape or range."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class StorageError(RepositoryError):
    """I/O failure or malformed durable document. Never retried here."""

    code = "STORAGE_ERROR"
