"""
Typed failures raised by the stores and services.

Each error carries a stable caller-facing message and the HTTP status the API
layer maps it to. Internal details (SQL, tracebacks) are logged where the
error is raised and never placed in the message.
"""
from __future__ import annotations


class ServiceError(Exception):
    """Base class for every failure surfaced to callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Malformed input reached the core despite upstream validation."""

    status_code = 422


class UnauthorizedError(ServiceError):
    """Bad credentials or an invalid/expired access token."""

    status_code = 401


class NotFoundError(ServiceError):
    """A task is missing, owned by someone else, or no id was given."""

    status_code = 404


class ConflictError(ServiceError):
    """The username is already registered."""

    status_code = 409


class InternalError(ServiceError):
    """Unexpected persistence failure."""

    status_code = 500


class StoreUnavailableError(InternalError):
    """The store timed out or is locked; the caller may retry."""

    status_code = 503
