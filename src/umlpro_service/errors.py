"""Service error taxonomy.

Every error a request can end with is a ``ServiceError`` subclass carrying the
HTTP status it maps to. Validation, authentication, authorization and conflict
errors are raised before anything is mutated. ``ExternalEffectError`` and
``CompensationFailedError`` are only raised after a local mutation whose
external effect failed.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Malformed, missing or unsupported input."""

    status_code = 400


class AuthenticationError(ServiceError):
    """No identity, or a credential that does not verify."""

    status_code = 401


class AuthorizationError(ServiceError):
    """Identity present but not permitted to perform the action."""

    status_code = 403


PermissionDenied = AuthorizationError


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """A uniqueness constraint would be (or was) violated."""

    status_code = 409


class ExternalEffectError(ServiceError):
    """The external effect failed and the local mutation was reverted."""

    status_code = 500
    compensated = True


class CompensationFailedError(ServiceError):
    """The external effect failed and reverting the local mutation failed too.

    The stored record no longer matches what the caller was told, so this is
    logged at critical level and never retried.
    """

    status_code = 500
    compensated = False


class ExternalServiceError(Exception):
    """Raised by the mail and storage clients when the remote call fails."""
