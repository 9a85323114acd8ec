"""
Domain errors raised by the services and the record store.

Each error carries the HTTP status the API layer answers with,
so routes never translate errors by hand.
"""


class QuickURLError(Exception):
    """Base class for all QuickURL errors."""

    status_code = 500

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)
        self.message = message


class ValidationError(QuickURLError):
    """Raised when client input is malformed (e.g. unsupported URL scheme)."""

    status_code = 400


class NotFoundError(QuickURLError):
    """Raised when no record exists for a token."""

    status_code = 404


class GoneError(QuickURLError):
    """Raised when a record exists but has expired."""

    status_code = 410


class StoreError(QuickURLError):
    """Raised when the underlying persistence layer fails."""

    status_code = 500


class ConflictError(StoreError):
    """Raised when an insert violates token (or id) uniqueness."""
