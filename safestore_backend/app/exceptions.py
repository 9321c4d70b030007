"""Errors raised by the storage pipeline.

Each error carries the HTTP status it is reported with; ``main`` turns
them into ``{"success": false, "error": ...}`` responses.
"""


class SafeStoreError(Exception):
    """Base class for every error the storage pipeline reports to clients."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(SafeStoreError):
    """Malformed or missing input. Raised before any filesystem access."""

    status_code = 400


class SizeLimitExceeded(SafeStoreError):
    """Raised when an upload is larger than the configured maximum."""

    status_code = 400

    def __init__(self, limit_bytes: int) -> None:
        self.limit_bytes = limit_bytes
        super().__init__(f"File size exceeds maximum limit of {limit_bytes} bytes")


class NotFoundError(SafeStoreError):
    status_code = 404


class StorageWriteError(SafeStoreError):
    pass


class StorageReadError(SafeStoreError):
    pass


class DecryptionError(SafeStoreError):
    """Ciphertext, padding or key mismatch."""
