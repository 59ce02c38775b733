"""reststorage exception classes."""


class RestStorageError(Exception):
    """Base exception for all reststorage errors."""
    pass


class ValidationError(RestStorageError):
    """Raised when the storage configuration is invalid."""
    pass


class NetworkError(RestStorageError):
    """Raised when the request could not be exchanged with the remote service."""
    pass


class NotFoundError(RestStorageError, FileNotFoundError):
    """Raised when the remote service reports that a key does not exist."""

    def __init__(self, key: str):
        super().__init__(f"Key '{key}' does not exist")
        self.key = key


class UnknownStatusError(RestStorageError):
    """Raised when the remote service answers with an unexpected status code."""

    def __init__(self, status_code: int, operation: str = None):
        message = f"Unknown status code received: {status_code}"
        if operation:
            message = f"{operation}: {message}"
        super().__init__(message)
        self.status_code = status_code
        self.operation = operation


class DecodeError(RestStorageError, ValueError):
    """Raised when a response body, value or timestamp cannot be decoded."""
    pass


class LockError(RestStorageError):
    """Raised when lock acquisition is abandoned."""
    pass


class LockCancelledError(LockError):
    """Raised when lock acquisition is cancelled by the caller."""

    def __init__(self, key: str):
        super().__init__(f"Locking key '{key}' was cancelled")
        self.key = key


class LockTimeoutError(LockError, TimeoutError):
    """Raised when a lock could not be acquired before the timeout elapsed."""

    def __init__(self, key: str, timeout: float):
        super().__init__(f"Timed out after {timeout}s waiting for lock on key '{key}'")
        self.key = key
        self.timeout = timeout
