"""reststorage - REST-backed key/value storage with distributed locking."""

from .client import AsyncRestStorage, RestStorage
from .config import StorageConfig
from .exceptions import (
    RestStorageError,
    ValidationError,
    NetworkError,
    NotFoundError,
    UnknownStatusError,
    DecodeError,
    LockError,
    LockCancelledError,
    LockTimeoutError,
)
from .models import KeyInfo
from .storage import AsyncStorage, Storage

__version__ = "1.0.0"
__all__ = [
    "RestStorage",
    "AsyncRestStorage",
    "Storage",
    "AsyncStorage",
    "StorageConfig",
    "KeyInfo",
    "RestStorageError",
    "ValidationError",
    "NetworkError",
    "NotFoundError",
    "UnknownStatusError",
    "DecodeError",
    "LockError",
    "LockCancelledError",
    "LockTimeoutError",
]
