"""Storage capability sets expected by the certificate-management layer."""

from abc import ABC, abstractmethod
from typing import List

from .models import KeyInfo


class Storage(ABC):
    """Blocking key/value storage with cross-instance locking."""

    @abstractmethod
    def lock(self, key: str) -> None:
        """Block until the lock for ``key`` is held."""

    @abstractmethod
    def unlock(self, key: str) -> None:
        """Release the lock for ``key``."""

    @abstractmethod
    def store(self, key: str, value: bytes) -> None:
        """Create or overwrite ``key``."""

    @abstractmethod
    def load(self, key: str) -> bytes:
        """Return the value of ``key``; raises ``NotFoundError`` if absent."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete ``key``; raises ``NotFoundError`` if absent."""

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def list(self, prefix: str, recursive: bool) -> List[str]: ...

    @abstractmethod
    def stat(self, key: str) -> KeyInfo: ...


class AsyncStorage(ABC):
    """Cooperative counterpart of :class:`Storage`."""

    @abstractmethod
    async def lock(self, key: str) -> None:
        """Wait until the lock for ``key`` is held."""

    @abstractmethod
    async def unlock(self, key: str) -> None:
        """Release the lock for ``key``."""

    @abstractmethod
    async def store(self, key: str, value: bytes) -> None: ...

    @abstractmethod
    async def load(self, key: str) -> bytes: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    @abstractmethod
    async def exists(self, key: str) -> bool: ...

    @abstractmethod
    async def list(self, prefix: str, recursive: bool) -> List[str]: ...

    @abstractmethod
    async def stat(self, key: str) -> KeyInfo: ...
