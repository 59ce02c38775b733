"""reststorage Python clients."""

import asyncio
import logging
import threading
import time
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Awaitable, Callable, Iterator, List, Optional

import httpx

from .codec import decode_body, decode_value, encode_value, parse_timestamp, require_field
from .config import StorageConfig
from .exceptions import (
    DecodeError,
    LockCancelledError,
    LockTimeoutError,
    NetworkError,
    NotFoundError,
    RestStorageError,
    UnknownStatusError,
)
from .models import KeyInfo, KeyRequest, ListRequest, ListResponse, StatResponse, StoreRequest
from .storage import AsyncStorage, Storage

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"

STATUS_OK = 200
STATUS_CREATED = 201
STATUS_NO_CONTENT = 204
STATUS_NOT_FOUND = 404
STATUS_PRECONDITION_FAILED = 412
STATUS_LOCKED = 423


class _RestStorageBase:
    """Request composition and response interpretation shared by both clients."""

    def __init__(self, config: StorageConfig):
        self.config = config
        self._headers = {
            "Content-Type": "application/json",
            API_KEY_HEADER: config.api_key,
        }

    def _url(self, path: str) -> str:
        return self.config.endpoint + path

    @staticmethod
    def _check_status(response: httpx.Response, operation: str, expected: int,
                      key: Optional[str] = None) -> None:
        """Map a status code onto the error taxonomy.

        Passing ``key`` enables the 404 -> NotFoundError mapping.
        """
        status = response.status_code
        if key is not None and status == STATUS_NOT_FOUND:
            raise NotFoundError(key)
        if status != expected:
            raise UnknownStatusError(status, operation)

    def _lock_acquired(self, key: str, response: httpx.Response) -> bool:
        """Interpret one lock attempt; False means wait and try again."""
        status = response.status_code
        if status == STATUS_CREATED:
            logger.debug("Locked key %s", key)
            return True
        if status == STATUS_LOCKED:
            logger.info("Key %s is already locked.", key)
            return False
        if status == STATUS_PRECONDITION_FAILED:
            logger.error("Error locking key %s: %s ; Will try again.", key, status)
            return False
        raise UnknownStatusError(status, "lock")

    def _parse_load(self, key: str, response: httpx.Response) -> bytes:
        self._check_status(response, "load", STATUS_OK, key)
        body = decode_body(response)
        return decode_value(require_field(body, "value", str))

    def _parse_exists(self, response: httpx.Response) -> bool:
        self._check_status(response, "exists", STATUS_OK)
        return require_field(decode_body(response), "exists", bool)

    def _parse_list(self, prefix: str, response: httpx.Response) -> List[str]:
        self._check_status(response, "list", STATUS_OK, prefix)
        body = decode_body(response)
        # null or absent means nothing matched
        if body.get("keys") is None:
            return []
        result = ListResponse(keys=require_field(body, "keys", list))
        for item in result.keys:
            if not isinstance(item, str):
                raise DecodeError(f"List entry should be str, got {type(item).__name__}")
        return result.keys

    def _parse_stat(self, key: str, response: httpx.Response) -> KeyInfo:
        self._check_status(response, "stat", STATUS_OK, key)
        body = decode_body(response)
        stat = StatResponse(
            key=require_field(body, "key", str),
            modified=require_field(body, "modified", str),
            size=require_field(body, "size", int),
            is_terminal=require_field(body, "isTerminal", bool),
        )
        return KeyInfo(
            key=stat.key,
            modified=parse_timestamp(stat.modified),
            size=stat.size,
            is_terminal=stat.is_terminal,
        )


class RestStorage(_RestStorageBase, Storage):
    """Blocking client for a REST key/value storage service."""

    def __init__(self, config: StorageConfig, client: httpx.Client = None,
                 sleep: Callable[[float], None] = time.sleep):
        """Initialize the storage client.

        Args:
            config: Endpoint, credential and timing settings
            client: Optional pre-built httpx client; closed by the caller
            sleep: Function used to wait between lock attempts
        """
        super().__init__(config)
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=config.timeout)
        self._sleep = sleep

    def _request(self, method: str, path: str, payload: dict) -> httpx.Response:
        """Exchange exactly one JSON request with the remote service."""
        url = self._url(path)
        try:
            response = self.client.request(method, url, json=payload, headers=self._headers)
        except httpx.RequestError as e:
            raise NetworkError(f"Network error during {method} {url}: {e}") from e
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    def lock(self, key: str, cancel: Optional[threading.Event] = None) -> None:
        """Block until the lock for ``key`` is acquired.

        Setting ``cancel`` interrupts the wait between attempts but not a
        request already in flight; that request runs until it completes or
        ``config.timeout`` elapses, so cancellation can take up to that long.

        Args:
            key: Lock name
            cancel: Event that aborts the wait when set

        Raises:
            LockCancelledError: if ``cancel`` is set before the lock is held
            UnknownStatusError: on any status other than 201, 412 or 423
        """
        payload = KeyRequest(key).to_json()
        while True:
            if cancel is not None and cancel.is_set():
                raise LockCancelledError(key)
            response = self._request("POST", "lock", payload)
            if self._lock_acquired(key, response):
                return
            if cancel is not None:
                if cancel.wait(self.config.poll_interval):
                    raise LockCancelledError(key)
            else:
                self._sleep(self.config.poll_interval)

    def unlock(self, key: str) -> None:
        """Release the lock for ``key``."""
        response = self._request("POST", "unlock", KeyRequest(key).to_json())
        self._check_status(response, "unlock", STATUS_NO_CONTENT)

    @contextmanager
    def locked(self, key: str, cancel: Optional[threading.Event] = None) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of a ``with`` block."""
        self.lock(key, cancel=cancel)
        try:
            yield
        finally:
            self.unlock(key)

    def store(self, key: str, value: bytes) -> None:
        """Create or overwrite the value stored under ``key``."""
        response = self._request("POST", "store", StoreRequest(key, encode_value(value)).to_json())
        self._check_status(response, "store", STATUS_CREATED)

    def load(self, key: str) -> bytes:
        """Return the value stored under ``key``."""
        response = self._request("POST", "load", KeyRequest(key).to_json())
        return self._parse_load(key, response)

    def delete(self, key: str) -> None:
        """Delete ``key``."""
        response = self._request("DELETE", "delete", KeyRequest(key).to_json())
        self._check_status(response, "delete", STATUS_NO_CONTENT, key)

    def check_exists(self, key: str) -> bool:
        """Report whether ``key`` exists, raising if that cannot be determined."""
        response = self._request("POST", "exists", KeyRequest(key).to_json())
        return self._parse_exists(response)

    def exists(self, key: str) -> bool:
        """Report whether ``key`` exists.

        Every failure reads as ``False``; use :meth:`check_exists` to tell
        an absent key from a failed check.
        """
        try:
            return self.check_exists(key)
        except RestStorageError as e:
            logger.debug("Treating key %s as absent: %s", key, e)
            return False

    def list(self, prefix: str, recursive: bool = False) -> List[str]:
        """List keys under ``prefix`` in the order the service returns them."""
        response = self._request("POST", "list", ListRequest(prefix, recursive).to_json())
        return self._parse_list(prefix, response)

    def stat(self, key: str) -> KeyInfo:
        """Return size, modification time and terminal flag of ``key``."""
        response = self._request("POST", "stat", KeyRequest(key).to_json())
        return self._parse_stat(key, response)

    def close(self) -> None:
        """Close the HTTP client if this storage created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class AsyncRestStorage(_RestStorageBase, AsyncStorage):
    """Async client for a REST key/value storage service."""

    def __init__(self, config: StorageConfig, client: httpx.AsyncClient = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """Initialize the async storage client.

        Args:
            config: Endpoint, credential and timing settings
            client: Optional pre-built httpx async client; closed by the caller
            sleep: Coroutine function used to wait between lock attempts
        """
        super().__init__(config)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=config.timeout)
        self._sleep = sleep

    async def _request(self, method: str, path: str, payload: dict) -> httpx.Response:
        """Exchange exactly one JSON request with the remote service."""
        url = self._url(path)
        try:
            response = await self.client.request(method, url, json=payload, headers=self._headers)
        except httpx.RequestError as e:
            raise NetworkError(f"Network error during {method} {url}: {e}") from e
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    async def _acquire(self, key: str) -> None:
        payload = KeyRequest(key).to_json()
        while True:
            response = await self._request("POST", "lock", payload)
            if self._lock_acquired(key, response):
                return
            await self._sleep(self.config.poll_interval)

    async def lock(self, key: str, timeout: Optional[float] = None) -> None:
        """Wait until the lock for ``key`` is acquired.

        Cancelling the calling task aborts both the pending request and the
        wait between attempts.

        Args:
            key: Lock name
            timeout: Optional bound on the total wait, in seconds

        Raises:
            LockTimeoutError: if ``timeout`` elapses first
            UnknownStatusError: on any status other than 201, 412 or 423
        """
        if timeout is None:
            await self._acquire(key)
            return
        try:
            await asyncio.wait_for(self._acquire(key), timeout)
        except asyncio.TimeoutError as e:
            raise LockTimeoutError(key, timeout) from e

    async def unlock(self, key: str) -> None:
        """Release the lock for ``key``."""
        response = await self._request("POST", "unlock", KeyRequest(key).to_json())
        self._check_status(response, "unlock", STATUS_NO_CONTENT)

    @asynccontextmanager
    async def locked(self, key: str, timeout: Optional[float] = None) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of an ``async with`` block."""
        await self.lock(key, timeout=timeout)
        try:
            yield
        finally:
            await self.unlock(key)

    async def store(self, key: str, value: bytes) -> None:
        """Create or overwrite the value stored under ``key``."""
        response = await self._request(
            "POST", "store", StoreRequest(key, encode_value(value)).to_json()
        )
        self._check_status(response, "store", STATUS_CREATED)

    async def load(self, key: str) -> bytes:
        """Return the value stored under ``key``."""
        response = await self._request("POST", "load", KeyRequest(key).to_json())
        return self._parse_load(key, response)

    async def delete(self, key: str) -> None:
        """Delete ``key``."""
        response = await self._request("DELETE", "delete", KeyRequest(key).to_json())
        self._check_status(response, "delete", STATUS_NO_CONTENT, key)

    async def check_exists(self, key: str) -> bool:
        """Report whether ``key`` exists, raising if that cannot be determined."""
        response = await self._request("POST", "exists", KeyRequest(key).to_json())
        return self._parse_exists(response)

    async def exists(self, key: str) -> bool:
        """Report whether ``key`` exists; every failure reads as ``False``."""
        try:
            return await self.check_exists(key)
        except RestStorageError as e:
            logger.debug("Treating key %s as absent: %s", key, e)
            return False

    async def list(self, prefix: str, recursive: bool = False) -> List[str]:
        """List keys under ``prefix`` in the order the service returns them."""
        response = await self._request("POST", "list", ListRequest(prefix, recursive).to_json())
        return self._parse_list(prefix, response)

    async def stat(self, key: str) -> KeyInfo:
        """Return size, modification time and terminal flag of ``key``."""
        response = await self._request("POST", "stat", KeyRequest(key).to_json())
        return self._parse_stat(key, response)

    async def close(self) -> None:
        """Close the HTTP client if this storage created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
