"""Shared test fixtures."""

import base64
import json
from datetime import datetime, timezone
from typing import List, Tuple

import httpx
import pytest

from reststorage import AsyncRestStorage, RestStorage, StorageConfig
from reststorage.codec import format_timestamp

ENDPOINT = "https://storage.test/api"
API_KEY = "secret"


class FakeRemote:
    """In-memory stand-in for the remote storage service."""

    def __init__(self, api_key: str = API_KEY):
        self.api_key = api_key
        self.values = {}
        self.modified = {}
        self.locks = set()
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("x-api-key") != self.api_key:
            return httpx.Response(401)
        op = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content)
        return getattr(self, "op_" + op)(body)

    def _children(self, prefix: str) -> List[str]:
        return [k for k in sorted(self.values) if k.startswith(prefix) and k != prefix]

    def op_lock(self, body):
        if body["key"] in self.locks:
            return httpx.Response(423)
        self.locks.add(body["key"])
        return httpx.Response(201)

    def op_unlock(self, body):
        if body["key"] not in self.locks:
            return httpx.Response(404)
        self.locks.discard(body["key"])
        return httpx.Response(204)

    def op_store(self, body):
        self.values[body["key"]] = body["value"]
        self.modified[body["key"]] = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        return httpx.Response(201)

    def op_load(self, body):
        if body["key"] not in self.values:
            return httpx.Response(404)
        return httpx.Response(200, json={"value": self.values[body["key"]]})

    def op_delete(self, body):
        if self.values.pop(body["key"], None) is None:
            return httpx.Response(404)
        return httpx.Response(204)

    def op_exists(self, body):
        return httpx.Response(200, json={"exists": body["key"] in self.values})

    def op_list(self, body):
        prefix = body["prefix"]
        keys = []
        for key in self._children(prefix):
            if not body["recursive"]:
                key = prefix + key[len(prefix):].split("/")[0]
            if key not in keys:
                keys.append(key)
        if not keys:
            return httpx.Response(404)
        return httpx.Response(200, json={"keys": keys})

    def op_stat(self, body):
        key = body["key"]
        if key in self.values:
            size = len(base64.b64decode(self.values[key]))
            return httpx.Response(200, json={
                "key": key,
                "modified": format_timestamp(self.modified[key]),
                "size": size,
                "isTerminal": True,
            })
        if self._children(key.rstrip("/") + "/"):
            return httpx.Response(200, json={
                "key": key,
                "modified": "2024-05-01T12:00:00Z",
                "size": 0,
                "isTerminal": False,
            })
        return httpx.Response(404)


class ScriptedRemote:
    """Replays a fixed sequence of (status, json body) responses."""

    def __init__(self, *responses: Tuple[int, object]):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert self.responses, f"unexpected request to {request.url}"
        status, body = self.responses.pop(0)
        if body is None:
            return httpx.Response(status)
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def config():
    return StorageConfig(endpoint=ENDPOINT, api_key=API_KEY)


@pytest.fixture
def fast_config():
    return StorageConfig(endpoint=ENDPOINT, api_key=API_KEY, poll_interval=0.02)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def storage(config, remote, sleeps):
    client = httpx.Client(transport=httpx.MockTransport(remote))
    with RestStorage(config, client=client, sleep=sleeps.append) as s:
        yield s
    client.close()


@pytest.fixture
def async_storage(fast_config, remote):
    client = httpx.AsyncClient(transport=httpx.MockTransport(remote))
    return AsyncRestStorage(fast_config, client=client)


def sync_storage(config, handler, sleeps=None):
    """Build a blocking client around a mock handler."""
    client = httpx.Client(transport=httpx.MockTransport(handler))
    sleep = sleeps.append if sleeps is not None else (lambda seconds: None)
    return RestStorage(config, client=client, sleep=sleep)


def async_storage_for(config, handler, sleep=None):
    """Build an async client around a mock handler."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    if sleep is None:
        return AsyncRestStorage(config, client=client)
    return AsyncRestStorage(config, client=client, sleep=sleep)
