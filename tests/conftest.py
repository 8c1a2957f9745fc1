"""
Shared test fixtures and fakes for manager-drone tests.

This module provides:
- A fake InfraProvider recording every call
- A fake vector-database client (blocking, like pymilvus)
- A fake key-value client (async, like redis.asyncio) tracking open/close
- An injectable TCP probe and a recording sleep
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from manager_drone.config import AuthConfig, MilvusConfig, RedisConfig
from manager_drone.errors import InfraUnavailableError
from manager_drone.types import ContainerStatus

# =============================================================================
# Container runtime
# =============================================================================


class FakeInfraProvider:
    """In-memory container runtime."""

    name = "fake"

    def __init__(self, *, running: bool = True, fail: bool = False):
        self.running = running
        self.fail = fail
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    async def container_status(self, name: str) -> ContainerStatus:
        self.calls.append(("status", name))
        if self.fail:
            raise InfraUnavailableError("runtime down", provider=self.name)
        return ContainerStatus(running=self.running, state={"Running": self.running})

    async def restart_container(self, name: str) -> Any:
        self.calls.append(("restart", name))
        if self.fail:
            raise InfraUnavailableError("runtime down", provider=self.name)
        self.running = True
        return {"Running": True, "Status": "running"}

    def close(self) -> None:
        self.closed = True


# =============================================================================
# Vector database
# =============================================================================


class FakeMilvusClient:
    """Blocking client double. ``failures`` makes the first N list calls fail."""

    def __init__(self, collections: list[str] | None = None, *, failures: int = 0):
        self.collections = collections if collections is not None else ["docs", "images"]
        self.failures = failures
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = 0

    def list_collections(self, timeout: float | None = None) -> list[str]:
        self.calls.append(("list_collections", {"timeout": timeout}))
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("StatusCode.UNAVAILABLE")
        return list(self.collections)

    def describe_collection(self, collection_name: str, timeout: float | None = None) -> dict[str, Any]:
        self.calls.append(("describe_collection", {"collection_name": collection_name}))
        if collection_name not in self.collections:
            raise ValueError(f"collection not found: {collection_name}")
        return {"collection_name": collection_name, "num_shards": 1}

    def load_collection(self, collection_name: str, timeout: float | None = None) -> None:
        self.calls.append(("load_collection", {"collection_name": collection_name}))

    def search(self, collection_name: str, data: list[list[float]], timeout: float | None = None, **kwargs: Any):
        self.calls.append(("search", {"collection_name": collection_name, "data": data, **kwargs}))
        return [[{"id": 1, "distance": 0.9, "entity": {"id": 1}}] for _ in data]

    def close(self) -> None:
        self.closed += 1

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


class MilvusClientFactory:
    """Client factory returning one shared fake and counting constructions."""

    def __init__(self, client: FakeMilvusClient):
        self.client = client
        self.created = 0

    def __call__(self, config: MilvusConfig) -> FakeMilvusClient:
        self.created += 1
        return self.client


# =============================================================================
# Key-value store
# =============================================================================


class FakeRedisClient:
    """Async client double sharing a store with its factory."""

    def __init__(self, factory: FakeRedisFactory):
        self._factory = factory
        self.store = factory.store
        self.commands: list[tuple[Any, ...]] = factory.commands
        self.closed = False

    def _check(self) -> None:
        if self._factory.down:
            raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379. Connection refused.")

    async def ping(self) -> bool:
        self._check()
        return True

    async def dbsize(self) -> int:
        self._check()
        return len(self.store)

    async def info(self, section: str) -> dict[str, Any]:
        self._check()
        return {"section": section}

    async def module_list(self) -> list[dict[str, Any]]:
        self._check()
        if not self._factory.search_module:
            return []
        return [{"name": "search", "ver": 20810}]

    async def execute_command(self, *args: Any) -> Any:
        self._check()
        self.commands.append(args)
        command = args[0]
        if command.startswith("FT.") and not self._factory.search_module:
            raise ResponseError(f"unknown command '{command}'")
        if command == "FT._LIST":
            return ["idx:docs"]
        if command == "FT.INFO":
            return ["index_name", args[1], "num_docs", 2]
        if command == "FT.SEARCH":
            return [1, "doc:1", ["vector_score", "0.12", "title", "hello"]]
        raise ResponseError(f"unexpected command {command}")

    async def keys(self, pattern: str) -> list[str]:
        self._check()
        self.commands.append(("KEYS", pattern))
        return sorted(self.store)

    async def get(self, key: str) -> Any:
        self._check()
        return self.store.get(key)

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self._check()
        self.commands.append(("SET", key, value, ex))
        self.store[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = sum(1 for key in keys if self.store.pop(key, None) is not None)
        return removed

    async def aclose(self) -> None:
        self.closed = True
        self._factory.closed += 1


@dataclass
class FakeRedisFactory:
    """Creates FakeRedisClient instances and counts open/close."""

    down: bool = False
    search_module: bool = True
    store: dict[str, Any] = field(default_factory=dict)
    commands: list[tuple[Any, ...]] = field(default_factory=list)
    opened: int = 0
    closed: int = 0

    def __call__(self, config: RedisConfig) -> FakeRedisClient:
        self.opened += 1
        return FakeRedisClient(self)


# =============================================================================
# Probing
# =============================================================================


class FakeTcpProbe:
    def __init__(self, reachable: bool = True):
        self.reachable = reachable
        self.calls: list[tuple[str, int, float]] = []

    async def __call__(self, host: str, port: int, timeout: float) -> bool:
        self.calls.append((host, port, timeout))
        return self.reachable


class RecordingSleep:
    """Sleep replacement recording requested delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def infra() -> FakeInfraProvider:
    return FakeInfraProvider()


@pytest.fixture
def milvus_client() -> FakeMilvusClient:
    return FakeMilvusClient()


@pytest.fixture
def redis_factory() -> FakeRedisFactory:
    return FakeRedisFactory()


@pytest.fixture
def tcp_probe() -> FakeTcpProbe:
    return FakeTcpProbe()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def milvus_config() -> MilvusConfig:
    return MilvusConfig(host="milvus.local", port=19530, container_name="milvus-standalone")


@pytest.fixture
def auth_config() -> AuthConfig:
    # base64 of "test-secret-with-enough-entropy!"
    return AuthConfig(jwt_secret_base64="dGVzdC1zZWNyZXQtd2l0aC1lbm91Z2gtZW50cm9weSE=")
