"""
Tests for the key-value store adapter.
"""

import asyncio
import struct

import pytest
from conftest import FakeRedisClient, FakeRedisFactory

from manager_drone.config import RedisConfig
from manager_drone.errors import BackendCallFailedError, InvalidPayloadError, UnsupportedActionError
from manager_drone.services import RedisService
from manager_drone.services.redis import create_redis_client, float32_blob, pairs_to_dict, parse_search_reply
from manager_drone.types import StatusReason


class RendezvousClient(FakeRedisClient):
    """Client whose status calls only complete once all of them are in flight."""

    def __init__(self, factory: FakeRedisFactory, expected: int):
        super().__init__(factory)
        self.expected = expected
        self.in_flight = 0
        self.peak = 0
        self.all_started = asyncio.Event()

    async def _rendezvous(self) -> None:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        if self.in_flight == self.expected:
            self.all_started.set()
        try:
            await asyncio.wait_for(self.all_started.wait(), timeout=1.0)
        finally:
            self.in_flight -= 1

    async def ping(self):
        await self._rendezvous()
        return await super().ping()

    async def dbsize(self):
        await self._rendezvous()
        return await super().dbsize()

    async def info(self, section):
        await self._rendezvous()
        return await super().info(section)

    async def module_list(self):
        await self._rendezvous()
        return await super().module_list()

    async def execute_command(self, *args):
        await self._rendezvous()
        return await super().execute_command(*args)


class RendezvousFactory(FakeRedisFactory):
    def __call__(self, config: RedisConfig) -> RendezvousClient:
        self.opened += 1
        self.client = RendezvousClient(self, expected=7)
        return self.client


@pytest.fixture
def service(redis_factory) -> RedisService:
    return RedisService(RedisConfig(), client_factory=redis_factory)


class TestStatus:
    """Test the aggregated status probe."""

    @pytest.mark.asyncio
    async def test_healthy(self, service, redis_factory):
        redis_factory.store.update({"a": "1", "b": "2"})

        status = await service.status()

        assert status.ok
        assert status.details["ping"] is True
        assert status.details["dbsize"] == 2
        assert set(status.details["info"]) == {"server", "memory", "replication", "modules"}
        assert status.details["search_indexes"] == ["idx:docs"]
        assert redis_factory.opened == redis_factory.closed == 1

    @pytest.mark.asyncio
    async def test_without_search_extension(self):
        factory = FakeRedisFactory(search_module=False)
        service = RedisService(client_factory=factory)

        status = await service.status()

        assert status.ok
        assert status.details["search_indexes"] == []
        assert status.details["info"]["modules"] == []

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        factory = FakeRedisFactory(down=True)
        service = RedisService(client_factory=factory)

        status = await service.status()

        assert not status.ok
        assert status.reason is StatusReason.BACKEND_UNAVAILABLE
        assert "Connection refused" in status.details["error"]
        assert factory.opened == factory.closed == 1

    @pytest.mark.asyncio
    async def test_status_calls_run_concurrently(self):
        factory = RendezvousFactory()
        service = RedisService(client_factory=factory)

        status = await service.status()

        assert status.ok, status.details
        assert factory.client.peak == 7
        assert factory.opened == factory.closed == 1


class TestRestart:
    @pytest.mark.asyncio
    async def test_restart_is_acknowledged_not_failed(self, service):
        result = await service.restart()

        assert result.supported is False
        assert result.message == "Restart not supported"


class TestActions:
    """Test named actions and connection discipline."""

    @pytest.mark.asyncio
    async def test_keys_default_pattern(self, service, redis_factory):
        redis_factory.store.update({"user:1": "x"})

        assert await service.action("keys") == ["user:1"]
        assert ("KEYS", "*") in redis_factory.commands

    @pytest.mark.asyncio
    async def test_set_and_get(self, service, redis_factory):
        assert await service.action("set", {"key": "greeting", "value": "hi", "ex": 30}) is True
        assert ("SET", "greeting", "hi", 30) in redis_factory.commands
        assert await service.action("get", {"key": "greeting"}) == "hi"
        assert redis_factory.opened == redis_factory.closed == 2

    @pytest.mark.asyncio
    async def test_set_requires_value(self, service, redis_factory):
        with pytest.raises(InvalidPayloadError):
            await service.action("set", {"key": "greeting"})
        assert redis_factory.opened == 0

    @pytest.mark.asyncio
    async def test_del_rejects_empty_keys(self, service, redis_factory):
        with pytest.raises(InvalidPayloadError):
            await service.action("del", {"keys": []})
        assert redis_factory.opened == 0

    @pytest.mark.asyncio
    async def test_del(self, service, redis_factory):
        redis_factory.store.update({"a": "1", "b": "2", "c": "3"})

        assert await service.action("del", {"keys": ["a", "b"]}) == 2
        assert set(redis_factory.store) == {"c"}
        assert redis_factory.opened == redis_factory.closed == 1

    @pytest.mark.asyncio
    async def test_connection_closed_on_failure(self):
        factory = FakeRedisFactory(down=True)
        service = RedisService(client_factory=factory)

        with pytest.raises(BackendCallFailedError):
            await service.action("del", {"keys": ["a", "b"]})
        assert factory.opened == factory.closed == 1

    @pytest.mark.asyncio
    async def test_ft_list_without_extension(self):
        service = RedisService(client_factory=FakeRedisFactory(search_module=False))

        assert await service.action("ft_list") == []

    @pytest.mark.asyncio
    async def test_ft_info(self, service):
        info = await service.action("ft_info", {"index": "idx:docs"})

        assert info == {"index_name": "idx:docs", "num_docs": 2}

    @pytest.mark.asyncio
    async def test_ft_search_passes_options(self, service, redis_factory):
        await service.action("ft_search", {"index": "idx:docs", "query": "@title:hello", "options": ["LIMIT", 0, 10]})

        assert redis_factory.commands[-1] == ("FT.SEARCH", "idx:docs", "@title:hello", "LIMIT", 0, 10)

    @pytest.mark.asyncio
    async def test_vector_search(self, service, redis_factory):
        result = await service.action(
            "search",
            {"index": "idx:docs", "query_vectors": [0.5, 1.0], "top_k": 3, "return_fields": ["title"]},
        )

        command = redis_factory.commands[-1]
        assert command[:3] == ("FT.SEARCH", "idx:docs", "*=>[KNN 3 @vector $BLOB AS vector_score]")
        assert command[command.index("BLOB") + 1] == struct.pack("<2f", 0.5, 1.0)
        assert command[command.index("SORTBY") + 1 : command.index("SORTBY") + 3] == ("vector_score", "ASC")
        assert command[command.index("RETURN") + 1 : command.index("RETURN") + 4] == (2, "vector_score", "title")
        assert command[-2:] == ("DIALECT", 2)
        assert result == {"total": 1, "documents": [{"id": "doc:1", "vector_score": "0.12", "title": "hello"}]}

    @pytest.mark.asyncio
    async def test_unknown_action(self, service):
        with pytest.raises(UnsupportedActionError):
            await service.action("flushall")


class TestHelpers:
    def test_float32_blob_little_endian(self):
        assert float32_blob([1.0]) == b"\x00\x00\x80\x3f"

    def test_pairs_to_dict(self):
        assert pairs_to_dict(["a", 1, "b", [2]]) == {"a": 1, "b": [2]}
        assert pairs_to_dict({"a": 1}) == {"a": 1}

    def test_parse_search_reply_empty(self):
        assert parse_search_reply([0]) == {"total": 0, "documents": []}

    def test_client_uses_unix_socket(self):
        client = create_redis_client(RedisConfig(socket_path="/tmp/redis.sock"))

        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["path"] == "/tmp/redis.sock"
        assert kwargs["decode_responses"] is True
