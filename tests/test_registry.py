"""
Tests for registry construction and dispatch.
"""

import pytest
from conftest import FakeInfraProvider, FakeMilvusClient, FakeRedisFactory, FakeTcpProbe, MilvusClientFactory

from manager_drone.config import ContainerServiceConfig, FeatureFlags, MilvusConfig, RedisConfig, Settings
from manager_drone.errors import (
    InfraUnavailableError,
    InvalidPayloadError,
    NotFoundError,
    UnsupportedActionError,
    UnsupportedOperationError,
)
from manager_drone.logging import StructuredLogger
from manager_drone.registry import (
    MILVUS_SERVICE_ID,
    REDIS_SERVICE_ID,
    Dispatcher,
    DispatchResult,
    ServiceDescriptor,
    ServiceRegistry,
    build_registry,
)
from manager_drone.services import ContainerService, MilvusService, RedisService
from manager_drone.types import ActionRequest


def _settings(**features) -> Settings:
    return Settings(
        features=FeatureFlags(**features),
        milvus=MilvusConfig(password="milvus-secret", container_name="milvus-standalone"),
        redis=RedisConfig(password="redis-secret"),
    )


@pytest.fixture
def quiet_logger() -> StructuredLogger:
    return StructuredLogger("manager_drone.tests", level="DEBUG")


@pytest.fixture
def registry(infra, redis_factory) -> ServiceRegistry:
    milvus = MilvusService(
        MilvusConfig(container_name="milvus-standalone"),
        infra=infra,
        client_factory=MilvusClientFactory(FakeMilvusClient()),
        tcp_probe=FakeTcpProbe(),
    )
    return ServiceRegistry(
        [
            ServiceDescriptor(MILVUS_SERVICE_ID, "Milvus @ Docker", milvus),
            ServiceDescriptor(REDIS_SERVICE_ID, "Redis", RedisService(client_factory=redis_factory)),
            ServiceDescriptor("CONTAINER_WORKER", "Container worker", ContainerService("worker", infra)),
        ],
        infra=infra,
    )


@pytest.fixture
def dispatcher(registry, quiet_logger) -> Dispatcher:
    return Dispatcher(registry, logger=quiet_logger)


class TestBuildRegistry:
    """Test feature-flag driven construction."""

    def test_nothing_enabled(self, quiet_logger):
        calls = []
        registry = build_registry(_settings(), provider_factory=lambda cfg: calls.append(cfg), logger=quiet_logger)

        assert len(registry) == 0
        assert calls == []

    def test_all_enabled(self, quiet_logger):
        infra = FakeInfraProvider()
        settings = _settings(enable_milvus=True, enable_redis=True)
        settings.containers = ContainerServiceConfig(containers=["worker", "etl-job"])

        registry = build_registry(settings, provider_factory=lambda cfg: infra, logger=quiet_logger)

        assert registry.ids == [MILVUS_SERVICE_ID, REDIS_SERVICE_ID, "CONTAINER_WORKER", "CONTAINER_ETL_JOB"]
        milvus = registry.get(MILVUS_SERVICE_ID).adapter
        assert isinstance(milvus, MilvusService)
        assert milvus.infra is infra
        assert registry.infra is infra

    def test_runtime_unavailable(self, quiet_logger):
        def unavailable(cfg):
            raise InfraUnavailableError("no socket")

        settings = _settings(enable_milvus=True)
        settings.containers = ContainerServiceConfig(containers=["worker"])

        registry = build_registry(settings, provider_factory=unavailable, logger=quiet_logger)

        assert registry.ids == [MILVUS_SERVICE_ID]
        assert not registry.get(MILVUS_SERVICE_ID).adapter.has_container

    def test_redis_only_needs_no_runtime(self, quiet_logger):
        calls = []
        registry = build_registry(
            _settings(enable_redis=True), provider_factory=lambda cfg: calls.append(cfg), logger=quiet_logger
        )

        assert registry.ids == [REDIS_SERVICE_ID]
        assert calls == []

    def test_duplicate_container_ids(self, quiet_logger):
        settings = _settings()
        settings.containers = ContainerServiceConfig(containers=["my-app", "my.app"])

        with pytest.raises(ValueError, match="Duplicate service id"):
            build_registry(settings, provider_factory=lambda cfg: FakeInfraProvider(), logger=quiet_logger)

    def test_registry_is_read_only(self, registry):
        with pytest.raises(TypeError):
            registry._services["X"] = None


class TestDispatcher:
    """Test lookup, forwarding and distinguishable outcomes."""

    def test_list_services(self, dispatcher):
        services = dispatcher.list_services()

        assert [s["id"] for s in services] == [MILVUS_SERVICE_ID, REDIS_SERVICE_ID, "CONTAINER_WORKER"]
        assert all(set(s) == {"id", "label", "kind"} for s in services)
        assert "secret" not in repr(services)

    @pytest.mark.asyncio
    async def test_unknown_id_never_raises(self, dispatcher):
        for result in (
            await dispatcher.status("NOPE"),
            await dispatcher.restart("NOPE"),
            await dispatcher.action("NOPE", "keys"),
        ):
            assert not result.ok
            assert result.not_found
            assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_status_forwarded(self, dispatcher):
        result = await dispatcher.status(MILVUS_SERVICE_ID)

        assert result.ok
        assert result.value.ok
        assert result.value.details["collections_count"] == 2

    @pytest.mark.asyncio
    async def test_restart_forwarded(self, dispatcher, infra):
        result = await dispatcher.restart("CONTAINER_WORKER")

        assert result.ok
        assert ("restart", "worker") in infra.calls

    @pytest.mark.asyncio
    async def test_restart_failure_captured(self, infra, quiet_logger):
        milvus = MilvusService(MilvusConfig(container_name=None), infra=infra)
        dispatcher = Dispatcher(ServiceRegistry([ServiceDescriptor("M", "M", milvus)]), logger=quiet_logger)

        result = await dispatcher.restart("M")

        assert isinstance(result.error, UnsupportedOperationError)
        assert infra.calls == []
        with pytest.raises(UnsupportedOperationError):
            result.unwrap()

    @pytest.mark.asyncio
    async def test_action_forwarded(self, dispatcher, redis_factory):
        redis_factory.store["k"] = "v"

        result = await dispatcher.action(REDIS_SERVICE_ID, "get", {"key": "k"})

        assert result == DispatchResult.success("v")

    @pytest.mark.asyncio
    async def test_submit_action_request(self, dispatcher, redis_factory):
        result = await dispatcher.submit(REDIS_SERVICE_ID, ActionRequest("set", {"key": "a", "value": 1}))

        assert result.unwrap() is True
        assert redis_factory.store == {"a": 1}

    @pytest.mark.asyncio
    async def test_action_not_supported_for_restart_only(self, dispatcher):
        result = await dispatcher.action("CONTAINER_WORKER", "keys")

        assert result.action_not_supported
        assert result.error.name == "action_not_supported"

    @pytest.mark.asyncio
    async def test_action_errors_captured(self, dispatcher):
        result = await dispatcher.action(REDIS_SERVICE_ID, "del", {"keys": []})

        assert isinstance(result.error, InvalidPayloadError)

    @pytest.mark.asyncio
    async def test_unknown_action_name(self, dispatcher):
        result = await dispatcher.action(REDIS_SERVICE_ID, "flushall")

        assert isinstance(result.error, UnsupportedActionError)

    @pytest.mark.asyncio
    async def test_close_releases_runtime(self, registry, infra):
        await registry.close()

        assert infra.closed
