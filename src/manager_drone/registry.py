"""
Service registry and dispatcher.

The registry is built once at startup from ``Settings`` and is read-only
afterwards. The dispatcher looks services up by id and forwards status,
restart and action calls, turning unknown ids and missing action support
into distinguishable results instead of exceptions.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .config.services import DockerConfig
from .config.settings import Settings
from .errors import DroneError, ErrorContext, InfraUnavailableError, NotFoundError, UnsupportedActionError
from .logging import ActionLog, ProbeLog, StructuredLogger, get_logger, timed
from .providers.base import InfraProvider
from .providers.docker import DockerProvider
from .services.base import ServiceAdapter, SupportsActions
from .services.container import ContainerService, container_service_id
from .services.milvus import MilvusService
from .services.redis import RedisService
from .types import ActionRequest, RestartResult, Status

MILVUS_SERVICE_ID = "MILVUS_MAIN"
REDIS_SERVICE_ID = "REDIS_MAIN"

ProviderFactory = Callable[[DockerConfig], InfraProvider]


@dataclass(frozen=True)
class ServiceDescriptor:
    """A registered service: stable id, display label and its adapter."""

    id: str
    label: str
    adapter: ServiceAdapter

    @property
    def kind(self) -> str:
        return self.adapter.kind.value

    def to_dict(self) -> dict[str, str]:
        # Public view only; adapter config stays internal.
        return {"id": self.id, "label": self.label, "kind": self.kind}


class ServiceRegistry:
    """Immutable id -> ServiceDescriptor mapping."""

    def __init__(self, descriptors: Iterable[ServiceDescriptor] = (), *, infra: InfraProvider | None = None) -> None:
        services: dict[str, ServiceDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in services:
                raise ValueError(f"Duplicate service id: {descriptor.id}")
            services[descriptor.id] = descriptor
        self._services = MappingProxyType(services)
        self.infra = infra

    def get(self, service_id: str) -> ServiceDescriptor | None:
        return self._services.get(service_id)

    @property
    def ids(self) -> list[str]:
        return list(self._services)

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._services

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self._services.values())

    def __len__(self) -> int:
        return len(self._services)

    async def close(self) -> None:
        """Release adapter and provider resources."""
        for descriptor in self._services.values():
            await descriptor.adapter.close()
        close = getattr(self.infra, "close", None)
        if close is not None:
            close()


def _create_provider(
    config: DockerConfig,
    factory: ProviderFactory,
    logger: StructuredLogger,
) -> InfraProvider | None:
    try:
        return factory(config)
    except InfraUnavailableError as exc:
        logger.warning(
            "Container runtime unavailable; restart and container checks disabled",
            error=exc.message,
        )
        return None


def build_registry(
    settings: Settings,
    *,
    provider_factory: ProviderFactory = DockerProvider,
    logger: StructuredLogger | None = None,
) -> ServiceRegistry:
    """
    Instantiate one adapter per enabled backend.

    Feature flags are evaluated here, once. A container runtime is only
    created when something needs it (the vector database or managed
    containers); if it cannot be reached, adapters are built without it.

    Raises:
        ValueError: if two managed containers map to the same service id
    """
    logger = logger or get_logger()
    needs_infra = settings.features.enable_milvus or bool(settings.containers.containers)
    infra = _create_provider(settings.docker, provider_factory, logger) if needs_infra else None

    descriptors: list[ServiceDescriptor] = []

    if settings.features.enable_milvus:
        milvus = MilvusService(settings.milvus, infra=infra)
        label = "Milvus @ Docker" if milvus.has_container else f"Milvus @ {settings.milvus.address}"
        descriptors.append(ServiceDescriptor(MILVUS_SERVICE_ID, label, milvus))

    if settings.features.enable_redis:
        descriptors.append(
            ServiceDescriptor(REDIS_SERVICE_ID, f"Redis @ {settings.redis.address}", RedisService(settings.redis))
        )

    if infra is not None:
        for name in settings.containers.containers:
            descriptors.append(
                ServiceDescriptor(container_service_id(name), f"Container {name}", ContainerService(name, infra))
            )
    elif settings.containers.containers:
        logger.warning(
            "Managed containers skipped: no container runtime",
            containers=list(settings.containers.containers),
        )

    registry = ServiceRegistry(descriptors, infra=infra)
    for descriptor in registry:
        logger.info(f"Registered service {descriptor.id}", service_id=descriptor.id, kind=descriptor.kind)
    return registry


# =============================================================================
# Dispatcher
# =============================================================================


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a dispatched call: a value, or a taxonomy error."""

    ok: bool
    value: Any = None
    error: DroneError | None = None

    @classmethod
    def success(cls, value: Any) -> DispatchResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: DroneError) -> DispatchResult:
        return cls(ok=False, error=error)

    @property
    def not_found(self) -> bool:
        return isinstance(self.error, NotFoundError)

    @property
    def action_not_supported(self) -> bool:
        return isinstance(self.error, UnsupportedActionError)

    def unwrap(self) -> Any:
        """Return the value, or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value


class Dispatcher:
    """
    Routes calls to adapters by service id.

    Status and restart results are returned verbatim; errors from the
    taxonomy are captured in the ``DispatchResult`` rather than raised.
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        *,
        logger: StructuredLogger | None = None,
        log_probes: bool = True,
        log_actions: bool = True,
    ) -> None:
        self.registry = registry
        self.logger = logger or get_logger()
        self.log_probes = log_probes
        self.log_actions = log_actions

    def list_services(self) -> list[dict[str, str]]:
        return [descriptor.to_dict() for descriptor in self.registry]

    def lookup(self, service_id: str) -> ServiceDescriptor | None:
        return self.registry.get(service_id)

    def _require(self, service_id: str) -> ServiceDescriptor:
        descriptor = self.registry.get(service_id)
        if descriptor is None:
            raise NotFoundError(service_id=service_id)
        return descriptor

    async def status(self, service_id: str) -> DispatchResult:
        try:
            descriptor = self._require(service_id)
        except NotFoundError as exc:
            return DispatchResult.failure(exc)

        with self.logger.trace_context(service_id=service_id, operation="status"), timed() as timer:
            status: Status = await descriptor.adapter.status()

        if self.log_probes:
            self._log_probe(service_id, descriptor.kind, status, timer.elapsed_ms)
        return DispatchResult.success(status)

    def _log_probe(self, service_id: str, kind: str, status: Status, duration_ms: float) -> None:
        details = status.details
        self.logger.log_probe(
            ProbeLog(
                service_id=service_id,
                kind=kind,
                ok=status.ok,
                duration_ms=duration_ms,
                reason=details.get("reason"),
                attempts=details.get("attempts"),
                address=details.get("address"),
                error=details.get("error"),
            )
        )

    async def restart(self, service_id: str) -> DispatchResult:
        try:
            descriptor = self._require(service_id)
            with self.logger.trace_context(service_id=service_id, operation="restart"):
                self.logger.info(f"Restarting service {service_id}")
                result: RestartResult = await descriptor.adapter.restart()
                self.logger.info(f"Restart of {service_id}: {result.message}", supported=result.supported)
        except DroneError as exc:
            if not isinstance(exc, NotFoundError):
                self.logger.log_error(exc, f"Restart of {service_id} failed", service_id=service_id)
            return DispatchResult.failure(exc)
        return DispatchResult.success(result)

    async def action(self, service_id: str, name: str, payload: Any = None) -> DispatchResult:
        try:
            descriptor = self._require(service_id)
        except NotFoundError as exc:
            return DispatchResult.failure(exc)

        adapter = descriptor.adapter
        if not isinstance(adapter, SupportsActions):
            return DispatchResult.failure(
                UnsupportedActionError(
                    f"Service {service_id} does not support actions",
                    action=None,
                    context=ErrorContext(service_id=service_id, kind=descriptor.kind, action=name),
                )
            )

        log = ActionLog(service_id=service_id, kind=descriptor.kind, action=name)
        with self.logger.trace_context(service_id=service_id, operation="action"), timed() as timer:
            try:
                value = await adapter.action(name, payload)
            except DroneError as exc:
                log.success = False
                log.error_code = exc.code.value
                log.error = exc.message
                log.duration_ms = timer.elapsed_ms
                if self.log_actions:
                    self.logger.log_action(log)
                return DispatchResult.failure(exc)

            log.duration_ms = timer.elapsed_ms
            if self.log_actions:
                self.logger.log_action(log)
        return DispatchResult.success(value)

    async def submit(self, service_id: str, request: ActionRequest) -> DispatchResult:
        return await self.action(service_id, request.name, request.payload)


__all__ = [
    "MILVUS_SERVICE_ID",
    "REDIS_SERVICE_ID",
    "ServiceDescriptor",
    "ServiceRegistry",
    "build_registry",
    "DispatchResult",
    "Dispatcher",
]
