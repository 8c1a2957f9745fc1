"""
Milvus vector database adapter.

Status is a layered probe so that failures can be told apart:

1. container liveness (only when a container runtime is configured)
2. bare TCP reachability of host:port
3. a real protocol call (``list_collections``) with warm-up retries

The ``pymilvus`` client is blocking; every call goes through ``run_sync``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any, ClassVar

from pymilvus import MilvusClient

from ..concurrency import run_sync
from ..config.services import MilvusConfig
from ..errors import InfraUnavailableError
from ..probes import Sleep, TcpProbe, tcp_reachable, warmup_retry
from ..providers.base import InfraProvider
from ..types import ServiceKind, Status, StatusReason
from .base import ActionServiceAdapter
from .payloads import DescribeCollectionPayload, EmptyPayload, MilvusSearchPayload

logger = logging.getLogger(__name__)

ClientFactory = Callable[[MilvusConfig], Any]


def _tls_kwargs(config: MilvusConfig) -> dict[str, Any]:
    if not config.ssl:
        return {}

    kwargs: dict[str, Any] = {"secure": True}
    if config.client_cert_path and config.client_key_path:
        # Mutual TLS
        kwargs["client_pem_path"] = config.client_cert_path
        kwargs["client_key_path"] = config.client_key_path
        if config.tls_ca_pem_path:
            kwargs["ca_pem_path"] = config.tls_ca_pem_path
    elif config.tls_ca_pem_path:
        kwargs["server_pem_path"] = config.tls_ca_pem_path
    if config.sni_servername:
        kwargs["server_name"] = config.sni_servername
    return kwargs


def create_milvus_client(config: MilvusConfig) -> MilvusClient:
    """Build a ``MilvusClient`` from config. Connects eagerly."""
    return MilvusClient(
        uri=config.uri,
        user=config.username or "",
        password=config.password or "",
        db_name=config.db or "",
        timeout=config.call_timeout,
        **_tls_kwargs(config),
    )


class MilvusService(ActionServiceAdapter):
    """
    Adapter for a Milvus vector database.

    Example:
        ```python
        service = MilvusService(MilvusConfig(host="milvus"), infra=DockerProvider())
        status = await service.status()
        hits = await service.action("search", {"collection_name": "docs", "query_vectors": [0.1, 0.2]})
        ```
    """

    kind = ServiceKind.MILVUS

    ACTIONS: ClassVar[dict[str, type]] = {
        "list_collections": EmptyPayload,
        "describe_collection": DescribeCollectionPayload,
        "search": MilvusSearchPayload,
    }

    def __init__(
        self,
        config: MilvusConfig | None = None,
        *,
        infra: InfraProvider | None = None,
        client_factory: ClientFactory | None = None,
        tcp_probe: TcpProbe = tcp_reachable,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config or MilvusConfig()
        super().__init__(infra=infra, container_name=self.config.container_name)

        self._client_factory = client_factory or create_milvus_client
        self._tcp_probe = tcp_probe
        self._sleep = sleep

        self._client: Any = None
        self._client_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    def _get_client(self) -> Any:
        with self._client_lock:
            if self._client is None:
                self._client = self._client_factory(self.config)
            return self._client

    def _reset_client(self) -> None:
        with self._client_lock:
            client, self._client = self._client, None
        if client is not None:
            try:
                client.close()
            except Exception as exc:
                logger.debug("Closing Milvus client failed: %s", exc)

    async def close(self) -> None:
        await run_sync(self._reset_client)

    def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        client = self._get_client()
        return getattr(client, method)(*args, timeout=self.config.call_timeout, **kwargs)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def _list_collections_probe(self) -> list[str]:
        try:
            return list(await run_sync(self._call, "list_collections"))
        except Exception:
            # Reconnect on the next attempt.
            await run_sync(self._reset_client)
            raise

    async def status(self) -> Status:
        address = self.config.address
        provider: dict[str, Any] | None = None

        if self.has_container:
            assert self.infra is not None and self.container_name is not None
            try:
                container = await self.infra.container_status(self.container_name)
            except InfraUnavailableError as exc:
                return Status.failed(
                    StatusReason.INFRA_UNAVAILABLE,
                    reachable=False,
                    address=address,
                    error=exc.message,
                )
            provider = container.to_dict()
            if not container.running:
                return Status.failed(
                    StatusReason.CONTAINER_NOT_RUNNING,
                    provider=provider,
                    reachable=False,
                    address=address,
                )

        if not await self._tcp_probe(self.config.host, self.config.port, self.config.probe_timeout):
            return Status.failed(
                StatusReason.TCP_UNREACHABLE,
                provider=provider,
                reachable=False,
                address=address,
            )

        outcome = await warmup_retry(
            self._list_collections_probe,
            retries=self.config.warmup_retries,
            backoff=self.config.warmup_backoff,
            sleep=self._sleep,
        )
        if not outcome.ok:
            return Status.failed(
                StatusReason.GRPC_UNAVAILABLE,
                provider=provider,
                reachable=False,
                address=address,
                attempts=outcome.attempts,
                error=outcome.error_message,
            )

        return Status.healthy(
            provider=provider,
            reachable=True,
            address=address,
            attempts=outcome.attempts,
            collections_count=len(outcome.value or []),
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _action_list_collections(self, params: EmptyPayload) -> list[str]:
        return list(await run_sync(self._call, "list_collections"))

    async def _action_describe_collection(self, params: DescribeCollectionPayload) -> Any:
        return await run_sync(self._call, "describe_collection", collection_name=params.collection_name)

    async def _action_search(self, params: MilvusSearchPayload) -> Any:
        # The collection must be loaded into memory before it can be searched.
        await run_sync(self._call, "load_collection", collection_name=params.collection_name)
        result = await run_sync(
            self._call,
            "search",
            collection_name=params.collection_name,
            data=params.vectors,
            anns_field=params.vector_field,
            limit=params.top_k,
            output_fields=params.output_fields,
            search_params={"metric_type": params.metric_type, "params": params.params},
        )
        return [[dict(hit) for hit in hits] for hits in result]


__all__ = ["MilvusService", "create_milvus_client"]
