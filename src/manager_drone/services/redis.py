"""
Redis key-value store adapter.

Each status probe and each action opens a fresh connection and closes it
on every exit path. Search-extension commands (``FT.*``, ``MODULE LIST``)
are optional: a server without the extension reports empty lists.
"""

from __future__ import annotations

import asyncio
import logging
import struct
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ClassVar

import redis.asyncio as redis_lib
from redis.exceptions import RedisError, ResponseError

from ..config.services import RedisConfig
from ..types import RestartResult, ServiceKind, Status, StatusReason
from .base import ActionServiceAdapter
from .payloads import (
    DelPayload,
    EmptyPayload,
    FtInfoPayload,
    FtSearchPayload,
    GetPayload,
    KeysPayload,
    SetPayload,
    VectorSearchPayload,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[RedisConfig], Any]


def create_redis_client(config: RedisConfig) -> redis_lib.Redis:
    """Build a ``redis.asyncio.Redis`` client from config."""
    common: dict[str, Any] = {
        "password": config.password,
        "db": config.db,
        "socket_timeout": config.socket_timeout,
        "socket_connect_timeout": config.connect_timeout,
        "decode_responses": True,
    }
    if config.socket_path:
        return redis_lib.Redis(unix_socket_path=config.socket_path, **common)
    return redis_lib.Redis(host=config.host, port=config.port, **common)


def float32_blob(vector: list[float]) -> bytes:
    """Pack a vector as little-endian float32, the layout search indexes expect."""
    return struct.pack(f"<{len(vector)}f", *vector)


def pairs_to_dict(raw: Any) -> dict[str, Any]:
    """Fold a flat ``[k1, v1, k2, v2, ...]`` reply into a dict."""
    if isinstance(raw, dict):
        return raw
    items = list(raw)
    return {str(items[i]): items[i + 1] for i in range(0, len(items) - 1, 2)}


def parse_search_reply(raw: Any) -> dict[str, Any]:
    """Shape an ``FT.SEARCH`` reply as ``{"total": n, "documents": [...]}``."""
    if isinstance(raw, dict):
        return raw
    total, rest = raw[0], raw[1:]
    documents = []
    for i in range(0, len(rest), 2):
        fields = pairs_to_dict(rest[i + 1]) if i + 1 < len(rest) else {}
        documents.append({"id": rest[i], **fields})
    return {"total": total, "documents": documents}


async def _tolerant(call: Awaitable[Any]) -> Any:
    try:
        return await call
    except ResponseError as exc:
        # Optional module missing
        logger.debug("Optional Redis command unavailable: %s", exc)
        return []


class RedisService(ActionServiceAdapter):
    """Adapter for a Redis server, optionally with the search extension."""

    kind = ServiceKind.REDIS

    ACTIONS: ClassVar[dict[str, type]] = {
        "keys": KeysPayload,
        "get": GetPayload,
        "set": SetPayload,
        "del": DelPayload,
        "ft_list": EmptyPayload,
        "ft_info": FtInfoPayload,
        "ft_search": FtSearchPayload,
        "search": VectorSearchPayload,
    }

    def __init__(
        self,
        config: RedisConfig | None = None,
        *,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__()
        self.config = config or RedisConfig()
        self._client_factory = client_factory or create_redis_client

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        client = self._client_factory(self.config)
        try:
            yield client
        finally:
            try:
                await client.aclose()
            except (RedisError, OSError) as exc:
                logger.debug("Closing Redis connection failed: %s", exc)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def status(self) -> Status:
        address = self.config.address
        try:
            async with self._connection() as client:
                results = await asyncio.gather(
                    client.ping(),
                    client.dbsize(),
                    client.info("server"),
                    client.info("memory"),
                    client.info("replication"),
                    _tolerant(client.module_list()),
                    _tolerant(client.execute_command("FT._LIST")),
                    return_exceptions=True,
                )
                # Every call has settled before the connection is closed.
                for result in results:
                    if isinstance(result, BaseException):
                        raise result
        except (RedisError, OSError) as exc:
            return Status.failed(StatusReason.BACKEND_UNAVAILABLE, address=address, error=str(exc))

        ping, dbsize, server, memory, replication, modules, indexes = results
        return Status.healthy(
            address=address,
            ping=ping,
            dbsize=dbsize,
            info={
                "server": server,
                "memory": memory,
                "replication": replication,
                "modules": modules,
            },
            search_indexes=list(indexes),
        )

    async def restart(self) -> RestartResult:
        """Restart is not available for Redis; answers with a non-error acknowledgment."""
        return RestartResult(message="Restart not supported", provider_status=None, supported=False)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _action_keys(self, params: KeysPayload) -> list[str]:
        async with self._connection() as client:
            return list(await client.keys(params.pattern))

    async def _action_get(self, params: GetPayload) -> str | None:
        async with self._connection() as client:
            return await client.get(params.key)

    async def _action_set(self, params: SetPayload) -> bool:
        async with self._connection() as client:
            return bool(await client.set(params.key, params.value, ex=params.ex))

    async def _action_del(self, params: DelPayload) -> int:
        async with self._connection() as client:
            return int(await client.delete(*params.keys))

    async def _action_ft_list(self, params: EmptyPayload) -> list[str]:
        async with self._connection() as client:
            return list(await _tolerant(client.execute_command("FT._LIST")))

    async def _action_ft_info(self, params: FtInfoPayload) -> dict[str, Any]:
        async with self._connection() as client:
            return pairs_to_dict(await client.execute_command("FT.INFO", params.index))

    async def _action_ft_search(self, params: FtSearchPayload) -> Any:
        async with self._connection() as client:
            return await client.execute_command("FT.SEARCH", params.index, params.query, *params.options)

    async def _action_search(self, params: VectorSearchPayload) -> dict[str, Any]:
        query = f"*=>[KNN {params.top_k} @{params.vector_field} $BLOB AS vector_score]"
        args: list[Any] = [
            "FT.SEARCH",
            params.index,
            query,
            "PARAMS",
            2,
            "BLOB",
            float32_blob(params.query_vectors),
            "SORTBY",
            "vector_score",
            "ASC",
            "RETURN",
            len(params.return_fields) + 1,
            "vector_score",
            *params.return_fields,
            "DIALECT",
            2,
        ]
        async with self._connection() as client:
            return parse_search_reply(await client.execute_command(*args))


__all__ = [
    "RedisService",
    "create_redis_client",
    "float32_blob",
    "pairs_to_dict",
    "parse_search_reply",
]
