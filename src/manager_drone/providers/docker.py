"""
Docker Engine infra provider.

Uses the blocking ``docker`` SDK through ``run_sync``. The client is created
on first use, since constructing it negotiates the API version with the
daemon.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any

import docker
from docker.errors import DockerException, NotFound
from requests.exceptions import RequestException

from ..concurrency import run_sync
from ..config.services import DockerConfig
from ..errors import ErrorContext, InfraUnavailableError
from ..types import ContainerStatus

logger = logging.getLogger(__name__)


class DockerProvider:
    """InfraProvider backed by a Docker daemon (local socket or remote host)."""

    name = "docker"

    def __init__(self, config: DockerConfig | None = None, *, client: Any = None) -> None:
        self.config = config or DockerConfig()
        if client is None and not self.config.host and not os.path.exists(self.config.socket_path):
            raise InfraUnavailableError(
                f"Docker socket not found at {self.config.socket_path}",
                provider=self.name,
            )
        self._client = client
        self._client_lock = threading.Lock()

    def _get_client(self) -> Any:
        with self._client_lock:
            if self._client is None:
                self._client = docker.DockerClient(base_url=self.config.base_url, timeout=int(self.config.timeout))
            return self._client

    def _unavailable(self, operation: str, name: str, exc: Exception) -> InfraUnavailableError:
        return InfraUnavailableError(
            f"Docker {operation} failed for '{name}': {exc}",
            provider=self.name,
            context=ErrorContext(operation=operation, extra={"container": name}),
            cause=exc,
        )

    def _inspect(self, name: str) -> ContainerStatus:
        try:
            container = self._get_client().containers.get(name)
        except NotFound:
            return ContainerStatus.not_found()
        except (DockerException, RequestException) as exc:
            raise self._unavailable("inspect", name, exc) from exc

        state = container.attrs.get("State") or {}
        return ContainerStatus(running=bool(state.get("Running")), state=state)

    def _restart(self, name: str) -> Any:
        try:
            container = self._get_client().containers.get(name)
            container.restart()
            container.reload()
        except (DockerException, RequestException) as exc:
            raise self._unavailable("restart", name, exc) from exc
        return container.attrs.get("State")

    async def container_status(self, name: str) -> ContainerStatus:
        return await run_sync(self._inspect, name)

    async def restart_container(self, name: str) -> Any:
        logger.info("Restarting container %s", name)
        state = await run_sync(self._restart, name)
        logger.info("Container %s restarted", name)
        return state

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None


__all__ = ["DockerProvider"]
