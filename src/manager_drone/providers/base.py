"""
Infra provider protocol.

An InfraProvider abstracts a container runtime. It is shared process-wide by
every adapter that references it; adapters never own its lifecycle.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..types import ContainerStatus


@runtime_checkable
class InfraProvider(Protocol):
    """
    Protocol defining the interface for container runtimes.

    Absence of a container is a legitimate status, not an error; any other
    runtime failure surfaces as ``InfraUnavailableError``.
    """

    @property
    def name(self) -> str:
        """Short provider name (e.g. ``docker``)."""
        ...

    async def container_status(self, name: str) -> ContainerStatus:
        """
        Report whether the named container is running.

        Returns:
            ``ContainerStatus(running=False, state={"error": "not_found"})``
            when the container does not exist.

        Raises:
            InfraUnavailableError: on any other runtime failure
        """
        ...

    async def restart_container(self, name: str) -> Any:
        """
        Restart the named container and return its post-restart state.

        Not idempotent: every call restarts again. Does not retry.

        Raises:
            InfraUnavailableError: on any runtime failure
        """
        ...


__all__ = ["InfraProvider"]
