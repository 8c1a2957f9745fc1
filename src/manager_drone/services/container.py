"""
Generic container adapter.

Reports and restarts a plain container through the InfraProvider, for
services that expose no protocol the drone speaks.
"""

from __future__ import annotations

import re

from ..errors import InfraUnavailableError
from ..providers.base import InfraProvider
from ..types import ServiceKind, Status, StatusReason
from .base import ServiceAdapter

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def container_service_id(container_name: str) -> str:
    """Registry id for a managed container: ``my-app.1`` becomes ``CONTAINER_MY_APP_1``."""
    return f"CONTAINER_{_NON_ALNUM.sub('_', container_name).upper()}"


class ContainerService(ServiceAdapter):
    """Adapter whose health is the container's running state. Has no actions."""

    kind = ServiceKind.CONTAINER

    def __init__(self, container_name: str, infra: InfraProvider) -> None:
        if not container_name:
            raise ValueError("container_name is required")
        super().__init__(infra=infra, container_name=container_name)

    async def status(self) -> Status:
        assert self.infra is not None and self.container_name is not None
        try:
            container = await self.infra.container_status(self.container_name)
        except InfraUnavailableError as exc:
            return Status.failed(
                StatusReason.INFRA_UNAVAILABLE,
                container=self.container_name,
                error=exc.message,
            )

        if not container.running:
            return Status.failed(
                StatusReason.CONTAINER_NOT_RUNNING,
                container=self.container_name,
                provider=container.to_dict(),
            )
        return Status.healthy(container=self.container_name, provider=container.to_dict())


__all__ = ["ContainerService", "container_service_id"]
