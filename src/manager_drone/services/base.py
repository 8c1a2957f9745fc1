"""
Service adapter protocol and base classes.

This module defines the uniform interface every managed backend exposes
(status, restart, and optionally named actions), enabling the registry and
the HTTP layer to stay backend-agnostic.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, ClassVar, Protocol, runtime_checkable

from ..errors import (
    BackendCallFailedError,
    DroneError,
    ErrorContext,
    UnsupportedActionError,
    UnsupportedOperationError,
)
from ..providers.base import InfraProvider
from ..types import RestartResult, ServiceKind, Status
from .payloads import ActionPayload, parse_payload

logger = logging.getLogger(__name__)


@runtime_checkable
class SupportsActions(Protocol):
    """Capability implemented by adapters that accept named actions."""

    @property
    def actions(self) -> tuple[str, ...]:
        """Names of the supported actions."""
        ...

    async def action(self, name: str, payload: Any = None) -> Any:
        """
        Run a named action.

        Raises:
            UnsupportedActionError: if ``name`` is unknown
            InvalidPayloadError: if required fields are missing or malformed
            BackendCallFailedError: if the backend call fails
        """
        ...


class ServiceAdapter(ABC):
    """
    Abstract base class for service adapters.

    An adapter wraps one backend. When both an InfraProvider and a container
    name are given, container-level features (liveness pre-check and restart)
    are active; if either is missing, both are treated as absent.
    """

    kind: ClassVar[ServiceKind]

    def __init__(
        self,
        *,
        infra: InfraProvider | None = None,
        container_name: str | None = None,
    ) -> None:
        if infra is not None and container_name:
            self.infra: InfraProvider | None = infra
            self.container_name: str | None = container_name
        else:
            self.infra = None
            self.container_name = None

    @property
    def has_container(self) -> bool:
        return self.infra is not None and self.container_name is not None

    @abstractmethod
    async def status(self) -> Status:
        """
        Probe the backend. Never raises: every failure is reported as
        ``Status(ok=False)`` with a reason from the fixed vocabulary.
        """
        ...

    async def restart(self) -> RestartResult:
        """
        Restart the backing container through the InfraProvider.

        Raises:
            UnsupportedOperationError: if no container runtime is configured
            InfraUnavailableError: if the runtime fails
        """
        if not self.has_container:
            raise UnsupportedOperationError(
                f"Restart is not available for {self.kind.value}: no container runtime configured",
                context=ErrorContext(kind=self.kind.value, operation="restart"),
            )
        assert self.infra is not None and self.container_name is not None

        provider_status = await self.infra.restart_container(self.container_name)
        return RestartResult(message="Restarted", provider_status=provider_status)

    async def close(self) -> None:
        """Release adapter resources."""
        return None


ActionHandler = Callable[[Any], Awaitable[Any]]


class ActionServiceAdapter(ServiceAdapter):
    """
    Adapter with a fixed table of named actions.

    Subclasses declare ``ACTIONS`` mapping action name to payload model, and
    implement one ``_action_<name>`` coroutine per entry taking the validated
    payload. Backend exceptions raised by handlers are wrapped in
    ``BackendCallFailedError``; errors already in the taxonomy pass through.
    """

    ACTIONS: ClassVar[Mapping[str, type[ActionPayload]]] = {}

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(self.ACTIONS)

    def _handler(self, name: str) -> ActionHandler:
        return getattr(self, f"_action_{name}")

    async def action(self, name: str, payload: Any = None) -> Any:
        model = self.ACTIONS.get(name)
        if model is None:
            raise UnsupportedActionError(
                action=name,
                context=ErrorContext(kind=self.kind.value, action=name),
            )

        params = parse_payload(model, payload, action=name)
        handler = self._handler(name)

        try:
            return await handler(params)
        except DroneError:
            raise
        except Exception as exc:
            logger.debug("Action %s on %s failed: %s", name, self.kind.value, exc)
            raise BackendCallFailedError(
                f"{self.kind.value} action '{name}' failed: {exc}",
                backend=self.kind.value,
                context=ErrorContext(kind=self.kind.value, action=name),
                cause=exc,
            ) from exc


__all__ = ["SupportsActions", "ServiceAdapter", "ActionServiceAdapter"]
