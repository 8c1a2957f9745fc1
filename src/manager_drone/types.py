"""
Core value types shared by adapters, providers and the registry.

These types give every backend the same result shapes regardless of the
protocol spoken underneath.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ServiceKind(str, Enum):
    """Backend kinds an adapter can be constructed for."""

    MILVUS = "milvus"
    REDIS = "redis"
    CONTAINER = "container"


class StatusReason(str, Enum):
    """Fixed vocabulary explaining why a status probe failed."""

    CONTAINER_NOT_RUNNING = "container_not_running"
    TCP_UNREACHABLE = "tcp_unreachable"
    GRPC_UNAVAILABLE = "grpc_unavailable"
    INFRA_UNAVAILABLE = "infra_unavailable"
    BACKEND_UNAVAILABLE = "backend_unavailable"


@dataclass(frozen=True)
class Status:
    """Fully resolved result of a status probe."""

    ok: bool
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> StatusReason | None:
        raw = self.details.get("reason")
        return StatusReason(raw) if raw is not None else None

    @classmethod
    def healthy(cls, **details: Any) -> Status:
        return cls(ok=True, details=details)

    @classmethod
    def failed(cls, reason: StatusReason, **details: Any) -> Status:
        return cls(ok=False, details={**details, "reason": reason.value})

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "details": dict(self.details)}


@dataclass(frozen=True)
class ContainerStatus:
    """Container-level liveness as reported by an InfraProvider."""

    running: bool
    state: Any = None

    @classmethod
    def not_found(cls) -> ContainerStatus:
        return cls(running=False, state={"error": "not_found"})

    def to_dict(self) -> dict[str, Any]:
        return {"running": self.running, "state": self.state}


@dataclass(frozen=True)
class RestartResult:
    """Acknowledgment of a restart request."""

    message: str
    provider_status: Any = None
    supported: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "provider_status": self.provider_status,
            "supported": self.supported,
        }


@dataclass(frozen=True)
class ActionRequest:
    """A named action with its free-form payload, validated by the adapter."""

    name: str
    payload: Any = None


__all__ = [
    "ServiceKind",
    "StatusReason",
    "Status",
    "ContainerStatus",
    "RestartResult",
    "ActionRequest",
]
