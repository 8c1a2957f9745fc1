"""
Error taxonomy for manager-drone.

This module provides a hierarchical exception system with:
- Error codes for programmatic handling
- An HTTP status per error kind for the API layer
- Retryable vs non-retryable classification
- Structured context for debugging

Probe failures are NOT exceptions: they are encoded as a ``StatusReason`` on
an ``ok=False`` status (see ``manager_drone.types``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes."""

    # Lookup errors (1xxx)
    NOT_FOUND = "ERR_1000"

    # Infrastructure errors (2xxx)
    INFRA_UNAVAILABLE = "ERR_2000"

    # Client errors (3xxx)
    UNSUPPORTED_OPERATION = "ERR_3000"
    UNSUPPORTED_ACTION = "ERR_3001"
    INVALID_PAYLOAD = "ERR_3002"

    # Backend errors (4xxx)
    BACKEND_CALL_FAILED = "ERR_4000"

    # Auth errors (5xxx)
    AUTHENTICATION = "ERR_5000"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    INVALID_CONFIG = "ERR_6001"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    service_id: str | None = None
    kind: str | None = None
    operation: str | None = None
    action: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_id": self.service_id,
            "kind": self.kind,
            "operation": self.operation,
            "action": self.action,
            **self.extra,
        }


class DroneError(Exception):
    """
    Base exception for all manager-drone errors.

    Attributes:
        code: Standardized error code for programmatic handling
        name: Short snake_case name used in API error bodies
        message: Human-readable error message
        http_status: Status code the API layer answers with
        retryable: Whether the operation can be retried
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    name: str = "internal_error"
    http_status: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.service_id:
            parts.append(f"(service_id={self.context.service_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error": self.name,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Lookup Errors
# =============================================================================


class NotFoundError(DroneError):
    """Unknown service id. Never retried."""

    code = ErrorCode.NOT_FOUND
    name = "not_found"
    http_status = 404

    def __init__(
        self,
        message: str = "Service not found",
        *,
        service_id: str | None = None,
        **kwargs,
    ):
        if service_id:
            message = f"Service not found: {service_id}"
            kwargs.setdefault("context", ErrorContext(service_id=service_id))
        super().__init__(message, **kwargs)
        self.service_id = service_id


# =============================================================================
# Infrastructure Errors
# =============================================================================


class InfraUnavailableError(DroneError):
    """Container runtime unreachable or erroring. Surfaced, not retried here."""

    code = ErrorCode.INFRA_UNAVAILABLE
    name = "infra_unavailable"
    http_status = 503

    def __init__(
        self,
        message: str = "Container runtime unavailable",
        *,
        provider: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.provider = provider


# =============================================================================
# Client Errors
# =============================================================================


class UnsupportedOperationError(DroneError):
    """The operation does not exist for this adapter (e.g. restart without a container)."""

    code = ErrorCode.UNSUPPORTED_OPERATION
    name = "unsupported_operation"
    http_status = 400


class UnsupportedActionError(DroneError):
    """The named action is unknown to the adapter, or the adapter has no actions."""

    code = ErrorCode.UNSUPPORTED_ACTION
    name = "action_not_supported"
    http_status = 400

    def __init__(
        self,
        message: str = "Action not supported",
        *,
        action: str | None = None,
        **kwargs,
    ):
        if action:
            message = f"Unsupported action: {action}"
        super().__init__(message, **kwargs)
        self.action = action


class InvalidPayloadError(DroneError):
    """Required action fields are missing or malformed."""

    code = ErrorCode.INVALID_PAYLOAD
    name = "invalid_payload"
    http_status = 400

    def __init__(
        self,
        message: str = "Invalid payload",
        *,
        action: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.action = action
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        if self.errors:
            d["errors"] = self.errors
        return d


# =============================================================================
# Backend Errors
# =============================================================================


class BackendCallFailedError(DroneError):
    """A protocol call outside the status probe failed. Not retried automatically."""

    code = ErrorCode.BACKEND_CALL_FAILED
    name = "backend_call_failed"
    http_status = 502

    def __init__(
        self,
        message: str = "Backend call failed",
        *,
        backend: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.backend = backend


# =============================================================================
# Auth Errors
# =============================================================================


class AuthenticationError(DroneError):
    """Missing, invalid or expired bearer token."""

    code = ErrorCode.AUTHENTICATION
    name = "unauthorized"
    http_status = 401


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(DroneError):
    """Base class for configuration errors."""

    code = ErrorCode.CONFIG_ERROR
    name = "config_error"


class InvalidConfigError(ConfigError):
    """Configuration is invalid."""

    code = ErrorCode.INVALID_CONFIG
    name = "invalid_config"


__all__ = [
    # Base
    "ErrorCode",
    "ErrorContext",
    "DroneError",
    # Lookup
    "NotFoundError",
    # Infra
    "InfraUnavailableError",
    # Client
    "UnsupportedOperationError",
    "UnsupportedActionError",
    "InvalidPayloadError",
    # Backend
    "BackendCallFailedError",
    # Auth
    "AuthenticationError",
    # Config
    "ConfigError",
    "InvalidConfigError",
]
