"""
Top-level package for manager-drone.

A management and health facade over a small set of backend services
(vector database, key-value store, plain containers) with a uniform
status / restart / action surface.
"""

__version__ = "0.1.0"

from .config import Settings, get_settings, load_env
from .errors import (
    BackendCallFailedError,
    DroneError,
    InfraUnavailableError,
    InvalidPayloadError,
    NotFoundError,
    UnsupportedActionError,
    UnsupportedOperationError,
)
from .providers import DockerProvider, InfraProvider
from .registry import Dispatcher, DispatchResult, ServiceDescriptor, ServiceRegistry, build_registry
from .services import ContainerService, MilvusService, RedisService, ServiceAdapter, SupportsActions
from .types import ContainerStatus, RestartResult, ServiceKind, Status, StatusReason

__all__ = [
    "__version__",
    # Config
    "Settings",
    "get_settings",
    "load_env",
    # Types
    "ServiceKind",
    "Status",
    "StatusReason",
    "ContainerStatus",
    "RestartResult",
    # Adapters
    "ServiceAdapter",
    "SupportsActions",
    "MilvusService",
    "RedisService",
    "ContainerService",
    # Infra
    "InfraProvider",
    "DockerProvider",
    # Registry
    "ServiceDescriptor",
    "ServiceRegistry",
    "build_registry",
    "Dispatcher",
    "DispatchResult",
    # Errors
    "DroneError",
    "NotFoundError",
    "InfraUnavailableError",
    "UnsupportedOperationError",
    "UnsupportedActionError",
    "InvalidPayloadError",
    "BackendCallFailedError",
]
