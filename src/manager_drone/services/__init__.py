"""
Service adapters.

Each adapter wraps one backend behind the same status / restart / action
surface.
"""

from .base import ActionServiceAdapter, ServiceAdapter, SupportsActions
from .container import ContainerService, container_service_id
from .milvus import MilvusService
from .redis import RedisService

__all__ = [
    "ServiceAdapter",
    "ActionServiceAdapter",
    "SupportsActions",
    "MilvusService",
    "RedisService",
    "ContainerService",
    "container_service_id",
]
