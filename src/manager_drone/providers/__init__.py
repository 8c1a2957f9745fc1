"""
Container runtime providers.
"""

from .base import InfraProvider
from .docker import DockerProvider

__all__ = ["InfraProvider", "DockerProvider"]
