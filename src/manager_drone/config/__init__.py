"""
Configuration system for manager-drone.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable loading (with .env support)
- YAML/TOML file loading validated against a JSON schema
- Sensible defaults with override capability
"""

from .base import LogFormat, LogLevel
from .logging import LoggingConfig
from .server import AuthConfig, ServerConfig
from .services import ContainerServiceConfig, DockerConfig, FeatureFlags, MilvusConfig, RedisConfig
from .settings import Settings, configure, get_settings, load_env

__all__ = [
    # Types
    "LogLevel",
    "LogFormat",
    # Backend configs
    "MilvusConfig",
    "RedisConfig",
    "DockerConfig",
    "ContainerServiceConfig",
    "FeatureFlags",
    # Other configs
    "AuthConfig",
    "ServerConfig",
    "LoggingConfig",
    # Master config
    "Settings",
    # Global functions
    "get_settings",
    "configure",
    "load_env",
]
