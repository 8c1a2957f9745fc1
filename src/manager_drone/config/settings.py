"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from ..errors import InvalidConfigError
from .base import env_bool, env_csv
from .logging import LoggingConfig
from .server import AuthConfig, ServerConfig
from .services import ContainerServiceConfig, DockerConfig, FeatureFlags, MilvusConfig, RedisConfig

DEFAULT_MILVUS_CONTAINER = "milvus-standalone"


@dataclass
class Settings:
    """
    Master configuration for the drone.

    This aggregates all configuration sections into a single object
    that can be loaded from environment variables, files, or constructed
    programmatically. It is read once at startup; the registry is built
    from it and never consults it again.
    """

    features: FeatureFlags = field(default_factory=FeatureFlags)

    # Backends
    milvus: MilvusConfig = field(default_factory=MilvusConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)

    # Container runtime
    docker: DockerConfig = field(default_factory=DockerConfig)
    containers: ContainerServiceConfig = field(default_factory=ContainerServiceConfig)

    # HTTP surface
    auth: AuthConfig = field(default_factory=AuthConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, prefix: str = "") -> Settings:
        """
        Load settings from environment variables.

        Variable names match the deployment environment of the drone
        (``ENABLE_MILVUS``, ``MILVUS_HOST``, ``REDIS_PORT``, ...). An optional
        prefix can namespace them.

        Raises:
            InvalidConfigError: if a value cannot be parsed or fails validation
        """

        def get(name: str, default: str | None = None) -> str | None:
            value = os.getenv(f"{prefix}{name}")
            return value if value not in (None, "") else default

        try:
            features = FeatureFlags(
                enable_milvus=bool(env_bool(f"{prefix}ENABLE_MILVUS", False)),
                enable_redis=bool(env_bool(f"{prefix}ENABLE_REDIS", False)),
            )

            milvus = MilvusConfig(
                host=get("MILVUS_HOST", "127.0.0.1"),
                port=int(get("MILVUS_PORT", "19530")),
                username=get("MILVUS_USERNAME"),
                password=get("MILVUS_PASSWORD"),
                db=get("MILVUS_DB"),
                container_name=get("MILVUS_CONTAINER_NAME", DEFAULT_MILVUS_CONTAINER),
                warmup_retries=int(get("MILVUS_WARMUP_RETRIES", "4")),
                warmup_backoff=int(get("MILVUS_WARMUP_BACKOFF_MS", "400")) / 1000.0,
                ssl=bool(env_bool(f"{prefix}MILVUS_SSL", False)),
                tls_ca_pem_path=get("MILVUS_TLS_CA_PEM_PATH"),
                client_cert_path=get("MILVUS_CLIENT_CERT_PATH"),
                client_key_path=get("MILVUS_CLIENT_KEY_PATH"),
                sni_servername=get("MILVUS_SNI_SERVERNAME"),
            )

            redis = RedisConfig(
                host=get("REDIS_HOST", "127.0.0.1"),
                port=int(get("REDIS_PORT", "6379")),
                password=get("REDIS_PASSWORD"),
                db=int(get("REDIS_DB", "0")),
                socket_path=get("REDIS_SOCKET_PATH"),
            )

            docker = DockerConfig(
                socket_path=get("DOCKER_SOCKET", "/var/run/docker.sock"),
                host=get("DOCKER_HOST"),
            )

            containers = ContainerServiceConfig(containers=list(env_csv(f"{prefix}MANAGED_CONTAINERS")))

            auth = AuthConfig(
                enabled=bool(env_bool(f"{prefix}AUTH_ENABLED", True)),
                jwt_secret_base64=get("JWT_SECRET_BASE64"),
            )

            server = ServerConfig(
                host=get("HOST", "0.0.0.0"),
                port=int(get("PORT", "8080")),
            )

            logging_config = LoggingConfig(
                level=(get("LOG_LEVEL", "INFO") or "INFO").upper(),  # type: ignore[arg-type]
                format=(get("LOG_FORMAT", "text") or "text").lower(),  # type: ignore[arg-type]
            )
        except ValueError as exc:
            raise InvalidConfigError(f"Invalid environment configuration: {exc}", cause=exc) from exc

        return cls(
            features=features,
            milvus=milvus,
            redis=redis,
            docker=docker,
            containers=containers,
            auth=auth,
            server=server,
            logging=logging_config,
        )

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)

        Returns:
            Settings object with values from file
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            try:
                import yaml  # type: ignore[import-untyped]
            except ImportError as exc:
                raise ImportError("PyYAML is required for YAML config files: pip install pyyaml") from exc
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            try:
                import tomllib
            except ImportError:
                try:
                    import tomli as tomllib
                except ImportError as exc:
                    raise ImportError("tomli is required for TOML config files: pip install tomli") from exc
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The dictionary is validated against the configuration schema before
        any section is constructed.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise InvalidConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        sections: dict[str, type] = {
            "features": FeatureFlags,
            "milvus": MilvusConfig,
            "redis": RedisConfig,
            "docker": DockerConfig,
            "containers": ContainerServiceConfig,
            "auth": AuthConfig,
            "server": ServerConfig,
            "logging": LoggingConfig,
        }

        kwargs: dict[str, Any] = {}
        for name, section_cls in sections.items():
            if name in data:
                try:
                    kwargs[name] = section_cls(**data[name])
                except (TypeError, ValueError) as e:
                    raise InvalidConfigError(f"Invalid '{name}' section: {e}", cause=e) from e

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary, with secrets masked."""
        import dataclasses

        from ..logging import redact_secret

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return {k: convert(v) for k, v in dataclasses.asdict(obj).items()}
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        data = convert(self)
        data["milvus"]["password"] = redact_secret(self.milvus.password)
        data["redis"]["password"] = redact_secret(self.redis.password)
        data["auth"]["jwt_secret_base64"] = redact_secret(self.auth.jwt_secret_base64)
        return data


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from the environment if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None) -> Settings:
    """Install ``settings`` (or freshly loaded environment settings) as the global instance."""
    global _global_settings
    _global_settings = settings if settings is not None else Settings.from_env()
    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "load_env"]
