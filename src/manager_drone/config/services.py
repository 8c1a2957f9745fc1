"""
Backend and container-runtime configuration classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class MilvusConfig:
    """Connection and probing settings for the vector database."""

    host: str = "127.0.0.1"
    port: int = 19530
    username: str | None = None
    password: str | None = None
    db: str | None = None

    # Only used when a container runtime is configured
    container_name: str | None = None

    # Warm-up behavior after restarts
    warmup_retries: int = 4
    warmup_backoff: float = 0.4  # seconds, multiplied by the retry index

    # Timeouts (seconds)
    probe_timeout: float = 0.8
    call_timeout: float = 10.0

    # TLS
    ssl: bool = False
    tls_ca_pem_path: str | None = None
    client_cert_path: str | None = None  # mTLS only
    client_key_path: str | None = None  # mTLS only
    sni_servername: str | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.host:
            raise ValueError("host is required")
        if self.port < 1 or self.port > 65535:
            raise ValueError("port must be between 1 and 65535")
        if self.warmup_retries < 0:
            raise ValueError("warmup_retries cannot be negative")
        if self.warmup_backoff < 0:
            raise ValueError("warmup_backoff cannot be negative")
        if self.probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive")
        if self.call_timeout <= 0:
            raise ValueError("call_timeout must be positive")
        if bool(self.client_cert_path) != bool(self.client_key_path):
            raise ValueError("client_cert_path and client_key_path must be set together")

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def uri(self) -> str:
        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"


@dataclass
class RedisConfig:
    """Connection settings for the key-value store."""

    host: str = "127.0.0.1"
    port: int = 6379
    password: str | None = None
    db: int = 0

    # Optional unix socket path; takes precedence over host/port
    socket_path: str | None = None

    # Timeouts (seconds)
    socket_timeout: float = 5.0
    connect_timeout: float = 2.0

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.port < 1 or self.port > 65535:
            raise ValueError("port must be between 1 and 65535")
        if self.db < 0:
            raise ValueError("db cannot be negative")
        if self.socket_timeout <= 0 or self.connect_timeout <= 0:
            raise ValueError("timeouts must be positive")

    @property
    def address(self) -> str:
        if self.socket_path:
            return f"unix://{self.socket_path}"
        return f"{self.host}:{self.port}"


@dataclass
class DockerConfig:
    """Container runtime endpoint."""

    socket_path: str = "/var/run/docker.sock"
    host: str | None = None  # e.g. tcp://10.0.0.5:2375; overrides socket_path
    timeout: float = 30.0

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @property
    def base_url(self) -> str:
        return self.host or f"unix://{self.socket_path}"


@dataclass
class ContainerServiceConfig:
    """Extra containers exposed as restart-only services."""

    containers: list[str] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.containers, str):
            self.containers = [c.strip() for c in self.containers.split(",") if c.strip()]


@dataclass
class FeatureFlags:
    """Static flags evaluated once when the registry is built."""

    enable_milvus: bool = False
    enable_redis: bool = False


__all__ = [
    "MilvusConfig",
    "RedisConfig",
    "DockerConfig",
    "ContainerServiceConfig",
    "FeatureFlags",
]
