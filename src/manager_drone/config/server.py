"""
HTTP server and authentication configuration.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class AuthConfig:
    """Bearer-token (HS256 JWT) settings."""

    enabled: bool = True
    jwt_secret_base64: str | None = None
    issuer: str = "9AIMASTER"
    audience: str = "9AIDRONE"
    token_ttl_seconds: int = 3600
    leeway_seconds: int = 0

    def __post_init__(self):
        if self.token_ttl_seconds <= 0:
            raise ValueError("token_ttl_seconds must be positive")
        if self.leeway_seconds < 0:
            raise ValueError("leeway_seconds cannot be negative")


@dataclass
class ServerConfig:
    """Where the API listens."""

    host: str = "0.0.0.0"
    port: int = 8080

    def __post_init__(self):
        if self.port < 1 or self.port > 65535:
            raise ValueError("port must be between 1 and 65535")


__all__ = ["AuthConfig", "ServerConfig"]
