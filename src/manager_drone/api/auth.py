"""
Bearer-token authentication for the HTTP surface.

Tokens are HS256 JWTs signed with a shared secret (base64 encoded in
config) and checked for issuer, audience and expiry.
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from authlib.jose import JsonWebToken
from authlib.jose.errors import JoseError
from fastapi import Request

from ..config.server import AuthConfig
from ..errors import ConfigError

logger = logging.getLogger(__name__)

_jwt = JsonWebToken(["HS256"])

MISSING_HEADER = "Missing Authorization header"
INVALID_TOKEN = "Invalid or expired token"


@dataclass(frozen=True)
class AuthResult:
    ok: bool
    claims: dict[str, Any] = field(default_factory=dict)
    reason: str | None = None
    status_code: int = 401


def decode_secret(config: AuthConfig) -> bytes:
    """Decode the shared signing secret."""
    if not config.jwt_secret_base64:
        raise ConfigError("JWT_SECRET_BASE64 is required when authentication is enabled")
    try:
        return base64.b64decode(config.jwt_secret_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigError("JWT_SECRET_BASE64 is not valid base64", cause=exc) from exc


def sign_token(config: AuthConfig, claims: dict[str, Any] | None = None, *, now: int | None = None) -> str:
    """Issue a token with issuer, audience, issued-at and expiry set from config."""
    issued_at = int(time.time()) if now is None else now
    payload = {
        **(claims or {}),
        "iss": config.issuer,
        "aud": config.audience,
        "iat": issued_at,
        "exp": issued_at + config.token_ttl_seconds,
    }
    token = _jwt.encode({"alg": "HS256", "typ": "JWT"}, payload, decode_secret(config))
    return token.decode("ascii")


def verify_token(config: AuthConfig, token: str) -> dict[str, Any] | None:
    """Return the token claims, or None if the token is invalid or expired."""
    options = {
        "iss": {"essential": True, "value": config.issuer},
        "aud": {"essential": True, "value": config.audience},
        "exp": {"essential": True},
    }
    try:
        claims = _jwt.decode(token, decode_secret(config), claims_options=options)
        claims.validate(leeway=config.leeway_seconds)
    except (JoseError, ValueError) as exc:
        logger.debug("JWT verification failed: %s", exc)
        return None
    return dict(claims)


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer ") :].strip() or None


class AuthAdapter:
    async def authenticate(self, request: Request) -> AuthResult:
        raise NotImplementedError


class DisabledAuthAdapter(AuthAdapter):
    """Accepts every request. Local development only."""

    async def authenticate(self, request: Request) -> AuthResult:
        return AuthResult(ok=True)


class JwtAuthAdapter(AuthAdapter):
    def __init__(self, config: AuthConfig) -> None:
        decode_secret(config)  # fail at startup, not on first request
        self.config = config

    async def authenticate(self, request: Request) -> AuthResult:
        token = bearer_token(request)
        if token is None:
            return AuthResult(ok=False, reason=MISSING_HEADER)

        claims = verify_token(self.config, token)
        if claims is None:
            return AuthResult(ok=False, reason=INVALID_TOKEN)
        return AuthResult(ok=True, claims=claims)


def create_auth_adapter(config: AuthConfig) -> AuthAdapter:
    if not config.enabled:
        logger.warning("Authentication is disabled")
        return DisabledAuthAdapter()
    return JwtAuthAdapter(config)


__all__ = [
    "AuthResult",
    "AuthAdapter",
    "DisabledAuthAdapter",
    "JwtAuthAdapter",
    "create_auth_adapter",
    "decode_secret",
    "sign_token",
    "verify_token",
    "bearer_token",
]
