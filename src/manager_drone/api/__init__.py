"""HTTP surface for manager-drone."""

from .app import create_app
from .auth import sign_token, verify_token

__all__ = ["create_app", "sign_token", "verify_token"]
