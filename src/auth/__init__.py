"""Authentication module."""

from src.auth.dependencies import get_actor_context, require_admin, require_agent
from src.auth.jwt import create_access_token, verify_token

__all__ = [
    "create_access_token",
    "verify_token",
    "get_actor_context",
    "require_admin",
    "require_agent",
]
