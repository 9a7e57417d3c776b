"""Authentication module."""

from rea_deals.auth.dependencies import Actor, get_current_actor
from rea_deals.auth.jwt import get_bearer_token, verify_token

__all__ = [
    "Actor",
    "get_current_actor",
    "get_bearer_token",
    "verify_token",
]
