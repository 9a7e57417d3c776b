"""
FastAPI dependencies for authentication.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from rea_deals.auth.jwt import get_bearer_token, verify_token
from rea_deals.errors import AuthenticationError, InvalidTokenError


@dataclass(frozen=True)
class Actor:
    """An already-authenticated caller."""

    id: str
    role: Optional[str] = None


async def get_current_actor(request: Request) -> Actor:
    """
    Get the authenticated caller from the bearer token.

    Raises 401 if no token is sent, 403 if it does not verify.
    """
    token = get_bearer_token(request)
    if not token:
        raise AuthenticationError("Access token is required")

    payload = verify_token(token)
    if not payload:
        raise InvalidTokenError("Invalid or expired token")

    return Actor(id=payload["actor_id"], role=payload["role"])
