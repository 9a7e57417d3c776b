"""
Bearer token verification.

Tokens are issued by the upstream auth service; this module only checks
the signature and expiry and extracts the actor id.
"""

from typing import Optional

from jose import JWTError, jwt

from rea_deals.config import settings

TOKEN_TYPE = "access"


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Dict with 'actor_id' (the token subject) and optional 'role',
        or None if token is invalid/expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    # Tokens without a type claim are accepted; others must be access tokens
    token_type = payload.get("type")
    if token_type is not None and token_type != TOKEN_TYPE:
        return None

    actor_id = payload.get("sub") or payload.get("id")
    if not actor_id:
        return None

    return {
        "actor_id": str(actor_id),
        "role": payload.get("role"),
    }


def get_bearer_token(request) -> Optional[str]:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header.

    Args:
        request: FastAPI Request object

    Returns:
        Token string or None
    """
    header = request.headers.get("Authorization")
    if not header:
        return None

    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
