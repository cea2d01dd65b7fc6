"""
Request authentication for the TRVL API.

Callers send the Supabase session token as "Authorization: Bearer <token>".
The token is checked against Supabase Auth with the service client; the
onboarding routes only need the resulting user id.
"""

import logging

from fastapi import HTTPException, Header
from pydantic import BaseModel

from trvl.db.client import get_service_client

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


class AuthenticatedUser(BaseModel):
    """The traveler behind a request."""
    id: str
    email: str | None = None
    access_token: str


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def parse_bearer_token(authorization: str | None) -> str:
    """Extract the token from an Authorization header (scheme is case-insensitive)."""
    if not authorization:
        raise _unauthorized("Missing authorization header")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != BEARER_SCHEME or not token:
        raise _unauthorized("Invalid authorization format")

    return token


async def get_current_user(authorization: str | None = Header(None)) -> AuthenticatedUser:
    """FastAPI dependency: resolve the Supabase user for this request."""
    access_token = parse_bearer_token(authorization)

    try:
        user_response = get_service_client().auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Token validation failed: {e}")
        raise _unauthorized("Invalid or expired token")

    user = getattr(user_response, "user", None)
    if user is None or not user.id:
        raise _unauthorized("Invalid or expired token")

    logger.debug(f"Authenticated user {user.id}")
    return AuthenticatedUser(
        id=str(user.id),
        email=getattr(user, "email", None) or None,
        access_token=access_token,
    )
