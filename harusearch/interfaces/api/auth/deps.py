"""
Authentication Dependencies - Resolve the caller identity from a bearer token.

Session issuance happens elsewhere. The token sent in the Authorization
header is verified against the configured userinfo endpoint and its
``sub`` (or ``id``) claim becomes the opaque caller id used by search.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Header
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from harusearch.config import AuthenticationError, get_settings

logger = logging.getLogger(__name__)


@dataclass
class UserContext:
    """
    Authenticated caller context.

    Only ``user_id`` is consumed by the search core.
    """

    user_id: str
    username: str | None
    access_token: str

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id and self.access_token)


@retry(
    retry=retry_if_exception_type(httpx.TransportError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)
async def _fetch_claims(url: str, token: str) -> httpx.Response:
    """Call the userinfo endpoint, retrying connection-level failures."""
    async with httpx.AsyncClient(timeout=5.0) as client:
        return await client.get(url, headers={"Authorization": f"Bearer {token}"})


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> UserContext:
    """
    Verify the bearer token and return the caller context.

    Expects 'Authorization: Bearer <token>' header.

    Returns:
        UserContext with user_id, username and access_token

    Raises:
        AuthenticationError: Missing or unverifiable token (served as 401)
    """
    if not authorization:
        raise AuthenticationError("Missing authentication header")

    try:
        parts = authorization.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise AuthenticationError("Invalid authentication scheme")

        token = parts[1]
        settings = get_settings()

        response = await _fetch_claims(settings.auth_userinfo_url, token)

        if response.status_code != 200:
            logger.warning("Token validation failed: status=%d", response.status_code)
            raise AuthenticationError("Invalid authentication token")

        claims = response.json()
        user_id = claims.get("sub") or claims.get("id")
        if not user_id:
            raise AuthenticationError("Token does not identify a user")

        return UserContext(
            user_id=str(user_id),
            username=claims.get("username") or claims.get("preferred_username"),
            access_token=token,
        )

    except AuthenticationError:
        raise
    except Exception as e:
        logger.error("Auth error: %s", e)
        raise AuthenticationError("Authentication failed") from e


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> UserContext | None:
    """
    Get caller context if authenticated, None otherwise.

    Search endpoints use this: an anonymous caller simply gets no results.
    """
    if not authorization:
        return None

    try:
        return await get_current_user(authorization)
    except AuthenticationError:
        return None
