"""
Authentication - Caller identity for search requests.

Flow:
    Frontend: session sign-in -> bearer token
    Backend: verify token at userinfo endpoint -> caller id (``sub`` claim)
"""

from .deps import UserContext, get_current_user, get_current_user_optional

__all__ = [
    "get_current_user",
    "get_current_user_optional",
    "UserContext",
]
