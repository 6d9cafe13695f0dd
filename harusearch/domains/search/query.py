"""
Query Sanitization - Normalize free text before it reaches any store.
"""

from __future__ import annotations

import re

__all__ = ["sanitize", "to_match_expression"]

_UNSAFE = re.compile(r"[^\w\s]")


def sanitize(raw: str | None) -> str:
    """
    Strip everything except word characters and whitespace, then trim.

    An empty result means "no query": callers return no results rather
    than raising.

    Example:
        >>> sanitize("  romance!! (kai) ")
        'romance kai'
    """
    if not raw:
        return ""
    return _UNSAFE.sub("", raw).strip()


def to_match_expression(query: str) -> str:
    """
    Build an FTS5 MATCH expression requiring every token.

    Tokens are quoted so words like AND, OR, NOT or NEAR are matched as
    text instead of being parsed as operators.

    Example:
        >>> to_match_expression("romance AND kai")
        '"romance" "AND" "kai"'
    """
    return " ".join(f'"{token}"' for token in sanitize(query).split())
