"""Tests for query sanitization."""

import pytest

from .query import sanitize, to_match_expression


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("romance", "romance"),
        ("  romance  ", "romance"),
        ("romance!! (kai)", "romance kai"),
        ('"; DROP TABLE users; --', "DROP TABLE users"),
        ("café naïve", "café naïve"),
        ("snake_case", "snake_case"),
        ("!!!", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_sanitize(raw, expected):
    assert sanitize(raw) == expected


def test_sanitize_is_idempotent():
    raw = "  what's *new* with kai?? "
    assert sanitize(sanitize(raw)) == sanitize(raw)


def test_match_expression_quotes_tokens():
    """Operator words are matched as plain text."""
    assert to_match_expression("romance AND kai") == '"romance" "AND" "kai"'
    assert to_match_expression("near NOT") == '"near" "NOT"'


def test_match_expression_empty_for_blank_query():
    assert to_match_expression("   ") == ""
    assert to_match_expression("?!") == ""
