"""Unit tests for KeyBuilder.

Tests cover:
- Readable key construction and namespace patterns
- Escaped prefix patterns for ids with glob characters
- Prefix stripping
- Deterministic hashed keys independent of argument order
"""

import pytest

from infrastructure.kvstore import KeyBuilder, escape_glob


@pytest.mark.unit
class TestKeyBuilder:
    """Tests for KeyBuilder."""

    def test_key_joins_parts(self):
        assert KeyBuilder("quiet-hours").key("u1", 1700000000000) == (
            "quiet-hours:u1:1700000000000"
        )

    def test_pattern(self):
        assert KeyBuilder("batch").pattern == "batch:*"

    def test_prefix_pattern_escapes_glob_characters(self):
        assert KeyBuilder("quiet-hours").prefix_pattern("u[1]*?") == r"quiet-hours:u\[1\]\*\?:*"

    def test_escape_glob_only_touches_metacharacters(self):
        assert escape_glob("user-1") == "user-1"
        assert escape_glob("a\\b") == "a\\\\b"

    def test_strip_removes_namespace(self):
        keys = KeyBuilder("batch")

        assert keys.strip("batch:user-1") == "user-1"
        assert keys.strip("other:user-1") == "other:user-1"

    def test_hashed_is_deterministic_and_order_independent(self):
        keys = KeyBuilder("interaction")

        first = keys.hashed("composite", user_id="u1", workspace_id="w1")
        second = keys.hashed("composite", workspace_id="w1", user_id="u1")

        assert first == second
        assert first.startswith("interaction:composite:")
        assert len(first.rsplit(":", 1)[1]) == 16

    def test_hashed_differs_by_component(self):
        keys = KeyBuilder("interaction")

        assert keys.hashed("composite", user_id="u1") != keys.hashed(
            "composite", user_id="u2"
        )
