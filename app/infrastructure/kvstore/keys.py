"""Key construction for the shared key-value store."""

import hashlib
import re
from typing import Any

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def escape_glob(value: Any) -> str:
    """Backslash-escape glob metacharacters so ``value`` matches only itself in SCAN."""
    return _GLOB_SPECIAL.sub(r"\\\1", str(value))


class KeyBuilder:
    """Build namespaced store keys.

    ``key`` joins readable parts (``batch:user-1``); ``hashed`` produces a
    fixed-length deterministic key from arbitrary components, for identifiers
    that have no natural id of their own.

    Example:
        KeyBuilder("rate-limit").key("webhook-123")
        # -> 'rate-limit:webhook-123'
        KeyBuilder("dedup").hashed("interaction", workspace_id="w1", user_id="u1")
        # -> 'dedup:interaction:<16 hex chars>'
    """

    def __init__(self, namespace: str):
        self.namespace = namespace

    @property
    def pattern(self) -> str:
        """Glob pattern matching every key in this namespace."""
        return f"{self.namespace}:*"

    def key(self, *parts: Any) -> str:
        return ":".join([self.namespace, *(str(part) for part in parts)])

    def prefix_pattern(self, *parts: Any) -> str:
        """Glob pattern matching every key that starts with ``parts``.

        Parts are escaped, so ids containing ``*``, ``?`` or ``[`` match literally.
        """
        return ":".join([self.namespace, *(escape_glob(part) for part in parts), "*"])

    def strip(self, key: str) -> str:
        """Remove the namespace prefix from a key produced by this builder."""
        prefix = f"{self.namespace}:"
        return key[len(prefix) :] if key.startswith(prefix) else key

    def hashed(self, operation: str, **components: Any) -> str:
        """Build a deterministic hashed key from components.

        Components are sorted by name, so argument order never changes the key.
        """
        key_parts = [self.namespace, operation]
        key_parts.extend(f"{k}={v}" for k, v in sorted(components.items()))
        key_string = "|".join(str(part) for part in key_parts)

        key_hash = hashlib.sha256(key_string.encode()).hexdigest()[:16]

        return f"{self.namespace}:{operation}:{key_hash}"
