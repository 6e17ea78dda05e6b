"""Shared key-value store with TTL semantics.

Exports:
    KeyValueStore: Abstract interface
    KeyValueStoreError: Single error type raised by every backend
    InMemoryKeyValueStore: Development/test backend
    RedisKeyValueStore: Production backend
    KeyBuilder: Namespaced key construction
    create_store: Factory selecting the backend from settings
"""

from infrastructure.kvstore.base import KeyValueStore, KeyValueStoreError
from infrastructure.kvstore.factory import create_store
from infrastructure.kvstore.keys import KeyBuilder, escape_glob
from infrastructure.kvstore.memory import InMemoryKeyValueStore
from infrastructure.kvstore.redis_store import RedisKeyValueStore

__all__ = [
    "KeyValueStore",
    "KeyValueStoreError",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "KeyBuilder",
    "escape_glob",
    "create_store",
]
