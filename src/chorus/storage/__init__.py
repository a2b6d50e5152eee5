"""Key-value persistence backends for sessions and preferences."""

from .base import KeyValueStore
from .factory import create_key_value_store
from .in_memory import InMemoryKeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "create_key_value_store",
]
