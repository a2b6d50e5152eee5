"""Abstract base class for key-value persistence backends.

This module defines the interface the session repository persists through.
The abstraction hides:
- Storage format (dict, SQLite table)
- Persistence mechanism (in-memory, file)
- Connection management

Values are opaque strings; callers own their serialization.
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend gracefully."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Read a value, or None if the key is absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""

    @abstractmethod
    async def keys(self) -> list[str]:
        """All stored keys."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "KeyValueStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
