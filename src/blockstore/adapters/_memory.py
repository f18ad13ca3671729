"""InMemoryAdapter: dict-based block persistence for development and testing."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


class InMemoryAdapter:
    """In-memory backing adapter.

    Blocks live for the lifetime of the adapter object; ``close`` keeps them so
    a store can be reopened over the same adapter.
    """

    name = "memory"

    def __init__(self) -> None:
        """Initialize an empty adapter."""
        self._blocks: dict[str, bytes] = {}
        self._opened = False

    @classmethod
    def from_preloaded(cls, blocks: Mapping[str, bytes]) -> InMemoryAdapter:
        """Build an adapter holding preloaded ``{key: bytes}`` data."""
        adapter = cls()
        for key, data in blocks.items():
            adapter._blocks[key] = bytes(data)
        return adapter

    @property
    def opened(self) -> bool:
        """Return whether ``open`` has been called since the last ``close``."""
        return self._opened

    def __len__(self) -> int:
        """Return the number of stored blocks."""
        return len(self._blocks)

    def open(self) -> None:
        """Mark the adapter open."""
        self._opened = True

    def close(self) -> None:
        """Mark the adapter closed."""
        self._opened = False

    def put(self, key: str, data: bytes) -> None:
        """Store bytes under ``key``."""
        self._blocks[key] = bytes(data)

    def get(self, key: str) -> bytes | None:
        """Return bytes stored under ``key`` or ``None``."""
        return self._blocks.get(key)

    def has(self, key: str) -> bool:
        """Check whether ``key`` exists."""
        return key in self._blocks

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._blocks.pop(key, None)

    def clear(self) -> None:
        """Remove every block."""
        self._blocks.clear()
