"""BackingAdapter: protocol for raw block persistence backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class BackingAdapter(Protocol):
    """Raw key/bytes persistence used by ContentAddressedStore.

    Keys are canonical CID strings; adapters never hash or verify content.
    Implementations translate their own failures into ``StoreConnectionError``,
    ``ProvisioningError`` or ``BackendError`` and let ``TimeoutError`` and
    ``concurrent.futures.CancelledError`` propagate untouched.
    """

    name: str

    def open(self) -> None:
        """Connect and make sure the storage structure exists. Must be idempotent."""
        ...

    def close(self) -> None:
        """Release held resources. Safe after a failed ``open`` and when already closed."""
        ...

    def put(self, key: str, data: bytes) -> None:
        """Write ``data`` under ``key``, replacing any previous value."""
        ...

    def get(self, key: str) -> bytes | None:
        """Read the bytes stored under ``key``, or ``None`` when absent."""
        ...

    def has(self, key: str) -> bool:
        """Check whether ``key`` exists without fetching its payload where possible."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``. Removing an absent key is not an error."""
        ...

    def clear(self) -> None:
        """Remove every stored block."""
        ...
