"""Typed errors for blockstore."""


class BlockstoreError(Exception):
    """Base exception for all blockstore errors."""


class StoreConnectionError(BlockstoreError, ConnectionError):
    """Raised when the backing store cannot be reached."""

    def __init__(self, backend: str, detail: str) -> None:
        """Initialize with the backend name and a failure description."""
        self.backend = backend
        self.detail = detail
        super().__init__(f"Cannot connect to {backend} backend: {detail}")


class ProvisioningError(BlockstoreError):
    """Raised when the storage structure (table, directory) cannot be created."""

    def __init__(self, backend: str, detail: str) -> None:
        """Initialize with the backend name and a failure description."""
        self.backend = backend
        self.detail = detail
        super().__init__(f"Cannot provision {backend} storage: {detail}")


class BlockNotFoundError(BlockstoreError):
    """Raised when no block is stored under a content identifier."""

    def __init__(self, key: str) -> None:
        """Initialize with the missing block's key."""
        self.key = key
        super().__init__(f"Block not found: {key}")


class BlockIntegrityError(BlockstoreError):
    """Raised when block bytes do not hash to their content identifier."""

    def __init__(self, key: str, expected: str, actual: str) -> None:
        """Initialize with the block key and the mismatched digests."""
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"Block integrity check failed for {key}: expected digest={expected}, got {actual}")


class BackendError(BlockstoreError):
    """Raised on a transport or storage failure inside a backing adapter.

    The operation may be retried at the caller's discretion; blockstore never
    retries on its own.
    """

    def __init__(self, backend: str, operation: str, detail: str) -> None:
        """Initialize with the backend, the failed operation and a description."""
        self.backend = backend
        self.operation = operation
        self.detail = detail
        super().__init__(f"{backend} backend failed during {operation}: {detail}")


class OperationCancelledError(BlockstoreError):
    """Raised when a caller-issued cancellation or deadline interrupts an operation."""

    def __init__(self, operation: str) -> None:
        """Initialize with the interrupted operation's name."""
        self.operation = operation
        super().__init__(f"Operation cancelled: {operation}")


class UnsupportedOperationError(BlockstoreError, NotImplementedError):
    """Raised by extension points that have no defined semantics yet."""

    def __init__(self, operation: str) -> None:
        """Initialize with the unsupported operation's name."""
        self.operation = operation
        super().__init__(f"Operation not supported: {operation}")


class InvalidIdentifierError(BlockstoreError, ValueError):
    """Raised when a value cannot be parsed as a content identifier."""

    def __init__(self, value: object, detail: str) -> None:
        """Initialize with the rejected value and the parse failure."""
        self.value = value
        self.detail = detail
        super().__init__(f"Invalid content identifier {value!r}: {detail}")


class StoreClosedError(BlockstoreError):
    """Raised when a data operation runs on a store that is not open."""


class InvalidItemError(BlockstoreError, ValueError):
    """Raised for a malformed input item of a streaming operation.

    Reported inside that item's BlockResult so the stream keeps going.
    """

    def __init__(self, operation: str, item: object, detail: str) -> None:
        """Initialize with the streaming operation, the rejected item and the reason."""
        self.operation = operation
        self.item = item
        self.detail = detail
        super().__init__(f"Invalid {operation} item {item!r}: {detail}")
