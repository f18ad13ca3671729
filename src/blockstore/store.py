"""ContentAddressedStore: immutable blocks keyed by CID over a pluggable backing adapter."""

from __future__ import annotations

import logging
from concurrent import futures
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from blockstore.block import Block, BlockResult
from blockstore.cid import DEFAULT_CODEC, cid_to_key, digest_of, parse_cid
from blockstore.errors import (
    BlockIntegrityError,
    BlockNotFoundError,
    BlockstoreError,
    InvalidItemError,
    OperationCancelledError,
    StoreClosedError,
    UnsupportedOperationError,
)

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Iterable, Iterator
    from types import TracebackType

    from multiformats import CID

    from blockstore.adapters import BackingAdapter

logger = logging.getLogger(__name__)

_CANCELLATION_ERRORS = (TimeoutError, futures.TimeoutError, futures.CancelledError)

_STATE_NEW = "new"
_STATE_OPEN = "open"
_STATE_CLOSED = "closed"


@contextmanager
def _cancellable(operation: str) -> Iterator[None]:
    """Surface caller-imposed cancellation and deadlines as OperationCancelledError."""
    try:
        yield
    except _CANCELLATION_ERRORS as exc:
        raise OperationCancelledError(operation) from exc


def _check_cancel(cancel: threading.Event | None, operation: str) -> None:
    """Raise OperationCancelledError once the caller has set ``cancel``."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError(operation)


def _as_bytes(data: object) -> bytes:
    """Validate and normalize a bytes-like block payload."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        msg = f"Block data must be bytes-like, got {type(data).__name__}."
        raise TypeError(msg)
    return bytes(data)


def _unpack_pair(item: Block | tuple[CID | str, bytes]) -> tuple[CID | str, bytes]:
    """Split a ``put_many`` input into ``(cid, data)``."""
    if isinstance(item, Block):
        return item.cid, item.data
    try:
        cid, data = item
    except (TypeError, ValueError) as exc:
        msg = f"expected a Block or a (cid, data) pair, got {type(item).__name__}"
        raise ValueError(msg) from exc
    return cid, data


def _pair_cid(item: object) -> object:
    """Return the identifier a ``put_many`` input names, or the input itself if it names none."""
    if isinstance(item, Block):
        return item.cid
    if isinstance(item, (tuple, list)) and item:
        return item[0]
    return item


def _reported_cid(item: object, cid_of: Callable[[Any], object] | None) -> object:
    return item if cid_of is None else cid_of(item)


class ContentAddressedStore:
    """Durable storage of immutable blocks keyed by content identifier.

    The store hashes and verifies content; the backing adapter only moves bytes.
    All calls block until the adapter returns. No locking happens at this
    layer: concurrent calls on different identifiers are independent, and
    concurrent writes to the same identifier are last-write-wins as far as the
    adapter is concerned.

    Usage::

        with ContentAddressedStore(InMemoryAdapter()) as store:
            cid = store.put_data(b"hello")
            assert store.get(cid) == b"hello"
    """

    def __init__(
        self,
        adapter: BackingAdapter,
        *,
        verify_on_read: bool = True,
        verify_on_overwrite: bool = True,
    ) -> None:
        """Wrap a backing adapter. Call ``open`` (or use ``with``) before storing blocks."""
        self._adapter = adapter
        self._verify_on_read = verify_on_read
        self._verify_on_overwrite = verify_on_overwrite
        self._state = _STATE_NEW

    @property
    def adapter(self) -> BackingAdapter:
        """Return the backing adapter."""
        return self._adapter

    @property
    def is_open(self) -> bool:
        """Return whether the store accepts data operations."""
        return self._state == _STATE_OPEN

    def __enter__(self) -> ContentAddressedStore:
        """Open the store for a ``with`` block."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Close the store when leaving a ``with`` block."""
        self.close()

    def _require_open(self, operation: str) -> None:
        if self._state != _STATE_OPEN:
            msg = f"Cannot {operation}: store is {self._state}, call open() first."
            raise StoreClosedError(msg)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Connect the adapter and ensure its storage structure exists.

        Idempotent. On failure the store stays unopened; ``close`` still
        releases whatever the adapter managed to acquire.
        """
        if self._state == _STATE_OPEN:
            return
        with _cancellable("open"):
            self._adapter.open()
        self._state = _STATE_OPEN
        logger.info("store_open backend=%s", self._adapter.name)

    def close(self) -> None:
        """Release adapter resources. Closing twice is a no-op."""
        if self._state == _STATE_CLOSED:
            return
        try:
            self._adapter.close()
        finally:
            self._state = _STATE_CLOSED
        logger.info("store_closed backend=%s", self._adapter.name)

    # ------------------------------------------------------------------
    # Single-block operations
    # ------------------------------------------------------------------

    def put(self, cid: CID | str, data: bytes) -> None:
        """Store ``data`` under ``cid``.

        Raise BlockIntegrityError when ``data`` does not hash to ``cid``, or
        when a different payload is already stored under it. Writing the same
        block twice is a no-op.
        """
        self._require_open("put")
        block = Block(cid=parse_cid(cid), data=_as_bytes(data))
        block.verify()
        key = block.key

        with _cancellable("put"):
            if self._adapter.has(key):
                if not self._verify_on_overwrite:
                    logger.debug("put_skip_existing key=%s", key)
                    return
                existing = self._adapter.get(key)
                if existing == block.data:
                    logger.debug("put_skip_identical key=%s", key)
                    return
                if existing is not None:
                    expected = bytes(block.cid.digest).hex()
                    raise BlockIntegrityError(key, expected, digest_of(block.cid, existing).hex())
            self._adapter.put(key, block.data)
        logger.debug("put key=%s size=%d", key, block.size)

    def put_block(self, block: Block) -> None:
        """Store a Block."""
        self.put(block.cid, block.data)

    def put_data(self, data: bytes, *, codec: str = DEFAULT_CODEC) -> CID:
        """Store ``data`` under its derived CID and return the CID."""
        block = Block.from_data(_as_bytes(data), codec=codec)
        self.put_block(block)
        return block.cid

    def get(self, cid: CID | str) -> bytes:
        """Return the bytes stored under ``cid``.

        Raise BlockNotFoundError when absent. With ``verify_on_read`` enabled,
        bytes that no longer hash to ``cid`` raise BlockIntegrityError.
        """
        self._require_open("get")
        parsed = parse_cid(cid)
        key = cid_to_key(parsed)
        with _cancellable("get"):
            data = self._adapter.get(key)
        if data is None:
            raise BlockNotFoundError(key)
        if self._verify_on_read:
            Block(cid=parsed, data=data).verify()
        logger.debug("get key=%s size=%d", key, len(data))
        return data

    def get_block(self, cid: CID | str) -> Block:
        """Return the Block stored under ``cid``."""
        parsed = parse_cid(cid)
        return Block(cid=parsed, data=self.get(parsed))

    def has(self, cid: CID | str) -> bool:
        """Check whether a block exists without fetching its payload."""
        self._require_open("has")
        key = cid_to_key(cid)
        with _cancellable("has"):
            return self._adapter.has(key)

    def delete(self, cid: CID | str) -> None:
        """Remove the block stored under ``cid``. Deleting an absent block is not an error."""
        self._require_open("delete")
        key = cid_to_key(cid)
        with _cancellable("delete"):
            self._adapter.delete(key)
        logger.debug("delete key=%s", key)

    def clear(self) -> None:
        """Remove every stored block. Destructive; intended for tests and resets."""
        self._require_open("clear")
        with _cancellable("clear"):
            self._adapter.clear()
        logger.info("store_cleared backend=%s", self._adapter.name)

    # ------------------------------------------------------------------
    # Streaming operations
    # ------------------------------------------------------------------

    def put_many(
        self,
        pairs: Iterable[Block | tuple[CID | str, bytes]],
        *,
        cancel: threading.Event | None = None,
    ) -> Iterator[BlockResult]:
        """Store each ``(cid, data)`` pair or Block, yielding one result per input in order.

        Raise StoreClosedError right away when the store is not open. Failures
        of individual items, malformed items included, are reported in their
        BlockResult and do not stop the sequence. Setting ``cancel`` aborts
        before the next item with OperationCancelledError. The returned
        iterator is lazy and single-pass.
        """
        self._require_open("put_many")
        return self._stream("put_many", pairs, self._put_item, cancel, cid_of=_pair_cid)

    def get_many(
        self,
        cids: Iterable[CID | str],
        *,
        cancel: threading.Event | None = None,
    ) -> Iterator[BlockResult]:
        """Fetch each CID, yielding one result per input in order."""
        self._require_open("get_many")
        return self._stream("get_many", cids, self._get_item, cancel)

    def delete_many(
        self,
        cids: Iterable[CID | str],
        *,
        cancel: threading.Event | None = None,
    ) -> Iterator[BlockResult]:
        """Delete each CID, yielding one result per input in order."""
        self._require_open("delete_many")
        return self._stream("delete_many", cids, self._delete_item, cancel)

    def _put_item(self, item: Block | tuple[CID | str, bytes]) -> BlockResult:
        cid, data = _unpack_pair(item)
        self.put(cid, data)
        return BlockResult(cid=cid, data=bytes(data))

    def _get_item(self, cid: CID | str) -> BlockResult:
        return BlockResult(cid=cid, data=self.get(cid))

    def _delete_item(self, cid: CID | str) -> BlockResult:
        self.delete(cid)
        return BlockResult(cid=cid)

    def _stream(
        self,
        operation: str,
        items: Iterable[Any],
        run: Callable[[Any], BlockResult],
        cancel: threading.Event | None,
        *,
        cid_of: Callable[[Any], object] | None = None,
    ) -> Iterator[BlockResult]:
        for item in items:
            _check_cancel(cancel, operation)
            try:
                result = run(item)
            except OperationCancelledError:
                raise
            except BlockstoreError as exc:
                result = BlockResult(cid=_reported_cid(item, cid_of), error=exc)
            except (TypeError, ValueError) as exc:
                error = InvalidItemError(operation, item, str(exc))
                error.__cause__ = exc
                result = BlockResult(cid=_reported_cid(item, cid_of), error=error)
            if result.error is not None:
                logger.warning("%s_item_failed cid=%s err=%s", operation, result.cid, result.error)
            yield result

    # ------------------------------------------------------------------
    # Extension points without defined semantics
    # ------------------------------------------------------------------

    def batch(self) -> None:
        """Atomic multi-key batches are not supported."""
        raise UnsupportedOperationError("batch")

    def query(self, *args: object, **kwargs: object) -> None:
        """Range and prefix queries are not supported."""
        raise UnsupportedOperationError("query")

    def query_keys(self, *args: object, **kwargs: object) -> None:
        """Key-only enumeration is not supported."""
        raise UnsupportedOperationError("query_keys")
