"""Tests for ContentAddressedStore."""

import threading
from concurrent import futures

import pytest

from blockstore.adapters import InMemoryAdapter
from blockstore.block import Block
from blockstore.cid import cid_to_key, compute_cid
from blockstore.errors import (
    BackendError,
    BlockIntegrityError,
    BlockNotFoundError,
    InvalidIdentifierError,
    InvalidItemError,
    OperationCancelledError,
    ProvisioningError,
    StoreClosedError,
    UnsupportedOperationError,
)
from blockstore.store import ContentAddressedStore


class _RecordingAdapter(InMemoryAdapter):
    """InMemoryAdapter that records calls and fails writes for chosen keys."""

    def __init__(self, *, failing_keys: frozenset[str] = frozenset()) -> None:
        super().__init__()
        self.calls: list[tuple[str, str]] = []
        self.close_calls = 0
        self._failing_keys = failing_keys

    def put(self, key: str, data: bytes) -> None:
        self.calls.append(("put", key))
        if key in self._failing_keys:
            raise BackendError(self.name, "put", "injected failure")
        super().put(key, data)

    def get(self, key: str) -> bytes | None:
        self.calls.append(("get", key))
        return super().get(key)

    def has(self, key: str) -> bool:
        self.calls.append(("has", key))
        return super().has(key)

    def close(self) -> None:
        self.close_calls += 1
        super().close()


class _RaisingAdapter(InMemoryAdapter):
    """InMemoryAdapter whose reads raise a chosen exception."""

    def __init__(self, exc: BaseException) -> None:
        super().__init__()
        self._exc = exc

    def get(self, key: str) -> bytes | None:
        raise self._exc


class _BrokenOpenAdapter(InMemoryAdapter):
    def __init__(self) -> None:
        super().__init__()
        self.close_calls = 0

    def open(self) -> None:
        raise ProvisioningError(self.name, "cannot create namespace")

    def close(self) -> None:
        self.close_calls += 1


def _open_store(adapter: InMemoryAdapter | None = None, **kwargs: bool) -> ContentAddressedStore:
    store = ContentAddressedStore(adapter if adapter is not None else InMemoryAdapter(), **kwargs)
    store.open()
    return store


# =============================================================================
# Single-block operations
# =============================================================================


def test_put_then_get_hello() -> None:
    store = _open_store()
    cid = compute_cid(b"hello")
    store.put(cid, b"hello")
    assert store.get(cid) == b"hello"


@pytest.mark.parametrize(
    "data",
    [
        pytest.param(b"", id="empty"),
        pytest.param(b"\x00\xff" * 1024, id="binary"),
        pytest.param("héllo wörld".encode(), id="utf8"),
    ],
)
def test_round_trip(data: bytes) -> None:
    store = _open_store()
    cid = compute_cid(data)
    store.put(cid, data)
    assert store.get(cid) == data


def test_get_never_written_raises_not_found() -> None:
    store = _open_store()
    cid = compute_cid(b"never written")
    with pytest.raises(BlockNotFoundError) as exc_info:
        store.get(cid)
    assert exc_info.value.key == cid_to_key(cid)


def test_has_missing_on_empty_store_is_false() -> None:
    store = _open_store()
    assert store.has(compute_cid(b"missing")) is False


def test_has_existing_is_true() -> None:
    store = _open_store()
    cid = store.put_data(b"present")
    assert store.has(cid) is True


def test_has_does_not_fetch_payload() -> None:
    adapter = _RecordingAdapter()
    store = _open_store(adapter)
    cid = store.put_data(b"big payload")
    adapter.calls.clear()

    assert store.has(cid) is True
    assert [name for name, _ in adapter.calls] == ["has"]


def test_delete_on_empty_store_succeeds() -> None:
    store = _open_store()
    store.delete(compute_cid(b"x"))


def test_delete_is_idempotent() -> None:
    store = _open_store()
    cid = store.put_data(b"to delete")
    store.delete(cid)
    store.delete(cid)
    assert store.has(cid) is False


def test_put_same_block_twice_is_noop() -> None:
    adapter = InMemoryAdapter()
    store = _open_store(adapter)
    cid = compute_cid(b"same")
    store.put(cid, b"same")
    store.put(cid, b"same")
    assert len(adapter) == 1
    assert store.get(cid) == b"same"


def test_put_rejects_bytes_that_do_not_match_cid() -> None:
    adapter = InMemoryAdapter()
    store = _open_store(adapter)
    with pytest.raises(BlockIntegrityError):
        store.put(compute_cid(b"claimed"), b"actual")
    assert len(adapter) == 0


def test_put_rejects_overwrite_of_different_stored_bytes() -> None:
    cid = compute_cid(b"genuine")
    adapter = InMemoryAdapter.from_preloaded({cid_to_key(cid): b"corrupted"})
    store = _open_store(adapter)
    with pytest.raises(BlockIntegrityError):
        store.put(cid, b"genuine")
    assert adapter.get(cid_to_key(cid)) == b"corrupted"


def test_put_without_overwrite_verification_skips_existing_key() -> None:
    cid = compute_cid(b"genuine")
    adapter = _RecordingAdapter()
    adapter.put(cid_to_key(cid), b"corrupted")
    adapter.calls.clear()
    store = _open_store(adapter, verify_on_overwrite=False)

    store.put(cid, b"genuine")

    assert [name for name, _ in adapter.calls] == ["has"]


def test_put_rejects_non_bytes() -> None:
    store = _open_store()
    with pytest.raises(TypeError, match="bytes-like"):
        store.put(compute_cid(b"x"), "x")  # type: ignore[arg-type]


def test_put_accepts_string_cid() -> None:
    store = _open_store()
    key = cid_to_key(compute_cid(b"by string"))
    store.put(key, b"by string")
    assert store.get(key) == b"by string"


def test_put_rejects_invalid_cid_string() -> None:
    store = _open_store()
    with pytest.raises(InvalidIdentifierError):
        store.put("bafy!!!!", b"data")


def test_put_data_and_get_block() -> None:
    store = _open_store()
    cid = store.put_data(b"payload")
    block = store.get_block(cid)
    assert block == Block(cid=cid, data=b"payload")


def test_put_block() -> None:
    store = _open_store()
    block = Block.from_data(b"block payload")
    store.put_block(block)
    assert store.get(block.cid) == b"block payload"


def test_get_detects_corruption() -> None:
    cid = compute_cid(b"genuine")
    store = _open_store(InMemoryAdapter.from_preloaded({cid_to_key(cid): b"corrupted"}))
    with pytest.raises(BlockIntegrityError):
        store.get(cid)


def test_get_without_read_verification_returns_stored_bytes() -> None:
    cid = compute_cid(b"genuine")
    adapter = InMemoryAdapter.from_preloaded({cid_to_key(cid): b"corrupted"})
    store = _open_store(adapter, verify_on_read=False)
    assert store.get(cid) == b"corrupted"


def test_clear_removes_all_blocks() -> None:
    store = _open_store()
    cids = [store.put_data(data) for data in (b"one", b"two", b"three")]
    store.clear()
    assert [store.has(cid) for cid in cids] == [False, False, False]


def test_backend_error_propagates_from_single_put() -> None:
    cid = compute_cid(b"fails")
    store = _open_store(_RecordingAdapter(failing_keys=frozenset({cid_to_key(cid)})))
    with pytest.raises(BackendError):
        store.put(cid, b"fails")


# =============================================================================
# Streaming operations
# =============================================================================


def test_put_many_yields_one_result_per_input_in_order() -> None:
    good_a = Block.from_data(b"a")
    good_b = Block.from_data(b"b")
    mismatched = (compute_cid(b"claimed"), b"actual")
    failing = Block.from_data(b"backend fails")
    store = _open_store(_RecordingAdapter(failing_keys=frozenset({failing.key})))

    results = list(store.put_many([good_a, mismatched, failing, (good_b.cid, good_b.data)]))

    assert len(results) == 4
    assert [result.cid for result in results] == [good_a.cid, mismatched[0], failing.cid, good_b.cid]
    assert [result.ok for result in results] == [True, False, False, True]
    assert isinstance(results[1].error, BlockIntegrityError)
    assert isinstance(results[2].error, BackendError)
    assert store.has(good_a.cid) is True
    assert store.has(good_b.cid) is True


def test_put_many_is_lazy() -> None:
    adapter = InMemoryAdapter()
    store = _open_store(adapter)
    results = store.put_many([Block.from_data(b"lazy")])
    assert len(adapter) == 0
    assert next(results).ok is True
    assert len(adapter) == 1


def test_get_many_reports_missing_items() -> None:
    store = _open_store()
    present = store.put_data(b"present")
    missing = compute_cid(b"missing")

    results = list(store.get_many([present, missing, "bafy!!!!"]))

    assert [result.ok for result in results] == [True, False, False]
    assert results[0].data == b"present"
    assert isinstance(results[1].error, BlockNotFoundError)
    assert isinstance(results[2].error, InvalidIdentifierError)
    assert results[2].cid == "bafy!!!!"


def test_delete_many_yields_each_cid() -> None:
    store = _open_store()
    stored = store.put_data(b"stored")
    never = compute_cid(b"never")

    results = list(store.delete_many([stored, never]))

    assert [result.cid for result in results] == [stored, never]
    assert all(result.ok for result in results)
    assert store.has(stored) is False


def test_put_many_reports_malformed_items_and_keeps_going() -> None:
    adapter = InMemoryAdapter()
    store = _open_store(adapter)
    first = Block.from_data(b"first")
    last = Block.from_data(b"last")
    middle = compute_cid(b"middle")

    results = list(store.put_many([first, (middle, "not bytes"), (middle,), last]))

    assert [result.ok for result in results] == [True, False, False, True]
    assert [result.cid for result in results] == [first.cid, middle, middle, last.cid]
    assert isinstance(results[1].error, InvalidItemError)
    assert isinstance(results[1].error.__cause__, TypeError)
    assert isinstance(results[2].error, InvalidItemError)
    assert "(cid, data) pair" in str(results[2].error)
    assert len(adapter) == 2


@pytest.mark.parametrize(
    "operation",
    [
        pytest.param("get_many", id="get_many"),
        pytest.param("delete_many", id="delete_many"),
    ],
)
def test_many_reports_identifier_of_wrong_type_and_keeps_going(operation: str) -> None:
    store = _open_store()
    good = store.put_data(b"good")

    results = list(getattr(store, operation)([12345, good]))

    assert len(results) == 2
    assert results[0].cid == 12345
    assert isinstance(results[0].error, InvalidItemError)
    assert results[0].error.operation == operation
    assert results[1].ok is True


def test_put_many_stops_when_cancel_is_set() -> None:
    adapter = InMemoryAdapter()
    store = _open_store(adapter)
    cancel = threading.Event()
    results = store.put_many([Block.from_data(b"first"), Block.from_data(b"second")], cancel=cancel)

    assert next(results).ok is True
    cancel.set()
    with pytest.raises(OperationCancelledError) as exc_info:
        next(results)
    assert exc_info.value.operation == "put_many"
    assert len(adapter) == 1


def test_get_many_cancellation_aborts_instead_of_reporting() -> None:
    store = _open_store(_RaisingAdapter(TimeoutError("deadline")))
    with pytest.raises(OperationCancelledError):
        list(store.get_many([compute_cid(b"a"), compute_cid(b"b")]))


def test_delete_many_with_preset_cancel_does_nothing() -> None:
    store = _open_store()
    cid = store.put_data(b"kept")
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(OperationCancelledError):
        list(store.delete_many([cid], cancel=cancel))
    assert store.has(cid) is True


# =============================================================================
# Cancellation of single operations
# =============================================================================


@pytest.mark.parametrize(
    "exc",
    [
        pytest.param(TimeoutError("deadline"), id="timeout"),
        pytest.param(futures.CancelledError(), id="future-cancelled"),
    ],
)
def test_caller_cancellation_surfaces_as_cancelled_error(exc: BaseException) -> None:
    store = _open_store(_RaisingAdapter(exc))
    with pytest.raises(OperationCancelledError) as exc_info:
        store.get(compute_cid(b"slow"))
    assert exc_info.value.operation == "get"
    assert not isinstance(exc_info.value, BackendError)


# =============================================================================
# Lifecycle
# =============================================================================


def test_operations_before_open_raise() -> None:
    store = ContentAddressedStore(InMemoryAdapter())
    with pytest.raises(StoreClosedError):
        store.put_data(b"early")
    with pytest.raises(StoreClosedError):
        store.has(compute_cid(b"early"))


def test_operations_after_close_raise() -> None:
    store = _open_store()
    store.close()
    with pytest.raises(StoreClosedError):
        store.get(compute_cid(b"late"))
    with pytest.raises(StoreClosedError):
        list(store.put_many([Block.from_data(b"late")]))


@pytest.mark.parametrize("operation", ["put_many", "get_many", "delete_many"])
def test_streaming_operations_on_closed_store_raise_when_called(operation: str) -> None:
    store = _open_store()
    store.close()
    with pytest.raises(StoreClosedError):
        getattr(store, operation)([])


def test_open_is_idempotent() -> None:
    adapter = InMemoryAdapter()
    store = ContentAddressedStore(adapter)
    store.open()
    store.open()
    assert store.is_open is True
    assert adapter.opened is True


def test_double_close_is_noop() -> None:
    adapter = _RecordingAdapter()
    store = _open_store(adapter)
    store.close()
    store.close()
    assert adapter.close_calls == 1
    assert store.is_open is False


def test_close_after_failed_open_releases_adapter() -> None:
    adapter = _BrokenOpenAdapter()
    store = ContentAddressedStore(adapter)
    with pytest.raises(ProvisioningError):
        store.open()
    assert store.is_open is False
    store.close()
    assert adapter.close_calls == 1


def test_store_can_be_reopened() -> None:
    adapter = InMemoryAdapter()
    store = _open_store(adapter)
    cid = store.put_data(b"survives")
    store.close()
    store.open()
    assert store.get(cid) == b"survives"


def test_context_manager_opens_and_closes() -> None:
    adapter = InMemoryAdapter()
    with ContentAddressedStore(adapter) as store:
        assert store.is_open is True
        cid = store.put_data(b"scoped")
        assert store.get(cid) == b"scoped"
    assert store.is_open is False
    assert adapter.opened is False


def test_adapter_property() -> None:
    adapter = InMemoryAdapter()
    assert ContentAddressedStore(adapter).adapter is adapter


# =============================================================================
# Unsupported extension points
# =============================================================================


@pytest.mark.parametrize("operation", ["batch", "query", "query_keys"])
def test_unsupported_operations_fail_fast(operation: str) -> None:
    store = _open_store()
    with pytest.raises(UnsupportedOperationError) as exc_info:
        getattr(store, operation)()
    assert isinstance(exc_info.value, NotImplementedError)
    assert exc_info.value.operation == operation
