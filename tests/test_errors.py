"""Tests for blockstore.errors."""

import pytest

from blockstore.errors import (
    BackendError,
    BlockIntegrityError,
    BlockNotFoundError,
    BlockstoreError,
    InvalidIdentifierError,
    InvalidItemError,
    OperationCancelledError,
    ProvisioningError,
    StoreClosedError,
    StoreConnectionError,
    UnsupportedOperationError,
)


def test_blockstore_error_is_exception() -> None:
    assert issubclass(BlockstoreError, Exception)


@pytest.mark.parametrize(
    "error_type",
    [
        BackendError,
        BlockIntegrityError,
        BlockNotFoundError,
        InvalidIdentifierError,
        InvalidItemError,
        OperationCancelledError,
        ProvisioningError,
        StoreClosedError,
        StoreConnectionError,
        UnsupportedOperationError,
    ],
)
def test_every_error_is_blockstore_error(error_type: type[Exception]) -> None:
    assert issubclass(error_type, BlockstoreError)


def test_connection_error_is_builtin_connection_error() -> None:
    err = StoreConnectionError("dynamodb", "endpoint unreachable")
    assert isinstance(err, ConnectionError)
    assert err.backend == "dynamodb"
    assert "endpoint unreachable" in str(err)


def test_unsupported_operation_is_not_implemented_error() -> None:
    err = UnsupportedOperationError("query")
    assert isinstance(err, NotImplementedError)
    assert err.operation == "query"


def test_invalid_identifier_is_value_error() -> None:
    err = InvalidIdentifierError("nope", "bad multibase")
    assert isinstance(err, ValueError)
    assert err.value == "nope"
    assert "nope" in str(err)


def test_block_not_found_carries_key() -> None:
    err = BlockNotFoundError("bafkabc")
    assert err.key == "bafkabc"
    assert "bafkabc" in str(err)


def test_block_integrity_carries_attributes() -> None:
    err = BlockIntegrityError("bafk1", "aaa", "bbb")
    assert err.key == "bafk1"
    assert err.expected == "aaa"
    assert err.actual == "bbb"
    msg = str(err)
    assert "bafk1" in msg
    assert "aaa" in msg
    assert "bbb" in msg


def test_backend_error_carries_operation() -> None:
    err = BackendError("file", "put", "disk full")
    assert err.backend == "file"
    assert err.operation == "put"
    assert err.detail == "disk full"
    assert "put" in str(err)


def test_provisioning_error_message() -> None:
    err = ProvisioningError("dynamodb", "LimitExceededException")
    assert "dynamodb" in str(err)
    assert "LimitExceededException" in str(err)


def test_cancelled_error_carries_operation() -> None:
    err = OperationCancelledError("get")
    assert err.operation == "get"
    assert "get" in str(err)


def test_invalid_item_is_value_error() -> None:
    err = InvalidItemError("put_many", ("bafk1",), "expected a (cid, data) pair")
    assert isinstance(err, ValueError)
    assert err.operation == "put_many"
    assert err.item == ("bafk1",)
    assert "put_many" in str(err)
    assert "(cid, data) pair" in str(err)
