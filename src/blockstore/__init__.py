"""blockstore: content-addressed block storage over pluggable backends."""

import importlib.metadata as importlib_metadata

from blockstore.adapters import BackingAdapter, DynamoDBAdapter, FileAdapter, InMemoryAdapter
from blockstore.block import Block, BlockResult
from blockstore.cid import cid_to_key, compute_cid, parse_cid
from blockstore.config import BackendRegistry, StoreConfig, create_adapter, create_store, open_store
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
from blockstore.store import ContentAddressedStore


def _detect_version() -> str:
    """Return installed package version or a local fallback when metadata is unavailable."""
    try:
        return importlib_metadata.version("blockstore")
    except importlib_metadata.PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _detect_version()

__all__ = [
    "BackendError",
    "BackendRegistry",
    "BackingAdapter",
    "Block",
    "BlockIntegrityError",
    "BlockNotFoundError",
    "BlockResult",
    "BlockstoreError",
    "ContentAddressedStore",
    "DynamoDBAdapter",
    "FileAdapter",
    "InMemoryAdapter",
    "InvalidIdentifierError",
    "InvalidItemError",
    "OperationCancelledError",
    "ProvisioningError",
    "StoreClosedError",
    "StoreConfig",
    "StoreConnectionError",
    "UnsupportedOperationError",
    "cid_to_key",
    "compute_cid",
    "create_adapter",
    "create_store",
    "open_store",
    "parse_cid",
]
