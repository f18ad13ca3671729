"""Backing adapters for blockstore."""

from blockstore.adapters._base import BackingAdapter
from blockstore.adapters._dynamodb import DynamoDBAdapter
from blockstore.adapters._file import FileAdapter
from blockstore.adapters._memory import InMemoryAdapter

__all__ = [
    "BackingAdapter",
    "DynamoDBAdapter",
    "FileAdapter",
    "InMemoryAdapter",
]
