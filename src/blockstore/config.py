"""StoreConfig and backend selection.

The backing adapter is chosen once, at construction time, from
``StoreConfig.backend`` through a :class:`BackendRegistry`.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from blockstore.adapters import BackingAdapter, DynamoDBAdapter, FileAdapter, InMemoryAdapter
from blockstore.adapters._dynamodb import DEFAULT_REGION, DEFAULT_TABLE_NAME
from blockstore.errors import BlockstoreError
from blockstore.serde import (
    bool_from_text,
    int_from_text,
    optional_string,
    require_bool,
    require_int,
    require_string,
)
from blockstore.store import ContentAddressedStore

AdapterFactory = Callable[["StoreConfig"], BackingAdapter]

ENV_PREFIX = "BLOCKSTORE_"


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """Settings for building a ContentAddressedStore and its backing adapter."""

    backend: str = "memory"

    # file backend
    root: str | None = None

    # dynamodb backend
    table_name: str = DEFAULT_TABLE_NAME
    region_name: str | None = DEFAULT_REGION
    endpoint_url: str | None = None
    read_capacity_units: int = 5
    write_capacity_units: int = 5
    wait_for_table: bool = True

    # store behavior
    verify_on_read: bool = True
    verify_on_overwrite: bool = True

    def __post_init__(self) -> None:
        """Validate cross-field constraints."""
        if not self.backend:
            msg = "StoreConfig.backend must be a non-empty string."
            raise ValueError(msg)
        if self.backend == "file" and not self.root:
            msg = "StoreConfig.root is required for the 'file' backend."
            raise ValueError(msg)
        if not self.table_name:
            msg = "StoreConfig.table_name must be a non-empty string."
            raise ValueError(msg)
        for field_name in ("read_capacity_units", "write_capacity_units"):
            if getattr(self, field_name) < 1:
                msg = f"StoreConfig.{field_name} must be >= 1."
                raise ValueError(msg)

    def to_dict(self) -> dict[str, object]:
        """Serialize StoreConfig to a plain dictionary."""
        return {
            "backend": self.backend,
            "root": self.root,
            "table_name": self.table_name,
            "region_name": self.region_name,
            "endpoint_url": self.endpoint_url,
            "read_capacity_units": self.read_capacity_units,
            "write_capacity_units": self.write_capacity_units,
            "wait_for_table": self.wait_for_table,
            "verify_on_read": self.verify_on_read,
            "verify_on_overwrite": self.verify_on_overwrite,
        }

    @classmethod
    def from_dict(cls, value: Mapping[str, object]) -> StoreConfig:
        """Deserialize StoreConfig from a plain dictionary. Missing keys take defaults."""
        defaults = cls()
        root = value.get("root")
        if isinstance(root, Path):
            root = str(root)
        return cls(
            backend=require_string(value.get("backend", defaults.backend), field_name="StoreConfig.backend"),
            root=optional_string(root, field_name="StoreConfig.root"),
            table_name=require_string(
                value.get("table_name", defaults.table_name),
                field_name="StoreConfig.table_name",
            ),
            region_name=optional_string(
                value.get("region_name", defaults.region_name),
                field_name="StoreConfig.region_name",
            ),
            endpoint_url=optional_string(value.get("endpoint_url"), field_name="StoreConfig.endpoint_url"),
            read_capacity_units=require_int(
                value.get("read_capacity_units", defaults.read_capacity_units),
                field_name="StoreConfig.read_capacity_units",
            ),
            write_capacity_units=require_int(
                value.get("write_capacity_units", defaults.write_capacity_units),
                field_name="StoreConfig.write_capacity_units",
            ),
            wait_for_table=require_bool(
                value.get("wait_for_table", defaults.wait_for_table),
                field_name="StoreConfig.wait_for_table",
            ),
            verify_on_read=require_bool(
                value.get("verify_on_read", defaults.verify_on_read),
                field_name="StoreConfig.verify_on_read",
            ),
            verify_on_overwrite=require_bool(
                value.get("verify_on_overwrite", defaults.verify_on_overwrite),
                field_name="StoreConfig.verify_on_overwrite",
            ),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, prefix: str = ENV_PREFIX) -> StoreConfig:
        """Build StoreConfig from ``BLOCKSTORE_*`` environment variables."""
        env = os.environ if environ is None else environ
        payload: dict[str, object] = {}

        text_fields = {
            "BACKEND": "backend",
            "ROOT": "root",
            "TABLE_NAME": "table_name",
            "REGION": "region_name",
            "ENDPOINT_URL": "endpoint_url",
        }
        for suffix, field_name in text_fields.items():
            raw = env.get(prefix + suffix)
            if raw:
                payload[field_name] = raw

        int_fields = {
            "READ_CAPACITY": "read_capacity_units",
            "WRITE_CAPACITY": "write_capacity_units",
        }
        for suffix, field_name in int_fields.items():
            raw = env.get(prefix + suffix)
            if raw:
                payload[field_name] = int_from_text(raw, field_name=prefix + suffix)

        bool_fields = {
            "WAIT_FOR_TABLE": "wait_for_table",
            "VERIFY_ON_READ": "verify_on_read",
            "VERIFY_ON_OVERWRITE": "verify_on_overwrite",
        }
        for suffix, field_name in bool_fields.items():
            raw = env.get(prefix + suffix)
            if raw:
                payload[field_name] = bool_from_text(raw, field_name=prefix + suffix)

        return cls.from_dict(payload)


def _memory_factory(config: StoreConfig) -> BackingAdapter:
    return InMemoryAdapter()


def _file_factory(config: StoreConfig) -> BackingAdapter:
    if config.root is None:
        msg = "StoreConfig.root is required for the 'file' backend."
        raise ValueError(msg)
    return FileAdapter(config.root)


def _dynamodb_factory(config: StoreConfig) -> BackingAdapter:
    return DynamoDBAdapter(
        config.table_name,
        region_name=config.region_name,
        endpoint_url=config.endpoint_url,
        read_capacity_units=config.read_capacity_units,
        write_capacity_units=config.write_capacity_units,
        wait_for_table=config.wait_for_table,
    )


class BackendRegistry:
    """Map backend names to adapter factories.

    The default registry includes the built-in memory, file and dynamodb
    backends. Custom backends can be registered under new names.
    """

    def __init__(self, factories: Mapping[str, AdapterFactory] | None = None) -> None:
        """Initialize with built-in factories or a custom mapping."""
        self._factories: dict[str, AdapterFactory] = {}
        initial = (
            factories
            if factories is not None
            else {
                "memory": _memory_factory,
                "file": _file_factory,
                "dynamodb": _dynamodb_factory,
            }
        )
        for name, factory in initial.items():
            self.register(name, factory)

    def register(self, name: str, factory: AdapterFactory, *, replace: bool = False) -> None:
        """Register an adapter factory under a backend name."""
        if name in self._factories and not replace:
            msg = f"Backend already registered: {name!r}. Pass replace=True to overwrite."
            raise ValueError(msg)
        self._factories[name] = factory

    def available(self) -> tuple[str, ...]:
        """Return registered backend names, sorted."""
        return tuple(sorted(self._factories))

    def create(self, config: StoreConfig) -> BackingAdapter:
        """Build the adapter selected by ``config.backend``."""
        factory = self._factories.get(config.backend)
        if factory is None:
            available = ", ".join(self.available())
            msg = f"No backend registered for {config.backend!r}. Available: {available or '<none>'}"
            raise ValueError(msg)
        return factory(config)


default_registry = BackendRegistry()


def create_adapter(config: StoreConfig, *, registry: BackendRegistry | None = None) -> BackingAdapter:
    """Build the backing adapter for ``config``."""
    return (registry or default_registry).create(config)


def create_store(config: StoreConfig, *, registry: BackendRegistry | None = None) -> ContentAddressedStore:
    """Build an unopened ContentAddressedStore for ``config``."""
    return ContentAddressedStore(
        create_adapter(config, registry=registry),
        verify_on_read=config.verify_on_read,
        verify_on_overwrite=config.verify_on_overwrite,
    )


def open_store(config: StoreConfig, *, registry: BackendRegistry | None = None) -> ContentAddressedStore:
    """Build and open a ContentAddressedStore for ``config``.

    When ``open`` fails the adapter is closed and the open failure propagates,
    even if closing fails as well.
    """
    store = create_store(config, registry=registry)
    try:
        store.open()
    except BaseException:
        with contextlib.suppress(BlockstoreError):
            store.close()
        raise
    return store
