"""Block store backends, streaming operations and config-driven construction."""

import tempfile
from pathlib import Path

from blockstore import (
    Block,
    BlockNotFoundError,
    ContentAddressedStore,
    FileAdapter,
    InMemoryAdapter,
    StoreConfig,
    compute_cid,
    open_store,
)

# ---- InMemoryAdapter ----
# Best for development, testing, and short-lived processes.

with ContentAddressedStore(InMemoryAdapter()) as store:
    cid = compute_cid(b"hello")
    store.put(cid, b"hello")
    print(f"[InMemory] cid={cid}")
    print(f"  get() = {store.get(cid)!r}")
    print(f"  has(missing) = {store.has(compute_cid(b'missing'))}")
    store.delete(cid)
    store.delete(cid)
    print(f"  has() after double delete = {store.has(cid)}")

    try:
        store.get(cid)
    except BlockNotFoundError as exc:
        print(f"  get() after delete -> {exc}")

# ---- Streaming operations ----
# One result per input, in order; per-item failures do not stop the stream.

with ContentAddressedStore(InMemoryAdapter()) as store:
    pairs = [
        Block.from_data(b"first"),
        (compute_cid(b"claimed"), b"but different"),
        Block.from_data(b"third"),
    ]
    for result in store.put_many(pairs):
        status = "ok" if result.ok else f"failed: {type(result.error).__name__}"
        print(f"\n[put_many] {result.cid} -> {status}")

    cids = [compute_cid(b"first"), compute_cid(b"never stored")]
    for result in store.get_many(cids):
        print(f"[get_many] ok={result.ok} data={result.data!r}")

# ---- FileAdapter ----
# Persists one file per block under a root directory.

with tempfile.TemporaryDirectory() as tmpdir:
    root = Path(tmpdir) / "blocks"
    with ContentAddressedStore(FileAdapter(root)) as store:
        cid = store.put_data(b"persistent data")
        print(f"\n[File] root = {root}")

    with ContentAddressedStore(FileAdapter(root)) as reopened:
        print(f"  get() from a new store instance = {reopened.get(cid)!r}")
        reopened.clear()
        print(f"  has() after clear = {reopened.has(cid)}")

# ---- Config-driven construction ----
# The backend is chosen once from StoreConfig (or BLOCKSTORE_* variables).

with tempfile.TemporaryDirectory() as tmpdir:
    config = StoreConfig.from_env({"BLOCKSTORE_BACKEND": "file", "BLOCKSTORE_ROOT": tmpdir})
    store = open_store(config)
    try:
        cid = store.put_data(b"configured")
        print(f"\n[Config] backend={config.backend} get()={store.get(cid)!r}")
    finally:
        store.close()
