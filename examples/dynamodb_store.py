"""Amazon DynamoDB: persist blocks in a DynamoDB table with boto3.

Requirements:
    pip install blockstore
    # Configure AWS credentials (e.g. aws configure, environment variables, or IAM role)
    # For DynamoDB Local, set BLOCKSTORE_ENDPOINT_URL=http://localhost:8000
"""

import logging
import os

from blockstore import BackendError, StoreConfig, open_store

logging.basicConfig(level=logging.INFO, format="%(levelname)-8s %(name)s: %(message)s")

# ── Setup ──────────────────────────────────────────────────────────

config = StoreConfig.from_env(
    {
        "BLOCKSTORE_BACKEND": "dynamodb",
        "BLOCKSTORE_TABLE_NAME": os.environ.get("BLOCKSTORE_TABLE_NAME", "blocks"),
        "BLOCKSTORE_REGION": os.environ.get("AWS_REGION", "us-west-2"),
        "BLOCKSTORE_ENDPOINT_URL": os.environ.get("BLOCKSTORE_ENDPOINT_URL", ""),
    }
)

# open() creates the table on first use and waits until it is ACTIVE.
store = open_store(config)

# ── Store and read back ────────────────────────────────────────────

try:
    cid = store.put_data(b"hello from dynamodb")
    print(f"stored {cid}")
    print(f"has() = {store.has(cid)}")
    print(f"get() = {store.get(cid)!r}")

    results = list(store.delete_many([cid]))
    print(f"delete_many() -> {[result.ok for result in results]}")
except BackendError as exc:
    # Throttling and transport failures surface here; retry policy is up to the caller.
    print(f"backend failure: {exc}")
finally:
    store.close()
