"""DynamoDBAdapter: block persistence in an Amazon DynamoDB table.

Uses ``boto3``'s low-level ``dynamodb`` client. Each block is one item::

    {"cid": {"S": "<canonical cid>"}, "data": {"B": b"<bytes>"}}

in a table whose hash key is the string attribute ``cid``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from blockstore.errors import BackendError, ProvisioningError, StoreConnectionError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "blocks"
DEFAULT_REGION = "us-west-2"
KEY_ATTRIBUTE = "cid"
DATA_ATTRIBUTE = "data"
_ACTIVE = "ACTIVE"


def _error_code(exc: ClientError) -> str:
    """Return the service error code carried by a ClientError."""
    error = exc.response.get("Error", {})
    return str(error.get("Code", ""))


def _describe(exc: Exception) -> str:
    """Render a boto exception as ``Code: message`` where a code exists."""
    if isinstance(exc, ClientError):
        code = _error_code(exc)
        message = exc.response.get("Error", {}).get("Message", "")
        return f"{code}: {message}" if message else code
    return str(exc)


class DynamoDBAdapter:
    """Backing adapter for a DynamoDB table.

    Usage::

        adapter = DynamoDBAdapter("blocks", region_name="us-west-2")
        with ContentAddressedStore(adapter) as store:
            cid = store.put_data(b"hello")

    Pass ``client`` to reuse an existing ``boto3.client("dynamodb")``; the
    adapter then never closes it. Without one, ``open`` creates a client and
    ``close`` releases it.
    """

    name = "dynamodb"

    def __init__(
        self,
        table_name: str = DEFAULT_TABLE_NAME,
        *,
        client: Any | None = None,
        region_name: str | None = DEFAULT_REGION,
        endpoint_url: str | None = None,
        read_capacity_units: int = 5,
        write_capacity_units: int = 5,
        wait_for_table: bool = True,
    ) -> None:
        """Initialize table settings. No network calls happen until ``open``."""
        if not table_name:
            msg = "table_name must be a non-empty string."
            raise ValueError(msg)
        self._table_name = table_name
        self._client = client
        self._owns_client = client is None
        self._region_name = region_name
        self._endpoint_url = endpoint_url
        self._read_capacity_units = read_capacity_units
        self._write_capacity_units = write_capacity_units
        self._wait_for_table = wait_for_table

    @property
    def table_name(self) -> str:
        """Return the DynamoDB table name."""
        return self._table_name

    @property
    def client(self) -> Any | None:
        """Return the boto3 client, or ``None`` before ``open``."""
        return self._client

    def _require_client(self, operation: str) -> Any:
        """Return the active client or fail the operation."""
        if self._client is None:
            raise BackendError(self.name, operation, "adapter is not open")
        return self._client

    def _key(self, key: str) -> dict[str, dict[str, str]]:
        """Build the primary key attribute map for a block key."""
        return {KEY_ATTRIBUTE: {"S": key}}

    def _table_definition(self) -> dict[str, object]:
        """Return CreateTable parameters for the block table."""
        return {
            "TableName": self._table_name,
            "KeySchema": [{"AttributeName": KEY_ATTRIBUTE, "KeyType": "HASH"}],
            "AttributeDefinitions": [{"AttributeName": KEY_ATTRIBUTE, "AttributeType": "S"}],
            "ProvisionedThroughput": {
                "ReadCapacityUnits": self._read_capacity_units,
                "WriteCapacityUnits": self._write_capacity_units,
            },
        }

    def _table_status(self, client: Any) -> str | None:
        """Return the block table's TableStatus, or None when it does not exist."""
        try:
            response = client.describe_table(TableName=self._table_name)
        except ClientError as exc:
            if _error_code(exc) == "ResourceNotFoundException":
                return None
            raise StoreConnectionError(self.name, _describe(exc)) from exc
        except BotoCoreError as exc:
            raise StoreConnectionError(self.name, _describe(exc)) from exc
        return response.get("Table", {}).get("TableStatus", _ACTIVE)

    def _create_table(self, client: Any) -> None:
        """Create the block table, tolerating a concurrent creator."""
        try:
            client.create_table(**self._table_definition())
        except ClientError as exc:
            if _error_code(exc) == "ResourceInUseException":
                logger.info("dynamodb_table_exists table=%s", self._table_name)
                return
            raise ProvisioningError(self.name, _describe(exc)) from exc
        except BotoCoreError as exc:
            raise ProvisioningError(self.name, _describe(exc)) from exc
        logger.info(
            "dynamodb_table_created table=%s rcu=%d wcu=%d",
            self._table_name,
            self._read_capacity_units,
            self._write_capacity_units,
        )

    def _await_table(self, client: Any) -> None:
        """Block until the table reports ACTIVE."""
        try:
            client.get_waiter("table_exists").wait(TableName=self._table_name)
        except (WaiterError, ClientError, BotoCoreError) as exc:
            raise ProvisioningError(self.name, f"table {self._table_name} never became active: {exc}") from exc

    def open(self) -> None:
        """Create the client if needed and ensure the block table exists.

        A table another process is still creating (or updating) counts as
        existing; with ``wait_for_table`` the call blocks until it is ACTIVE.
        """
        if self._client is None:
            try:
                self._client = boto3.client(
                    "dynamodb",
                    region_name=self._region_name,
                    endpoint_url=self._endpoint_url,
                )
            except BotoCoreError as exc:
                raise StoreConnectionError(self.name, _describe(exc)) from exc
            self._owns_client = True

        client = self._client
        status = self._table_status(client)
        if status is None:
            self._create_table(client)
        elif status == _ACTIVE:
            return
        else:
            logger.info("dynamodb_table_not_active table=%s status=%s", self._table_name, status)
        if self._wait_for_table:
            self._await_table(client)

    def close(self) -> None:
        """Close the client when this adapter created it."""
        client = self._client
        if client is None or not self._owns_client:
            return
        self._client = None
        close = getattr(client, "close", None)
        if close is not None:
            close()

    def put(self, key: str, data: bytes) -> None:
        """Write one block item."""
        client = self._require_client("put")
        try:
            client.put_item(
                TableName=self._table_name,
                Item={KEY_ATTRIBUTE: {"S": key}, DATA_ATTRIBUTE: {"B": bytes(data)}},
            )
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(self.name, "put", _describe(exc)) from exc

    def get(self, key: str) -> bytes | None:
        """Read one block item's payload."""
        client = self._require_client("get")
        try:
            response = client.get_item(TableName=self._table_name, Key=self._key(key))
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(self.name, "get", _describe(exc)) from exc
        item = response.get("Item")
        if item is None:
            return None
        value = item.get(DATA_ATTRIBUTE, {}).get("B")
        if value is None:
            raise BackendError(self.name, "get", f"item {key} has no binary {DATA_ATTRIBUTE!r} attribute")
        return bytes(value)

    def has(self, key: str) -> bool:
        """Check existence by fetching only the key attribute."""
        client = self._require_client("has")
        try:
            response = client.get_item(
                TableName=self._table_name,
                Key=self._key(key),
                ProjectionExpression="#k",
                ExpressionAttributeNames={"#k": KEY_ATTRIBUTE},
            )
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(self.name, "has", _describe(exc)) from exc
        return "Item" in response

    def delete(self, key: str) -> None:
        """Delete one block item. DynamoDB treats a missing item as success."""
        client = self._require_client("delete")
        try:
            client.delete_item(TableName=self._table_name, Key=self._key(key))
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(self.name, "delete", _describe(exc)) from exc

    def _scan_keys(self, client: Any) -> Iterator[str]:
        """Yield every stored key, following scan pagination."""
        params: dict[str, object] = {
            "TableName": self._table_name,
            "ProjectionExpression": "#k",
            "ExpressionAttributeNames": {"#k": KEY_ATTRIBUTE},
        }
        while True:
            response = client.scan(**params)
            for item in response.get("Items", []):
                yield item[KEY_ATTRIBUTE]["S"]
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return
            params["ExclusiveStartKey"] = last_key

    def clear(self) -> None:
        """Delete every item in the block table."""
        client = self._require_client("clear")
        removed = 0
        try:
            for key in self._scan_keys(client):
                client.delete_item(TableName=self._table_name, Key=self._key(key))
                removed += 1
        except (ClientError, BotoCoreError) as exc:
            raise BackendError(self.name, "clear", _describe(exc)) from exc
        logger.info("dynamodb_table_cleared table=%s removed=%d", self._table_name, removed)
