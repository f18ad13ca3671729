"""Block and BlockResult: immutable value types for stored content."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from blockstore.cid import DEFAULT_CODEC, DEFAULT_HASHFUN, cid_to_key, compute_cid, digest_of
from blockstore.errors import BlockIntegrityError

if TYPE_CHECKING:
    from multiformats import CID

    from blockstore.errors import BlockstoreError


@dataclass(frozen=True, slots=True)
class Block:
    """An immutable ``(cid, data)`` pair.

    The CID must always be re-derivable from ``data``; use :meth:`verify`
    to check a block received from an untrusted source.
    """

    cid: CID
    data: bytes

    def __post_init__(self) -> None:
        """Freeze bytes-like payloads into ``bytes``."""
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))

    @classmethod
    def from_data(cls, data: bytes, *, codec: str = DEFAULT_CODEC, hashfun: str = DEFAULT_HASHFUN) -> Block:
        """Build a block, deriving its CID from ``data``."""
        return cls(cid=compute_cid(data, codec=codec, hashfun=hashfun), data=bytes(data))

    @property
    def key(self) -> str:
        """Return the canonical storage key."""
        return cid_to_key(self.cid)

    @property
    def size(self) -> int:
        """Return the payload size in bytes."""
        return len(self.data)

    def verify(self) -> None:
        """Raise BlockIntegrityError when ``data`` does not hash to ``cid``."""
        actual = digest_of(self.cid, self.data)
        expected = bytes(self.cid.digest)
        if actual != expected:
            raise BlockIntegrityError(self.key, expected.hex(), actual.hex())


@dataclass(frozen=True, slots=True)
class BlockResult:
    """Outcome of one item in a ``put_many`` / ``get_many`` / ``delete_many`` call.

    ``cid`` is the identifier exactly as the caller supplied it. For an
    input too malformed to name one, it is the input item itself.
    """

    cid: CID | str | object
    data: bytes | None = None
    error: BlockstoreError | None = None

    @property
    def ok(self) -> bool:
        """Return whether the item succeeded."""
        return self.error is None

    def unwrap(self) -> bytes | None:
        """Return the item's data, raising the captured error if it failed."""
        if self.error is not None:
            raise self.error
        return self.data
