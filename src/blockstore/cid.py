"""Content identifiers: derive, parse and canonicalize CIDs.

A content identifier is a ``multiformats.CID``. Its canonical string form
(see :func:`cid_to_key`) is the only persistence format blockstore defines;
backing adapters store blocks under that string.
"""

from __future__ import annotations

from multiformats import CID, multihash

from blockstore.errors import InvalidIdentifierError

DEFAULT_CODEC = "raw"
DEFAULT_HASHFUN = "sha2-256"
_CANONICAL_BASE = "base32"


def compute_cid(data: bytes, *, codec: str = DEFAULT_CODEC, hashfun: str = DEFAULT_HASHFUN) -> CID:
    """Derive a CIDv1 for ``data``.

    Bit-identical inputs always produce equal identifiers.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        msg = f"Block data must be bytes-like, got {type(data).__name__}."
        raise TypeError(msg)
    digest = multihash.digest(bytes(data), hashfun)
    return CID(_CANONICAL_BASE, 1, codec, digest)


def parse_cid(value: CID | str) -> CID:
    """Return ``value`` as a CID, decoding it from its string form if needed."""
    if isinstance(value, CID):
        return value
    if not isinstance(value, str):
        msg = f"Content identifier must be a CID or str, got {type(value).__name__}."
        raise TypeError(msg)
    try:
        return CID.decode(value)
    except (KeyError, ValueError) as exc:
        raise InvalidIdentifierError(value, str(exc)) from exc


def cid_to_key(cid: CID | str) -> str:
    """Return the canonical string form of a CID.

    CIDv1 is always rendered in base32 so the same content maps to the same
    key whatever base the identifier arrived in. CIDv0 only exists in base58btc.
    """
    cid = parse_cid(cid)
    if cid.version == 0:
        return str(cid)
    return str(cid.set(base=_CANONICAL_BASE))


def digest_of(cid: CID, data: bytes) -> bytes:
    """Hash ``data`` the way ``cid`` was hashed and return the multihash bytes."""
    try:
        return cid.hashfun.digest(bytes(data), size=len(cid.raw_digest))
    except (KeyError, ValueError) as exc:
        raise InvalidIdentifierError(str(cid), f"cannot re-derive digest: {exc}") from exc


def matches(cid: CID, data: bytes) -> bool:
    """Return whether ``data`` hashes to ``cid``."""
    return digest_of(cid, data) == bytes(cid.digest)
