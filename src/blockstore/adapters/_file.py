"""FileAdapter: file-system-based block persistence."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from blockstore.errors import BackendError, ProvisioningError

logger = logging.getLogger(__name__)

_BLOCK_SUFFIX = ".block"
_TEMP_PREFIX = ".incoming-"


class FileAdapter:
    """File-system backing adapter.

    Store each block as ``<key>.block`` under a root directory. The root is
    created on ``open``. Writes land in a temporary file first and are moved
    into place atomically, so concurrent readers see either the old state or
    the complete block.
    """

    name = "file"

    def __init__(self, root: str | Path) -> None:
        """Initialize with a root directory. Nothing touches the disk until ``open``."""
        self._root = Path(root)

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    def _block_path(self, key: str) -> Path:
        """Resolve a block path and ensure it stays under the store root."""
        root = self._root.resolve()
        candidate = (self._root / f"{key}{_BLOCK_SUFFIX}").resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            msg = f"Block key {key!r} resolves outside store root."
            raise ValueError(msg) from None
        if candidate.parent != root:
            msg = f"Block key {key!r} must not contain path separators."
            raise ValueError(msg)
        return candidate

    def open(self) -> None:
        """Create the root directory if needed."""
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProvisioningError(self.name, f"{self._root}: {exc}") from exc
        if not self._root.is_dir():
            raise ProvisioningError(self.name, f"{self._root} is not a directory")
        logger.debug("file_adapter_open root=%s", self._root)

    def close(self) -> None:
        """No handles are held between calls; nothing to release."""

    def put(self, key: str, data: bytes) -> None:
        """Write a block file atomically."""
        path = self._block_path(key)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=_TEMP_PREFIX, dir=self._root)
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except TimeoutError:
            raise
        except OSError as exc:
            raise BackendError(self.name, "put", str(exc)) from exc

    def get(self, key: str) -> bytes | None:
        """Read a block file, returning ``None`` when it does not exist."""
        path = self._block_path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except TimeoutError:
            raise
        except OSError as exc:
            raise BackendError(self.name, "get", str(exc)) from exc

    def has(self, key: str) -> bool:
        """Check whether a block file exists."""
        return self._block_path(key).is_file()

    def delete(self, key: str) -> None:
        """Remove a block file if present."""
        path = self._block_path(key)
        try:
            path.unlink(missing_ok=True)
        except TimeoutError:
            raise
        except OSError as exc:
            raise BackendError(self.name, "delete", str(exc)) from exc

    def clear(self) -> None:
        """Remove every block file under the root."""
        if not self._root.is_dir():
            return
        try:
            for path in self._root.glob(f"*{_BLOCK_SUFFIX}"):
                path.unlink(missing_ok=True)
        except TimeoutError:
            raise
        except OSError as exc:
            raise BackendError(self.name, "clear", str(exc)) from exc
