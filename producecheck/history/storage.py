from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class BlobStore(Protocol):
    def load(self, key: str) -> Optional[bytes]: ...

    def save(self, key: str, payload: bytes) -> None: ...


class MemoryBlobStore:
    """Keep blobs in a dictionary; contents vanish with the process."""

    def __init__(self, initial: Dict[str, bytes] | None = None) -> None:
        self._blobs: Dict[str, bytes] = dict(initial or {})

    def load(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    def save(self, key: str, payload: bytes) -> None:
        self._blobs[key] = bytes(payload)


class FileBlobStore:
    """Store each key as one file under ``root``.

    Writes go to a temporary file in the same directory which then replaces
    the target, so readers see either the previous blob or the new one.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._root / f"{key}.json"

    def load(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def save(self, key: str, payload: bytes) -> None:
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
        logger.debug("Wrote %d bytes to %s", len(payload), path)


__all__ = ["BlobStore", "FileBlobStore", "MemoryBlobStore"]
