"""
Blob storage backends for vault documents.

Every persisted document (records, settings, session store, session key)
is an opaque blob behind ``load()`` / ``save()``. Writes are full rewrites
with no locking: concurrent writers follow last-writer-wins.
"""
import os
import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

logger = logging.getLogger("wallet_vault.storage")

OWNER_ONLY = 0o600


@runtime_checkable
class BlobStorage(Protocol):
    """Minimal persistence capability used by the vault."""

    def load(self) -> Optional[bytes]:
        """Return the stored blob, or None if nothing was ever saved."""
        ...

    def save(self, data: bytes) -> None:
        """Replace the stored blob."""
        ...


class FileStorage:
    """Blob stored in a single file.

    Args:
        path: Backing file.
        private: Restrict the file to owner-only permissions on save.
    """

    def __init__(self, path: Path, private: bool = False):
        self.path = Path(path)
        self.private = private

    def __repr__(self) -> str:
        return f"<FileStorage path={str(self.path)!r} private={self.private}>"

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        return self.path.read_bytes()

    def save(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.private:
            self.path.write_bytes(data)
            return
        # new files are created owner-only; existing ones are narrowed after
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, OWNER_ONLY)
        with os.fdopen(fd, "wb") as fp:
            fp.write(data)
        restrict_permissions(self.path)


class MemoryStorage:
    """In-memory blob, for tests and ephemeral vaults."""

    def __init__(self, data: Optional[bytes] = None):
        self.data = data
        self.writes = 0

    def __repr__(self) -> str:
        size = None if self.data is None else len(self.data)
        return f"<MemoryStorage size={size} writes={self.writes}>"

    def load(self) -> Optional[bytes]:
        return self.data

    def save(self, data: bytes) -> None:
        self.data = bytes(data)
        self.writes += 1


def restrict_permissions(path: Path, mode: int = OWNER_ONLY) -> bool:
    """Apply owner-only permissions to ``path``.

    Some platforms and filesystems do not support POSIX modes; failure
    is logged and reported as False, never raised.
    """
    try:
        os.chmod(path, mode)
    except OSError as err:
        logger.debug("Could not restrict permissions on %s: %s", path, err)
        return False
    return True
