"""
LocalFileSystemStorage — the queue state as one JSON file on local disk.

For single-machine deployments where several processes (web workers, cron
jobs, CLI runs) drain the same queue.

CAS semantics
-------------
Writers serialize on an exclusive fcntl.flock of a sidecar lock file
(`<path>.lock`). While holding it, write() re-reads the current file, compares
its etag with if_match and raises CASConflictError on mismatch. The new
content goes to a temporary file in the same directory and is moved into
place with os.replace, so readers see either the old or the new state, never
a partial write. Readers therefore need no lock.

The etag is the SHA-256 hex digest of the file contents. A missing or empty
file has etag None.

POSIX-only. Not for NFS or other distributed filesystems.
"""

from __future__ import annotations

import asyncio
import fcntl
import hashlib
import os
import tempfile
from pathlib import Path

from drainq.domain.errors import CASConflictError, StorageError


class LocalFileSystemStorage:
    """
    Parameters
    ----------
    path : JSON state file; its parent directory is created on first write
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    def __repr__(self) -> str:
        return f"LocalFileSystemStorage(path={str(self.path)!r})"

    async def read(self) -> tuple[bytes, str | None]:
        return await asyncio.to_thread(self._sync_read)

    async def write(
        self,
        content: bytes,
        if_match: str | None = None,
    ) -> str:
        return await asyncio.to_thread(self._sync_write, content, if_match)

    # ------------------------------------------------------------------ #
    # Blocking implementations, run in a worker thread                    #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _etag(data: bytes) -> str | None:
        return hashlib.sha256(data).hexdigest() if data else None

    def _load(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return b""

    def _sync_read(self) -> tuple[bytes, str | None]:
        try:
            content = self._load()
        except OSError as exc:
            raise StorageError(f"Reading {self.path} failed", exc) from exc
        return content, self._etag(content)

    def _sync_write(self, content: bytes, if_match: str | None) -> str:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.lock_path, "a") as lock:
                fcntl.flock(lock, fcntl.LOCK_EX)
                try:
                    current = self._etag(self._load())
                    if current != if_match:
                        raise CASConflictError(
                            f"ETag mismatch: expected {if_match!r}, got {current!r}"
                        )
                    self._replace(content)
                finally:
                    fcntl.flock(lock, fcntl.LOCK_UN)
        except OSError as exc:
            raise StorageError(f"Writing {self.path} failed", exc) from exc
        return self._etag(content) or ""

    def _replace(self, content: bytes) -> None:
        fd, tmp = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
