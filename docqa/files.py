"""Expiring file manager for uploaded documents and generated reports.

Each registered file gets a retention deadline. A sweep deletes files whose
deadline has passed, but never while a request still holds the file: a held
file is only marked expired and is removed when its last holder releases it.
"""
import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, List, Optional
import structlog

from docqa import config

logger = structlog.get_logger()


@dataclass
class ManagedFile:
    """Bookkeeping for one file on disk."""

    path: Path
    expires_at: float
    refs: int = 0
    expired: bool = False


class ExpiringFileManager:
    """Tracks files by key and deletes them after a retention window."""

    def __init__(
        self,
        retention_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.retention_seconds = (
            retention_seconds if retention_seconds is not None else config.FILE_RETENTION_SECONDS
        )
        self._clock = clock
        self._files: Dict[str, ManagedFile] = {}
        self._lock = asyncio.Lock()

    async def register(self, key: str, path: Path, retention_seconds: Optional[float] = None) -> None:
        """Start the retention clock for a file.

        Registering a key again replaces the previous file; the old one is
        deleted once nothing holds it.
        """
        retention = retention_seconds if retention_seconds is not None else self.retention_seconds
        async with self._lock:
            previous = self._files.get(key)
            self._files[key] = ManagedFile(path=Path(path), expires_at=self._clock() + retention)

        if previous is not None and previous.path != Path(path):
            previous.expired = True
            if previous.refs == 0:
                _unlink(previous.path)

        logger.debug("file_registered", key=key, path=str(path), retention_seconds=retention)

    async def acquire(self, key: str) -> Optional[Path]:
        """Hold a file so it survives a sweep. Returns None if it is gone."""
        async with self._lock:
            entry = self._files.get(key)
            if entry is None or entry.expired or not entry.path.exists():
                return None
            entry.refs += 1
            return entry.path

    async def release(self, key: str, path: Path) -> None:
        """Drop a hold taken with acquire()."""
        async with self._lock:
            entry = self._files.get(key)
            if entry is not None and entry.path == path:
                entry.refs = max(0, entry.refs - 1)
                if not (entry.expired and entry.refs == 0):
                    return
                del self._files[key]

        # Either the key was superseded/removed while held, or the entry
        # expired during the hold; both leave the file unowned.
        _unlink(path)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[Optional[Path]]:
        """Context manager form of acquire()/release()."""
        path = await self.acquire(key)
        try:
            yield path
        finally:
            if path is not None:
                await self.release(key, path)

    async def discard(self, key: str) -> None:
        """Forget a file now, deleting it unless a request holds it."""
        async with self._lock:
            entry = self._files.get(key)
            if entry is None:
                return
            if entry.refs:
                entry.expired = True
                return
            del self._files[key]
        _unlink(entry.path)

    async def sweep(self) -> List[str]:
        """Expire every file past its deadline.

        Returns:
            Keys that expired during this sweep, held or not
        """
        now = self._clock()
        expired_keys: List[str] = []
        to_delete: List[Path] = []

        async with self._lock:
            for key, entry in list(self._files.items()):
                if entry.expired or now < entry.expires_at:
                    continue
                entry.expired = True
                expired_keys.append(key)
                if entry.refs == 0:
                    del self._files[key]
                    to_delete.append(entry.path)

        for path in to_delete:
            _unlink(path)

        if expired_keys:
            logger.info(
                "files_expired",
                count=len(expired_keys),
                deleted=len(to_delete),
                deferred=len(expired_keys) - len(to_delete),
            )
        return expired_keys

    async def clear(self) -> None:
        """Delete every tracked file regardless of holds (shutdown)."""
        async with self._lock:
            entries = list(self._files.values())
            self._files.clear()
        for entry in entries:
            _unlink(entry.path)

    def __contains__(self, key: object) -> bool:
        entry = self._files.get(key)  # type: ignore[arg-type]
        return entry is not None and not entry.expired

    def __len__(self) -> int:
        return len(self._files)


def _unlink(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
        logger.debug("file_deleted", path=str(path))
    except OSError as e:
        logger.warning("file_delete_failed", path=str(path), error=str(e))
