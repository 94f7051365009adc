"""
In-memory schema cache for the Schema Service.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

from shared.logging import get_logger


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Writers are preferred: once a writer is waiting, new readers queue
    behind it so a steady stream of lookups cannot starve a store.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ResultCache:
    """Concurrent key to schema bytes store with no eviction."""

    def __init__(self):
        self._entries: Dict[str, bytes] = {}
        self._lock = ReadWriteLock()
        self.logger = get_logger("schema.cache")

    def get(self, key: str) -> Tuple[Optional[bytes], bool]:
        """Return ``(artifact, True)`` for a stored key, else ``(None, False)``."""
        with self._lock.read():
            artifact = self._entries.get(key)
        return artifact, artifact is not None

    def set(self, key: str, artifact: bytes) -> None:
        """Insert or replace the artifact stored under ``key``."""
        # bytes() copies mutable buffers so a stored entry can never change
        artifact = bytes(artifact)
        with self._lock.write():
            replaced = key in self._entries
            self._entries[key] = artifact
        self.logger.debug("Schema cached", key=key, size=len(artifact), replaced=replaced)

    def __contains__(self, key: str) -> bool:
        with self._lock.read():
            return key in self._entries

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)
