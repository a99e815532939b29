"""Thread-safe holder for the (SST, TT) pair."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass


class ReadWriteLock:
    """Writer-preferring reader/writer lock.

    Any number of readers may hold the lock together. A writer gets it alone,
    and once a writer is waiting no new reader is admitted.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


@dataclass(frozen=True, slots=True)
class TokenPair:
    """Consistent view of both tokens.

    ``generation`` grows by one every time a refresh attempt finishes, whether
    or not it produced new tokens.
    """

    sst: str | None = None
    tt: str | None = None
    generation: int = 0


@dataclass(slots=True)
class TokenUpdate:
    """Scratch copy of the pair handed to the exclusive holder."""

    sst: str | None
    tt: str | None


class TokenState:
    """Single cell holding the token pair behind a reader/writer lock."""

    def __init__(self, sst: str | None = None, tt: str | None = None) -> None:
        self._lock = ReadWriteLock()
        self._pair = TokenPair(sst=sst, tt=tt)

    def snapshot(self) -> TokenPair:
        with self._lock.read_locked():
            return self._pair

    @contextmanager
    def reading(self) -> Iterator[TokenPair]:
        """Hold the shared permit for the duration of the block."""

        with self._lock.read_locked():
            yield self._pair

    @contextmanager
    def exclusive(self) -> Iterator[TokenUpdate]:
        """Hold the exclusive permit; commit the update as one replacement on exit."""

        with self._lock.write_locked():
            update = TokenUpdate(sst=self._pair.sst, tt=self._pair.tt)
            try:
                yield update
            finally:
                self._pair = TokenPair(
                    sst=update.sst,
                    tt=update.tt,
                    generation=self._pair.generation + 1,
                )
