"""
Reader/writer lock guarding the admin credential.

Issuance, revocation and reads share the lock; rotation and configuration
writes hold it exclusively. Waiting writers block new readers so a steady
stream of issuance requests cannot starve a rotation.
"""

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from ..exceptions import LockTimeoutError


class ReadWriteLock:
    """Writer-preferring reader/writer lock with optional acquisition timeouts."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @staticmethod
    def _deadline(timeout: Optional[float]) -> Optional[float]:
        return None if timeout is None else time.monotonic() + timeout

    def _wait(self, deadline: Optional[float], mode: str) -> None:
        if deadline is None:
            self._cond.wait()
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0 or not self._cond.wait(remaining):
            raise LockTimeoutError(lock_mode=mode)

    def acquire_read(self, timeout: Optional[float] = None) -> None:
        deadline = self._deadline(timeout)
        with self._cond:
            while self._writer or self._waiting_writers:
                self._wait(deadline, "read")
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: Optional[float] = None) -> None:
        deadline = self._deadline(timeout)
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._wait(deadline, "write")
            except LockTimeoutError:
                self._waiting_writers -= 1
                # Readers parked behind this writer may proceed now
                self._cond.notify_all()
                raise
            self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold the lock shared for the duration of the block."""
        self.acquire_read(timeout)
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        self.acquire_write(timeout)
        try:
            yield
        finally:
            self.release_write()
