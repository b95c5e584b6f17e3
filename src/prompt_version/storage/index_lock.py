"""
Single-writer lock guarding the version index.

Every index mutation is a whole-collection read-modify-write. Holding this
lock across the read and the write keeps concurrent writers, in this process
or another, from silently dropping each other's updates.
"""

import fcntl
import logging
import os
import threading
import time
from pathlib import Path
from typing import Optional

from ..errors import IndexLockError

logger = logging.getLogger(__name__)


class IndexLock:
    """Re-entrant advisory lock combining a thread lock and an flock.

    The thread lock serializes writers inside one process; the flock on the
    lock file serializes writers across processes. Nested acquisitions by
    the owning thread only bump a counter.
    """

    def __init__(
        self,
        lock_path: Path,
        timeout: float = 10.0,
        poll_interval: float = 0.05,
    ):
        """
        Initialize the index lock.

        Args:
            lock_path: Lock file inside the .prompt-versions directory
            timeout: Seconds to wait before giving up
            poll_interval: Seconds between non-blocking attempts
        """
        self.lock_path = lock_path
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._thread_lock = threading.RLock()
        self._fd: Optional[int] = None
        self._depth = 0

    @property
    def is_held(self) -> bool:
        return self._depth > 0

    def acquire(self) -> None:
        """
        Acquire the lock, waiting up to the configured timeout.

        Raises:
            IndexLockError: If the lock could not be acquired in time
        """
        deadline = time.monotonic() + self.timeout

        if not self._thread_lock.acquire(timeout=self.timeout):
            raise IndexLockError(
                f"Timed out after {self.timeout:.1f}s waiting for index lock (in-process)"
            )

        if self._depth > 0:
            self._depth += 1
            return

        try:
            fd = os.open(str(self.lock_path), os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            self._thread_lock.release()
            raise IndexLockError(f"Failed to open index lock {self.lock_path}: {e}") from e

        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    self._thread_lock.release()
                    raise IndexLockError(
                        f"Timed out after {self.timeout:.1f}s waiting for index lock "
                        f"{self.lock_path}. Another prompt-version process may be writing."
                    )
                time.sleep(self.poll_interval)
            except OSError as e:
                os.close(fd)
                self._thread_lock.release()
                raise IndexLockError(f"Failed to lock {self.lock_path}: {e}") from e

        self._fd = fd
        self._depth = 1
        logger.debug(f"Acquired index lock {self.lock_path}")

    def release(self) -> None:
        """Release one level of the lock."""
        if self._depth == 0:
            return

        self._depth -= 1
        if self._depth == 0 and self._fd is not None:
            try:
                fcntl.flock(self._fd, fcntl.LOCK_UN)
            finally:
                os.close(self._fd)
                self._fd = None
            logger.debug(f"Released index lock {self.lock_path}")

        self._thread_lock.release()

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
