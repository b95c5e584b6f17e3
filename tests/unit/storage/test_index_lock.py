"""Tests for the index write lock."""

import fcntl
import os
import threading
import time
from pathlib import Path

import pytest

from prompt_version.errors import IndexLockError
from prompt_version.storage.index_lock import IndexLock


@pytest.fixture
def lock_path(tmp_path: Path) -> Path:
    return tmp_path / "index.lock"


class TestIndexLock:
    def test_context_manager_acquires_and_releases(self, lock_path):
        lock = IndexLock(lock_path)
        with lock:
            assert lock.is_held
        assert not lock.is_held

    def test_reentrant_in_same_thread(self, lock_path):
        lock = IndexLock(lock_path)
        with lock:
            with lock:
                assert lock.is_held
            assert lock.is_held
        assert not lock.is_held

    def test_times_out_when_other_holder_has_flock(self, lock_path):
        fd = os.open(str(lock_path), os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            lock = IndexLock(lock_path, timeout=0.2, poll_interval=0.01)
            with pytest.raises(IndexLockError):
                lock.acquire()
            assert not lock.is_held
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

    def test_acquires_after_other_holder_releases(self, lock_path):
        fd = os.open(str(lock_path), os.O_RDWR | os.O_CREAT, 0o644)
        fcntl.flock(fd, fcntl.LOCK_EX)

        def release_later():
            time.sleep(0.1)
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

        releaser = threading.Thread(target=release_later)
        releaser.start()
        try:
            lock = IndexLock(lock_path, timeout=5.0, poll_interval=0.01)
            with lock:
                assert lock.is_held
        finally:
            releaser.join()

    def test_serializes_threads(self, lock_path):
        lock = IndexLock(lock_path)
        inside = []
        overlaps = []

        def worker():
            for _ in range(20):
                with lock:
                    inside.append(1)
                    if len(inside) > 1:
                        overlaps.append(True)
                    time.sleep(0.001)
                    inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlaps == []

    def test_release_without_acquire_is_noop(self, lock_path):
        IndexLock(lock_path).release()
