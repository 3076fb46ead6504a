"""Tests for the readers-writer lock."""

import threading
import time

import pytest

from hashsphere.storage import ReadWriteLock


class TestReadWriteLock:
    """Tests for ReadWriteLock."""

    def test_concurrent_readers(self):
        lock = ReadWriteLock()
        lock.acquire_read()
        lock.acquire_read()
        assert lock.readers == 2
        lock.release_read()
        lock.release_read()
        assert lock.readers == 0

    def test_writer_is_exclusive(self):
        lock = ReadWriteLock()
        with lock.write():
            assert lock.write_locked
        assert not lock.write_locked

    def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        events: list[str] = []
        lock.acquire_read()

        def writer():
            with lock.write():
                events.append("write")

        t = threading.Thread(target=writer)
        t.start()
        time.sleep(0.05)
        events.append("read-done")
        lock.release_read()
        t.join(timeout=2)

        assert events == ["read-done", "write"]

    def test_waiting_writer_blocks_new_readers(self):
        lock = ReadWriteLock()
        events: list[str] = []
        lock.acquire_read()

        def writer():
            with lock.write():
                events.append("write")

        def late_reader():
            with lock.read():
                events.append("late-read")

        w = threading.Thread(target=writer)
        w.start()
        time.sleep(0.05)
        r = threading.Thread(target=late_reader)
        r.start()
        time.sleep(0.05)
        assert events == []
        lock.release_read()
        w.join(timeout=2)
        r.join(timeout=2)

        assert events == ["write", "late-read"]

    def test_unbalanced_release(self):
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()

    def test_context_manager_releases_on_error(self):
        lock = ReadWriteLock()
        with pytest.raises(ValueError):
            with lock.write():
                raise ValueError("boom")
        assert not lock.write_locked
        with lock.read():
            assert lock.readers == 1
