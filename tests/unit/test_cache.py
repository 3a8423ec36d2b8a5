"""
Unit tests for per-student locks without Redis.

Run: pytest tests/unit/test_cache.py -v
"""
import pytest

from quizcraft.config import settings
from quizcraft.exceptions import InvalidStateError
from quizcraft.utils.cache import cache_service


@pytest.fixture
def local_locks(monkeypatch):
    monkeypatch.setattr(cache_service, "redis_client", None)
    monkeypatch.setattr(settings, "LOCK_WAIT_SECONDS", 0.05)
    return cache_service


class TestLocalLocks:

    def test_released_locks_are_forgotten(self, local_locks):
        for n in range(50):
            with local_locks.lock(f"student:s{n}"):
                assert f"student:s{n}" in local_locks._local_locks

        assert local_locks._local_locks == {}
        assert local_locks._local_lock_users == {}

    def test_busy_lock_rejected(self, local_locks):
        with local_locks.lock("student:s1"):
            with pytest.raises(InvalidStateError):
                with local_locks.lock("student:s1"):
                    pass

            # the holder keeps its entry after the waiter gives up
            assert local_locks._local_lock_users == {"student:s1": 1}

        assert local_locks._local_locks == {}

    def test_lock_freed_after_error(self, local_locks):
        with pytest.raises(RuntimeError):
            with local_locks.lock("student:s1"):
                raise RuntimeError("boom")

        with local_locks.lock("student:s1"):
            pass
        assert local_locks._local_locks == {}
