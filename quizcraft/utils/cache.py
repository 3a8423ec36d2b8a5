"""
Redis cache and per-entity locks
"""
import redis
import json
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Optional, Any
from quizcraft.config import settings
from quizcraft.exceptions import InvalidStateError

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis-backed quiz cache and write locks

    Without Redis the cache is disabled and locks fall back to
    process-local threading locks, which is enough for a single worker.
    """

    def __init__(self):
        self._local_locks: Dict[str, threading.Lock] = {}
        # Holders plus waiters per name; the lock is dropped when this hits 0
        self._local_lock_users: Dict[str, int] = {}
        self._registry_lock = threading.Lock()

        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled, using local locks.")
            self.redis_client = None

    def quiz_key(self, quiz_id: str) -> str:
        return f"quiz:{quiz_id}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.info(f"Cache hit: {key}")
                return json.loads(value)
            logger.info(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(
        self,
        key: str,
        value: Any,
        ttl: int = None
    ) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (default from settings)

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        try:
            ttl = ttl or settings.QUIZ_CACHE_TTL
            serialized = json.dumps(value)
            self.redis_client.setex(key, ttl, serialized)
            logger.info(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {str(e)}")
            return False

    def delete(self, key: str) -> bool:
        """Delete key from cache"""
        if not self.redis_client:
            return False

        try:
            self.redis_client.delete(key)
            logger.info(f"Cache delete: {key}")
            return True
        except Exception as e:
            logger.error(f"Cache delete error: {str(e)}")
            return False

    def _checkout_local_lock(self, name: str) -> threading.Lock:
        with self._registry_lock:
            if name not in self._local_locks:
                self._local_locks[name] = threading.Lock()
                self._local_lock_users[name] = 0
            self._local_lock_users[name] += 1
            return self._local_locks[name]

    def _return_local_lock(self, name: str) -> None:
        with self._registry_lock:
            self._local_lock_users[name] -= 1
            if self._local_lock_users[name] == 0:
                del self._local_lock_users[name]
                del self._local_locks[name]

    @contextmanager
    def lock(self, name: str):
        """
        Hold an exclusive lock on `name` for the duration of the block

        Raises:
            InvalidStateError: lock not acquired within LOCK_WAIT_SECONDS
        """
        if self.redis_client:
            redis_lock = self.redis_client.lock(
                f"lock:{name}",
                timeout=settings.LOCK_TIMEOUT_SECONDS,
                blocking_timeout=settings.LOCK_WAIT_SECONDS
            )
            try:
                acquired = redis_lock.acquire()
            except redis.RedisError as e:
                logger.warning(f"Redis lock error for {name}: {str(e)}. Using local lock.")
                redis_lock = None
                acquired = False

            if redis_lock is not None:
                if not acquired:
                    logger.warning(f"Lock busy: {name}")
                    raise InvalidStateError("Another request for this student is in progress, try again")
                try:
                    yield
                finally:
                    try:
                        redis_lock.release()
                    except redis.exceptions.LockError as e:
                        logger.warning(f"Lock {name} expired before release: {str(e)}")
                return

        local_lock = self._checkout_local_lock(name)
        try:
            if not local_lock.acquire(timeout=settings.LOCK_WAIT_SECONDS):
                logger.warning(f"Lock busy: {name}")
                raise InvalidStateError("Another request for this student is in progress, try again")
            try:
                yield
            finally:
                local_lock.release()
        finally:
            self._return_local_lock(name)


# Global instance
cache_service = CacheService()
