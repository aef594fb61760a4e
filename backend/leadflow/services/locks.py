"""Redis lock preventing two processes from running the same scheduler tick."""

from contextlib import contextmanager

import redis
import structlog
from redis.exceptions import LockError

from leadflow.config import Settings

logger = structlog.get_logger()


class TickLockBusy(RuntimeError):
    """Another process holds the tick lock."""


class RedisTickLock:
    def __init__(self, client: redis.Redis, key: str = "leadflow:automation_tick", ttl: int = 300):
        self.client = client
        self.key = key
        self.ttl = ttl

    @contextmanager
    def hold(self):
        lock = self.client.lock(self.key, timeout=self.ttl)
        if not lock.acquire(blocking=False):
            raise TickLockBusy("Duplicate task execution prevented")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # expired while the tick ran; another process may own it now
                logger.warning("tick_lock_release_failed", key=self.key)


def create_tick_lock(config: Settings) -> RedisTickLock | None:
    if not config.scheduler_redis_lock:
        return None
    client = redis.Redis.from_url(config.redis_url)
    return RedisTickLock(client, ttl=max(config.scheduler_interval_seconds, 60))
