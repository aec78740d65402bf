# util/locks.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator
from redis.exceptions import LockError
from config.cache import get_redis
from config.settings import settings
from repository.namespaces import LOCKS
from util.enums import ErrorMessage
from util.errors import StateConflictError

logger = logging.getLogger(__name__)


class RecordLocks:
    """
    One Redis lock per key (a submission id, or "file:<hash>" at submit).

    The lock lives in Redis next to the records it guards, so every worker
    and replica serialises on the same key. `ttl_seconds` bounds how long a
    crashed holder can block a record; `wait_seconds` bounds how long a caller
    queues before getting RECORD_BUSY.
    """

    def __init__(
        self,
        ttl_seconds: float = settings.LOCK_TTL_SECONDS,
        wait_seconds: float = settings.LOCK_WAIT_SECONDS,
        poll_seconds: float = 0.05,
    ) -> None:
        self._ttl = ttl_seconds
        self._wait = wait_seconds
        self._poll = poll_seconds

    @staticmethod
    def _key(key: str) -> str:
        return f"{LOCKS}:{key}"

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        r = await get_redis()
        # thread_local=False: concurrent coroutines share one thread but not one token
        lock = r.lock(
            self._key(key),
            timeout=self._ttl,
            sleep=self._poll,
            blocking_timeout=self._wait,
            thread_local=False,
        )
        if not await lock.acquire():
            logger.warning("lock.busy key=%s wait=%.1fs", key, self._wait)
            raise StateConflictError(ErrorMessage.RECORD_BUSY)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Held past its TTL; another holder may already own the key
                logger.error("lock.expired key=%s ttl=%.1fs", key, self._ttl)
