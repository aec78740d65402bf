# repository/reviewer_repository.py
from typing import Iterable, List, Tuple
from redis.asyncio import Redis
from config.cache import get_redis
from repository.namespaces import ACTIVE_REVIEWERS
from util.functions import as_str


class ReviewerRepository:
    """Active reviewer pool (a Redis set); the quorum size is derived from it."""

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    async def activate(self, reviewer_ids: Iterable[str]) -> int:
        ids = [i for i in reviewer_ids if i]
        if not ids:
            return 0
        r = await self._client()
        return int(await r.sadd(ACTIVE_REVIEWERS, *ids))

    async def sync(self, reviewer_ids: Iterable[str]) -> Tuple[int, int]:
        """
        Make the pool exactly `reviewer_ids`. Returns (added, removed).
        Pending submissions keep the quorum size they were created with.
        """
        wanted = {i for i in reviewer_ids if i}
        current = set(await self.list_active())
        stale = current - wanted
        added = await self.activate(wanted - current)
        removed = 0
        if stale:
            r = await self._client()
            removed = int(await r.srem(ACTIVE_REVIEWERS, *stale))
        return added, removed

    async def is_active(self, reviewer_id: str) -> bool:
        r = await self._client()
        return bool(await r.sismember(ACTIVE_REVIEWERS, reviewer_id))

    async def count_active(self) -> int:
        r = await self._client()
        return int(await r.scard(ACTIVE_REVIEWERS) or 0)

    async def list_active(self) -> List[str]:
        r = await self._client()
        return sorted(as_str(v) for v in await r.smembers(ACTIVE_REVIEWERS) or [])
