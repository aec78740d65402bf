# repository/corpus_repository.py
from typing import Final, List, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from model.paper import PaperRecord
from repository.namespaces import CORPUS, CORPUS_BY_HASH, CORPUS_IDS
from util.enums import ErrorMessage
from util.errors import StateConflictError
from util.functions import as_str
import logging

KEY_PREFIX: Final[str] = CORPUS

logger = logging.getLogger(__name__)


class CorpusRepository:
    """
    Flow:
    - Accepted records are appended once and never updated (no TTL).
    - Insertion order is kept in a Redis list so duplicate search sees the
      corpus in a stable order.
    - A file-hash index gives O(1) lookups for "is this exact file known".
    """

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(record_id: str) -> str:
        return f"{KEY_PREFIX}:{record_id}"

    @staticmethod
    def _hash_key(file_hash: str) -> str:
        return f"{CORPUS_BY_HASH}:{file_hash}"

    async def append(self, record: PaperRecord) -> None:
        """Store a new record; an existing id is a conflict, never an overwrite."""
        r = await self._client()
        payload = record.model_dump_json(exclude_none=True).encode("utf-8")
        created = await r.set(self._key(record.id), payload, nx=True)
        if not created:
            logger.warning("corpus.append.conflict id=%s", record.id)
            raise StateConflictError(ErrorMessage.ALREADY_RECORDED)
        await r.rpush(CORPUS_IDS, record.id)
        if record.fileHash:
            await r.set(self._hash_key(record.fileHash), record.id)
        logger.info("corpus.append id=%s", record.id)

    async def get(self, record_id: str) -> Optional[PaperRecord]:
        if not record_id:
            return None
        r = await self._client()
        raw = await r.get(self._key(record_id))
        if raw is None:
            return None
        return PaperRecord.model_validate_json(raw)

    async def find_by_file_hash(self, file_hash: str) -> Optional[PaperRecord]:
        if not file_hash:
            return None
        r = await self._client()
        record_id = as_str(await r.get(self._hash_key(file_hash)))
        if not record_id:
            return None
        return await self.get(record_id)

    async def all(self) -> List[PaperRecord]:
        """Snapshot of the whole corpus in insertion order."""
        r = await self._client()
        ids = [as_str(v) for v in await r.lrange(CORPUS_IDS, 0, -1) or []]
        if not ids:
            return []
        raws = await r.mget([self._key(i) for i in ids])
        out: List[PaperRecord] = []
        for record_id, raw in zip(ids, raws):
            if raw is None:
                logger.warning("corpus.missing id=%s", record_id)
                continue
            out.append(PaperRecord.model_validate_json(raw))
        return out

    async def find_with_embeddings(self) -> List[PaperRecord]:
        return [doc for doc in await self.all() if doc.has_embeddings]

    async def count(self) -> int:
        r = await self._client()
        return int(await r.llen(CORPUS_IDS) or 0)
