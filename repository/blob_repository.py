# repository/blob_repository.py
from typing import Optional
from redis.asyncio import Redis
from config.cache import get_redis
from repository.namespaces import BLOBS

THESIS_DIR = "thesis"
VALIDATION_DIR = "validation"


class BlobRepository:
    """
    Redis-backed byte storage for uploaded theses and their validation documents.

    Blobs are addressed by a storage path ("thesis/<id>.pdf") that the
    submission record keeps; nothing expires while the record exists.
    """

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(path: str) -> str:
        return f"{BLOBS}:{path}"

    @staticmethod
    def thesis_path(submission_id: str, extension: str) -> str:
        return f"{THESIS_DIR}/{submission_id}.{extension}"

    @staticmethod
    def validation_path(submission_id: str, extension: str) -> str:
        return f"{VALIDATION_DIR}/{submission_id}.{extension}"

    async def put(self, path: str, data: bytes) -> str:
        r = await self._client()
        await r.set(self._key(path), data)
        return path

    async def get(self, path: str) -> Optional[bytes]:
        r = await self._client()
        raw = await r.get(self._key(path))
        return raw if raw is not None else None

    async def delete(self, path: str) -> int:
        r = await self._client()
        return int(await r.delete(self._key(path)))
