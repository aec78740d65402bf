# repository/submission_repository.py
from typing import Final, List, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from model.submission import PendingSubmission
from repository.namespaces import (
    SUBMISSIONS,
    SUBMISSION_BY_HASH,
    SUBMISSION_BY_STATUS,
    SUBMISSION_IDS,
)
from util.enums import SubmissionStatus
from util.functions import as_str

KEY_PREFIX: Final[str] = SUBMISSIONS


class SubmissionRepository:
    """
    Flow:
    - One JSON document per submission, overwritten on every transition.
    - Status sets mirror the current status for listing; the record itself is
      the source of truth.
    - Records are never deleted or expired: rejected and approved entries are
      the audit trail.
    """

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(submission_id: str) -> str:
        return f"{KEY_PREFIX}:{submission_id}"

    @staticmethod
    def _hash_key(file_hash: str) -> str:
        return f"{SUBMISSION_BY_HASH}:{file_hash}"

    @staticmethod
    def _status_key(status: SubmissionStatus) -> str:
        return f"{SUBMISSION_BY_STATUS}:{status.value}"

    # ---------------- Core CRUD ----------------

    async def save(self, submission: PendingSubmission) -> None:
        r = await self._client()
        payload = submission.model_dump_json(exclude_none=True).encode("utf-8")
        await r.set(self._key(submission.id), payload)
        await r.sadd(SUBMISSION_IDS, submission.id)
        await r.set(self._hash_key(submission.fileHash), submission.id)
        for status in SubmissionStatus:
            if status is submission.status:
                await r.sadd(self._status_key(status), submission.id)
            else:
                await r.srem(self._status_key(status), submission.id)

    async def get(self, submission_id: str) -> Optional[PendingSubmission]:
        if not submission_id:
            return None
        r = await self._client()
        raw = await r.get(self._key(submission_id))
        if raw is None:
            return None
        return PendingSubmission.model_validate_json(raw)

    async def find_by_file_hash(self, file_hash: str) -> Optional[PendingSubmission]:
        """Latest submission of this exact file, whatever its status."""
        if not file_hash:
            return None
        r = await self._client()
        submission_id = as_str(await r.get(self._hash_key(file_hash)))
        if not submission_id:
            return None
        return await self.get(submission_id)

    # ---------------- Listing ----------------

    async def _load_many(self, ids: List[str]) -> List[PendingSubmission]:
        if not ids:
            return []
        r = await self._client()
        raws = await r.mget([self._key(i) for i in ids])
        out = [PendingSubmission.model_validate_json(raw) for raw in raws if raw is not None]
        # Newest first
        out.sort(key=lambda s: s.submittedAt, reverse=True)
        return out

    async def list_by_status(self, status: SubmissionStatus) -> List[PendingSubmission]:
        r = await self._client()
        ids = [as_str(v) for v in await r.smembers(self._status_key(status)) or []]
        return await self._load_many(ids)

    async def list_all(self) -> List[PendingSubmission]:
        r = await self._client()
        ids = [as_str(v) for v in await r.smembers(SUBMISSION_IDS) or []]
        return await self._load_many(ids)
