import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from model.paper import PaperRecord
from model.submission import PendingSubmission
from repository.blob_repository import BlobRepository
from repository.corpus_repository import CorpusRepository
from repository.reviewer_repository import ReviewerRepository
from repository.submission_repository import SubmissionRepository
from util.enums import SubmissionStatus
from util.errors import StateConflictError
from util.locks import RecordLocks


def _record(pid: str, file_hash: str | None = None, embedded: bool = True) -> PaperRecord:
    return PaperRecord(
        id=pid,
        title=f"Title {pid}",
        author="Author",
        fileHash=file_hash,
        titleEmbedding=[1.0, 0.0] if embedded else None,
        contentEmbedding=[0.0, 1.0] if embedded else None,
    )


def _submission(sid: str, file_hash: str, minutes_ago: int = 0, **kw) -> PendingSubmission:
    return PendingSubmission(
        id=sid,
        title="A Thesis",
        author="Author",
        fileHash=file_hash,
        contentPath=f"thesis/{sid}.pdf",
        validationDocHash="v" * 64,
        validationDocPath=f"validation/{sid}.pdf",
        uploadedBy="admin-1",
        totalApprovalsRequired=2,
        submittedAt=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
        **kw,
    )


@pytest.mark.asyncio
async def test_corpus_append_get_and_order(fake_redis):
    repo = CorpusRepository()
    await repo.append(_record("a", "h-a"))
    await repo.append(_record("b", "h-b", embedded=False))
    await repo.append(_record("c", "h-c"))

    assert [d.id for d in await repo.all()] == ["a", "b", "c"]
    assert [d.id for d in await repo.find_with_embeddings()] == ["a", "c"]
    assert (await repo.get("b")).title == "Title b"
    assert (await repo.find_by_file_hash("h-c")).id == "c"
    assert await repo.find_by_file_hash("missing") is None
    assert await repo.count() == 3


@pytest.mark.asyncio
async def test_corpus_is_append_only(fake_redis):
    repo = CorpusRepository()
    await repo.append(_record("a", "h-a"))
    with pytest.raises(StateConflictError) as exc:
        await repo.append(_record("a", "h-other"))
    assert exc.value.guard == "already_recorded"
    assert await repo.count() == 1


@pytest.mark.asyncio
async def test_submission_save_and_status_listing(fake_redis):
    repo = SubmissionRepository()
    older = _submission("s1", "h1", minutes_ago=10)
    newer = _submission("s2", "h2", minutes_ago=1)
    await repo.save(older)
    await repo.save(newer)

    pending = await repo.list_by_status(SubmissionStatus.PENDING_APPROVAL)
    assert [s.id for s in pending] == ["s2", "s1"]

    older.status = SubmissionStatus.REJECTED
    older.rejectionReason = "copied"
    await repo.save(older)

    assert [s.id for s in await repo.list_by_status(SubmissionStatus.PENDING_APPROVAL)] == ["s2"]
    assert [s.id for s in await repo.list_by_status(SubmissionStatus.REJECTED)] == ["s1"]
    assert len(await repo.list_all()) == 2
    assert (await repo.find_by_file_hash("h1")).rejectionReason == "copied"


@pytest.mark.asyncio
async def test_submission_roundtrip_keeps_approvals(fake_redis):
    repo = SubmissionRepository()
    s = _submission("s1", "h1", approvals={"r1", "r2"})
    await repo.save(s)
    loaded = await repo.get("s1")
    assert loaded.approvals == {"r1", "r2"}
    assert loaded.status is SubmissionStatus.PENDING_APPROVAL
    assert await repo.get("nope") is None


@pytest.mark.asyncio
async def test_blobs(fake_redis):
    repo = BlobRepository()
    path = await repo.put(repo.thesis_path("s1", "pdf"), b"%PDF-1.7")
    assert path == "thesis/s1.pdf"
    assert await repo.get(path) == b"%PDF-1.7"
    assert await repo.delete(path) == 1
    assert await repo.get(path) is None


@pytest.mark.asyncio
async def test_reviewer_pool(fake_redis):
    repo = ReviewerRepository()
    assert await repo.activate(["r1", "r2", "r3", ""]) == 3
    assert await repo.activate(["r1"]) == 0
    assert await repo.count_active() == 3
    assert await repo.is_active("r2")

    assert await repo.activate([]) == 0


@pytest.mark.asyncio
async def test_reviewer_pool_sync_drops_unlisted_ids(fake_redis):
    repo = ReviewerRepository()
    await repo.activate(["r1", "r2", "r3"])

    assert await repo.sync(["r1", "r4", ""]) == (1, 2)
    assert await repo.list_active() == ["r1", "r4"]
    assert not await repo.is_active("r2")
    assert await repo.sync(["r1", "r4"]) == (0, 0)


@pytest.mark.asyncio
async def test_record_lock_excludes_second_holder(fake_redis):
    locks = RecordLocks(ttl_seconds=5, wait_seconds=0.1, poll_seconds=0.01)
    async with locks.hold("s1"):
        with pytest.raises(StateConflictError) as exc:
            async with locks.hold("s1"):
                pass
        assert exc.value.guard == "record_busy"

        # Other keys are independent
        async with locks.hold("s2"):
            pass

    async with locks.hold("s1"):
        pass


@pytest.mark.asyncio
async def test_record_lock_is_shared_through_redis(fake_redis):
    # Two lock registries stand in for two worker processes
    worker_a = RecordLocks(ttl_seconds=5, wait_seconds=2, poll_seconds=0.01)
    worker_b = RecordLocks(ttl_seconds=5, wait_seconds=2, poll_seconds=0.01)
    order = []

    async def critical(locks, name):
        async with locks.hold("s1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.05)
            order.append(f"{name}-out")

    await asyncio.gather(critical(worker_a, "a"), critical(worker_b, "b"))
    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
