from contextlib import asynccontextmanager

import pytest
from fakeredis import FakeServer
from fakeredis import aioredis as fake_aioredis
from fastapi.testclient import TestClient

from conftest import FakeEmbedder, docx_bytes
from config import cache
from config.settings import settings
from controller.controller_dependencies import get_embedding_provider, get_ledger, rate_limited
from main import _seed_reviewers, app
from repository.reviewer_repository import ReviewerRepository
from util.constants import PRINCIPAL_ID_HEADER, PRINCIPAL_ROLE_HEADER

DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
THESIS = docx_bytes(
    "Field trials in 2018 and 2019 measured maize yield under drip irrigation.",
    "Yield rose by 11.2% where soil moisture stayed above field capacity.",
)
FORM = {"title": "Drip Irrigation and Maize Yield", "author": "Jane Doe", "keywords": "maize, irrigation"}


def _as(principal_id: str, role: str) -> dict:
    return {PRINCIPAL_ID_HEADER: principal_id, PRINCIPAL_ROLE_HEADER: role}


@pytest.fixture
def client(monkeypatch, ledger):
    server = FakeServer()

    @asynccontextmanager
    async def _lifespan(_app):
        # Runs inside the client's event loop, so the fake client binds there
        cache.use_redis(fake_aioredis.FakeRedis(server=server))
        await ReviewerRepository().activate(["admin-1", "admin-2", "admin-3"])
        yield
        cache._client = None

    monkeypatch.setattr(app.router, "lifespan_context", _lifespan)
    embedder = FakeEmbedder()
    app.dependency_overrides[rate_limited] = lambda: None
    app.dependency_overrides[get_embedding_provider] = lambda: embedder
    app.dependency_overrides[get_ledger] = lambda: ledger
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _submit(client: TestClient, principal: str = "admin-1"):
    return client.post(
        "/api/v1/pending-thesis/submit",
        files={
            "file": ("thesis.docx", THESIS, DOCX),
            "validationDocument": ("letter.pdf", b"%PDF-1.4 letter", "application/pdf"),
        },
        data=FORM,
        headers=_as(principal, "ADMIN"),
    )


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_supported_formats(client):
    body = client.get("/api/v1/supported-formats").json()
    assert body["formats"] == ["pdf", "docx"]
    assert body["maxFileMb"] == settings.MAX_FILE_MB


def test_verify_requires_principal(client):
    r = client.post(
        "/api/v1/verify-thesis",
        files={"file": ("thesis.docx", THESIS, DOCX)},
        data=FORM,
    )
    assert r.status_code == 401


def test_verify_rejects_legacy_doc(client):
    r = client.post(
        "/api/v1/verify-thesis",
        files={"file": ("thesis.doc", b"legacy bytes", "application/msword")},
        data=FORM,
        headers=_as("student-1", "SUBMITTER"),
    )
    assert r.status_code == 400
    assert "Legacy DOC" in r.json()["detail"]


def test_verify_first_submission(client):
    r = client.post(
        "/api/v1/verify-thesis",
        files={"file": ("thesis.docx", THESIS, DOCX)},
        data=FORM,
        headers=_as("student-1", "SUBMITTER"),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["matchType"] == "FIRST_SUBMISSION"
    assert body["plagiarismScore"] == 0.0
    assert body["aiDetection"]["conclusion"] in {"LOW", "VERY_LOW"}
    assert body["disclaimer"]


def test_upload_size_cap(client, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILE_MB", 0)
    r = client.post(
        "/api/v1/verify-thesis",
        files={"file": ("thesis.docx", THESIS, DOCX)},
        data=FORM,
        headers=_as("student-1", "SUBMITTER"),
    )
    assert r.status_code == 413
    assert r.json()["detail"]["error"] == "file_too_large"


def test_submit_requires_admin(client):
    r = client.post(
        "/api/v1/pending-thesis/submit",
        files={"file": ("thesis.docx", THESIS, DOCX)},
        data=FORM,
        headers=_as("student-1", "SUBMITTER"),
    )
    assert r.status_code == 403


def test_submit_without_validation_document(client):
    r = client.post(
        "/api/v1/pending-thesis/submit",
        files={"file": ("thesis.docx", THESIS, DOCX)},
        data=FORM,
        headers=_as("admin-1", "ADMIN"),
    )
    assert r.status_code == 400


def test_full_approval_flow(client, ledger):
    r = _submit(client)
    assert r.status_code == 201
    submission = r.json()["submission"]
    sid = submission["id"]
    assert submission["totalApprovalsRequired"] == 2
    assert submission["keywords"] == ["maize", "irrigation"]

    r = client.post(f"/api/v1/pending-thesis/{sid}/approve", headers=_as("admin-1", "ADMIN"))
    assert r.status_code == 409
    assert r.json()["detail"]["error"] == "self_approval"

    awaiting = client.get("/api/v1/pending-thesis/awaiting-my-approval", headers=_as("admin-2", "ADMIN"))
    assert [s["id"] for s in awaiting.json()] == [sid]

    r = client.post(f"/api/v1/pending-thesis/{sid}/approve", headers=_as("admin-2", "ADMIN"))
    assert r.json()["status"] == "PENDING_APPROVAL"
    assert r.json()["approvalProgress"] == 50.0

    r = client.post(f"/api/v1/pending-thesis/{sid}/approve", headers=_as("admin-3", "ADMIN"))
    assert r.json()["status"] == "APPROVED"
    assert r.json()["ledgerTxId"] == "tx-1"
    assert ledger.calls == 1

    stats = client.get("/api/v1/pending-thesis/stats", headers=_as("admin-2", "ADMIN")).json()
    assert stats == {"totalPending": 0, "uploadedByMe": 0, "approvedByMe": 1, "awaitingMyApproval": 0}

    approved = client.get("/api/v1/pending-thesis?status=APPROVED", headers=_as("admin-2", "ADMIN"))
    assert [s["id"] for s in approved.json()] == [sid]

    lookup = client.get(
        f"/api/v1/papers/by-hash/{submission['fileHash']}", headers=_as("admin-2", "REVIEWER")
    )
    assert lookup.status_code == 200
    assert lookup.json()["paper"]["id"] == sid

    hidden = client.get(
        f"/api/v1/papers/by-hash/{submission['fileHash']}", headers=_as("student-1", "SUBMITTER")
    )
    assert hidden.status_code == 403

    # The same file is now in the corpus: verification finds identical content
    again = _submit(client, "admin-2")
    assert again.status_code == 409
    assert again.json()["detail"]["error"] == "duplicate_submission"


def test_reject_requires_reason(client):
    sid = _submit(client).json()["submission"]["id"]
    r = client.post(
        f"/api/v1/pending-thesis/{sid}/reject",
        json={"reason": ""},
        headers=_as("admin-2", "ADMIN"),
    )
    assert r.status_code == 400

    r = client.post(
        f"/api/v1/pending-thesis/{sid}/reject",
        json={"reason": "Missing supervisor signature"},
        headers=_as("admin-2", "ADMIN"),
    )
    assert r.status_code == 200
    assert r.json()["status"] == "REJECTED"

    r = client.get(f"/api/v1/pending-thesis/{sid}", headers=_as("admin-3", "ADMIN"))
    assert r.json()["rejectionReason"] == "Missing supervisor signature"


def test_unknown_submission_is_404(client):
    r = client.get("/api/v1/pending-thesis/nope", headers=_as("admin-1", "ADMIN"))
    assert r.status_code == 404


def test_readyz_reports_reviewer_pool(client):
    r = client.get("/readyz")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "activeReviewers": 3}


def test_pool_member_with_reviewer_role_can_approve(client, ledger):
    sid = _submit(client).json()["submission"]["id"]
    r = client.post(f"/api/v1/pending-thesis/{sid}/approve", headers=_as("admin-2", "REVIEWER"))
    assert r.status_code == 200
    assert r.json()["approvals"] == ["admin-2"]

    awaiting = client.get("/api/v1/pending-thesis/awaiting-my-approval", headers=_as("admin-3", "REVIEWER"))
    assert [s["id"] for s in awaiting.json()] == [sid]


def test_admin_outside_pool_cannot_approve(client, ledger):
    sid = _submit(client).json()["submission"]["id"]
    client.post(f"/api/v1/pending-thesis/{sid}/approve", headers=_as("admin-2", "ADMIN"))

    r = client.post(f"/api/v1/pending-thesis/{sid}/approve", headers=_as("admin-9", "ADMIN"))
    assert r.status_code == 409
    assert r.json()["detail"]["error"] == "not_a_reviewer"
    assert ledger.calls == 0

    r = client.get(f"/api/v1/pending-thesis/{sid}", headers=_as("admin-3", "ADMIN"))
    assert r.json()["status"] == "PENDING_APPROVAL"


def test_submitter_cannot_approve(client):
    sid = _submit(client).json()["submission"]["id"]
    r = client.post(f"/api/v1/pending-thesis/{sid}/approve", headers=_as("student-1", "SUBMITTER"))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_startup_sync_removes_unlisted_reviewers(fake_redis, monkeypatch):
    reviewers = ReviewerRepository()
    await reviewers.activate(["admin-1", "admin-2", "retired-7"])
    monkeypatch.setattr(settings, "REVIEWER_IDS", ["admin-1", "admin-2", "admin-3"])

    assert await _seed_reviewers() == 3
    assert not await reviewers.is_active("retired-7")
    assert await reviewers.is_active("admin-3")


@pytest.mark.asyncio
async def test_startup_without_reviewer_ids_keeps_pool(fake_redis, monkeypatch):
    reviewers = ReviewerRepository()
    await reviewers.activate(["admin-1", "admin-2"])
    monkeypatch.setattr(settings, "REVIEWER_IDS", [])

    assert await _seed_reviewers() == 2
