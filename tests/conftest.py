import asyncio
import io
import os
from typing import Dict, List, Optional

# Settings are read at import time; seed the required environment first
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import fitz
import pytest
from docx import Document as DocxDocument
from fakeredis import FakeServer
from fakeredis import aioredis as fake_aioredis

from config import cache
from core.entities import UploadedDocument
from model.paper import PaperRecord
from model.principal import Principal
from util.enums import Role
from util.errors import EmbeddingUnavailable, LedgerUnavailable


class FakeEmbedder:
    """Deterministic embedding provider: exact-text lookups, otherwise a default vector."""

    model_name = "fake-embed"

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        default: Optional[List[float]] = None,
        fail: bool = False,
    ) -> None:
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.fail = fail
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingUnavailable("embedding endpoint down")
        return list(self.vectors.get(text, self.default))


class FakeLedger:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.committed: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.committed)

    async def commit(self, record: PaperRecord) -> str:
        # Yield so concurrent approvals interleave around the hand-off
        await asyncio.sleep(0)
        self.committed.append(record.id)
        if self.fail:
            raise LedgerUnavailable("ledger down")
        return f"tx-{len(self.committed)}"


def docx_bytes(*paragraphs: str) -> bytes:
    doc = DocxDocument()
    for p in paragraphs:
        doc.add_paragraph(p)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def pdf_bytes(*lines: str) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    y = 72
    for line in lines:
        page.insert_text((72, y), line, fontsize=11)
        y += 40
    data = doc.tobytes()
    doc.close()
    return data


def upload(name: str, data: bytes) -> UploadedDocument:
    return UploadedDocument(filename=name, content_type=None, data=data)


@pytest.fixture
def fake_redis():
    client = fake_aioredis.FakeRedis(server=FakeServer())
    cache.use_redis(client)
    yield client
    cache._client = None


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def admin() -> Principal:
    return Principal(id="admin-1", role=Role.ADMIN)


@pytest.fixture
def submitter() -> Principal:
    return Principal(id="student-1", role=Role.SUBMITTER)
