import math

import pytest

from conftest import FakeEmbedder, docx_bytes, upload
from core.document_text import extract_text
from core.duplicate_detector import text_prefix
from model.api import VerificationRequest
from model.paper import PaperRecord
from repository.corpus_repository import CorpusRepository
from service.verification_service import VerificationService, validate_upload
from util.constants import REPORT_DISCLAIMER
from util.enums import MatchType
from util.errors import NotFoundError, ValidationError
from util.functions import sha256_hex

NEAR_ORTHOGONAL = [0.02, math.sqrt(1 - 0.02**2)]

THESIS_PARAGRAPHS = (
    "Deep learning models were trained on 12 seasons of satellite imagery from 2008 to 2020.",
    "We compare convolutional and recurrent architectures against a linear baseline.",
    "The recurrent model reduced error by 8.5% on held-out districts.",
)


def _request(title: str = "Deep Learning for Crop Yield Prediction") -> VerificationRequest:
    return VerificationRequest(title=title, author="Jane Doe", institution="State University")


def _thesis():
    return upload("thesis.docx", docx_bytes(*THESIS_PARAGRAPHS))


@pytest.fixture
def corpus(fake_redis) -> CorpusRepository:
    return CorpusRepository()


# ---------------- validation ----------------


@pytest.mark.parametrize(
    "name,data,fragment",
    [
        (None, b"x", "Filename is required"),
        ("thesis.doc", b"x", "Legacy DOC"),
        ("thesis.txt", b"x", "Unsupported file format"),
        ("thesis.pdf", b"", "cannot be empty"),
    ],
)
def test_validate_upload_rejections(name, data, fragment):
    with pytest.raises(ValidationError) as exc:
        validate_upload(upload(name, data))
    assert fragment in exc.value.detail
    assert exc.value.status_code == 400


def test_validate_upload_size_cap():
    with pytest.raises(ValidationError):
        validate_upload(upload("thesis.pdf", b"x" * 11), max_bytes=10)
    assert validate_upload(upload("Thesis.PDF", b"x" * 10), max_bytes=10) == "pdf"


@pytest.mark.asyncio
async def test_missing_title_is_rejected_before_hashing(corpus, embedder, admin):
    service = VerificationService(corpus, embedder)
    with pytest.raises(ValidationError) as exc:
        await service.verify(admin, _request(title="  "), _thesis())
    assert "title" in exc.value.detail
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_unreadable_document_is_a_validation_error(corpus, embedder, admin):
    service = VerificationService(corpus, embedder)
    with pytest.raises(ValidationError):
        await service.verify(admin, _request(), upload("thesis.pdf", b"not a pdf at all"))


# ---------------- short-circuits ----------------


@pytest.mark.asyncio
async def test_first_submission_still_scores_ai(corpus, embedder, admin):
    service = VerificationService(corpus, embedder)
    report, fingerprint = await service.verify_with_fingerprint(admin, _request(), _thesis())

    assert report.matchType is MatchType.FIRST_SUBMISSION
    assert report.similarityScore == 0.0
    assert report.plagiarismScore == 0.0
    assert report.verified is False
    assert report.blockingDuplicate is False
    assert report.aiDetection is not None
    assert report.disclaimer == REPORT_DISCLAIMER
    assert fingerprint.title_embedding == embedder.default
    assert fingerprint.embedding_model == "fake-embed"
    assert embedder.calls[0] == "Title: Deep Learning for Crop Yield Prediction"
    assert embedder.calls[1].startswith("Document: ")


@pytest.mark.asyncio
async def test_identical_content_short_circuits(corpus, embedder, submitter):
    doc = _thesis()
    text = extract_text(doc.data, "docx")
    await corpus.append(
        PaperRecord(
            id="p1",
            title="Some Other Title",
            author="Original Author",
            textLength=len(text),
            textPrefix=text_prefix(text),
        )
    )
    service = VerificationService(corpus, embedder)
    report = await service.verify(submitter, _request(), doc)

    assert report.matchType is MatchType.IDENTICAL_CONTENT
    assert report.similarityScore == 100.0
    assert report.plagiarismScore == 100.0
    assert report.blockingDuplicate is True
    assert report.aiDetection is None
    assert report.bestMatch is None
    assert embedder.calls == []


# ---------------- scored path ----------------


@pytest.mark.asyncio
async def test_exact_title_reviewer_and_submitter_views(corpus, admin, submitter):
    await corpus.append(
        PaperRecord(
            id="p1",
            title="Deep Learning for Crop Yield Prediction",
            author="John Roe",
            institution="Other University",
            department="Agronomy",
            titleEmbedding=[0.0, 1.0],
            contentEmbedding=[0.0, 1.0],
        )
    )
    service = VerificationService(corpus, FakeEmbedder(default=[1.0, 0.0]))

    reviewer_report = await service.verify(admin, _request(), _thesis())
    assert reviewer_report.matchType is MatchType.EXACT_TITLE_MATCH
    assert reviewer_report.similarityAnalysis.exactTitleMatch is True
    assert reviewer_report.plagiarismScore >= 90.0
    assert reviewer_report.verified is True
    assert reviewer_report.blockingDuplicate is True
    assert reviewer_report.bestMatch.id == "p1"
    assert "John Roe" in reviewer_report.message
    assert [m.paperId for m in reviewer_report.similarityAnalysis.topMatches] == ["p1"]

    submitter_report = await service.verify(submitter, _request(), _thesis())
    assert submitter_report.plagiarismScore == reviewer_report.plagiarismScore
    assert submitter_report.bestMatch is None
    assert submitter_report.similarityAnalysis.topMatches is None
    assert "John Roe" not in submitter_report.message
    assert "Other University" not in submitter_report.message


@pytest.mark.asyncio
async def test_unrelated_documents_report_midpoint_similarity(corpus, admin):
    await corpus.append(
        PaperRecord(
            id="p1",
            title="Microbial Ecology of Alpine Lakes",
            author="A. Limnologist",
            titleEmbedding=NEAR_ORTHOGONAL,
            contentEmbedding=NEAR_ORTHOGONAL,
        )
    )
    service = VerificationService(corpus, FakeEmbedder(default=[1.0, 0.0]))
    report = await service.verify(admin, _request(), _thesis())

    assert report.similarityScore == pytest.approx(51.0, abs=0.1)
    assert report.plagiarismScore == pytest.approx(51.0, abs=1.0)
    assert report.matchType is MatchType.PARTIAL_MATCH
    assert report.verified is False
    assert report.blockingDuplicate is False
    assert report.degraded is False


@pytest.mark.asyncio
async def test_blocking_threshold_is_configurable(corpus, admin):
    await corpus.append(
        PaperRecord(
            id="p1",
            title="Microbial Ecology of Alpine Lakes",
            author="A. Limnologist",
            titleEmbedding=NEAR_ORTHOGONAL,
            contentEmbedding=NEAR_ORTHOGONAL,
        )
    )
    service = VerificationService(
        corpus, FakeEmbedder(default=[1.0, 0.0]), blocking_plagiarism_pct=50.0
    )
    report = await service.verify(admin, _request(), _thesis())
    assert report.blockingDuplicate is True


@pytest.mark.asyncio
async def test_embedding_outage_degrades_instead_of_failing(corpus, admin):
    await corpus.append(
        PaperRecord(
            id="p1",
            title="Deep Learning for Crop Yield Prediction",
            author="John Roe",
            titleEmbedding=[0.0, 1.0],
            contentEmbedding=[0.0, 1.0],
        )
    )
    service = VerificationService(corpus, FakeEmbedder(fail=True))
    report, fingerprint = await service.verify_with_fingerprint(admin, _request(), _thesis())

    assert report.degraded is True
    assert report.similarityAnalysis.embeddingsUsed is False
    assert report.matchType is MatchType.EXACT_TITLE_MATCH
    assert report.aiDetection is not None
    assert fingerprint.title_embedding is None


@pytest.mark.asyncio
async def test_known_file_hash_is_flagged(corpus, embedder, admin):
    doc = _thesis()
    await corpus.append(
        PaperRecord(id="p1", title="Unrelated Work", author="X", fileHash=sha256_hex(doc.data))
    )
    service = VerificationService(corpus, embedder)
    report = await service.verify(admin, _request(), doc)
    assert report.knownFile is True
    assert report.fileHash == sha256_hex(doc.data)


@pytest.mark.asyncio
async def test_lookup_by_hash(corpus, embedder):
    await corpus.append(PaperRecord(id="p1", title="T", author="A", fileHash="abc", ledgerTxId="tx-9"))
    service = VerificationService(corpus, embedder)

    found = await service.lookup_by_hash("abc")
    assert found.found is True
    assert found.paper.id == "p1"
    assert found.ledgerTxId == "tx-9"

    with pytest.raises(NotFoundError):
        await service.lookup_by_hash("nope")
