# controller/controller_dependencies.py
from functools import lru_cache
from fastapi import Depends, File, Form, Header, HTTPException, Request, Response, UploadFile
from fastapi_limiter.depends import RateLimiter
from pydantic import ValidationError as PydanticValidationError
from config.settings import settings
from core.embedding_client import EmbeddingProvider, build_embedding_provider
from core.entities import UploadedDocument
from core.ledger_client import Ledger, LedgerClient
from model.api import VerificationRequest
from model.principal import Principal
from repository.blob_repository import BlobRepository
from repository.corpus_repository import CorpusRepository
from repository.reviewer_repository import ReviewerRepository
from repository.submission_repository import SubmissionRepository
from service.approval_service import ApprovalService
from service.verification_service import VerificationService
from util.constants import PRINCIPAL_ID_HEADER, PRINCIPAL_ROLE_HEADER
from util.enums import ErrorMessage, Role
from util.errors import AppError, ForbiddenError
from util.functions import split_keywords
from util.locks import RecordLocks

# Thesis + validation document travel in one request
MAX_FILES_PER_REQUEST = 2

_record_locks = RecordLocks()

_limiter = RateLimiter(times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS)


async def rate_limited(request: Request, response: Response) -> None:
    await _limiter(request, response)


# ---------------- services ----------------


@lru_cache(maxsize=1)
def get_embedding_provider() -> EmbeddingProvider:
    return build_embedding_provider()


@lru_cache(maxsize=1)
def get_ledger() -> Ledger:
    return LedgerClient()


def get_verification_service(
    embedder: EmbeddingProvider = Depends(get_embedding_provider),
) -> VerificationService:
    return VerificationService(CorpusRepository(), embedder)


def get_approval_service(
    verifier: VerificationService = Depends(get_verification_service),
    ledger: Ledger = Depends(get_ledger),
) -> ApprovalService:
    return ApprovalService(
        SubmissionRepository(),
        CorpusRepository(),
        BlobRepository(),
        ReviewerRepository(),
        verifier,
        ledger,
        _record_locks,
    )


# ---------------- principal ----------------


def get_principal(
    principal_id: str | None = Header(None, alias=PRINCIPAL_ID_HEADER),
    principal_role: str | None = Header(None, alias=PRINCIPAL_ROLE_HEADER),
) -> Principal:
    """The gateway has authenticated the caller; we only read who and what."""
    try:
        return Principal(id=(principal_id or "").strip(), role=(principal_role or "").strip().upper())
    except PydanticValidationError as e:
        raise AppError.of(ErrorMessage.UNAUTHENTICATED) from e


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if principal.role is not Role.ADMIN:
        raise ForbiddenError.of(ErrorMessage.FORBIDDEN)
    return principal


def require_reviewer(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.reviewer_facing:
        raise ForbiddenError.of(ErrorMessage.REVIEWER_ONLY)
    return principal


# ---------------- uploads ----------------


def _file_too_large() -> HTTPException:
    # JSON envelope for 413
    return HTTPException(
        status_code=413,
        detail={
            "ok": False,
            "error": "file_too_large",
            "maxMb": settings.MAX_FILE_MB,
        },
    )


async def enforce_max_upload_size(
    request: Request, file: UploadFile = File(...)
) -> UploadFile:
    # Fast pre-check via Content-Length if present
    MAX_BYTES = settings.max_file_bytes
    cl = request.headers.get("content-length")
    if cl and cl.isdigit() and int(cl) > MAX_BYTES * MAX_FILES_PER_REQUEST:
        raise _file_too_large()

    # Hard cap while reading initial bytes (works even if no Content-Length)
    blob = await file.read(MAX_BYTES + 1)
    if len(blob) > MAX_BYTES:
        raise _file_too_large()

    # Reset so downstream can re-read file stream
    await file.seek(0)
    return file


async def to_uploaded(upload: UploadFile | None) -> UploadedDocument | None:
    if upload is None:
        return None
    data = await upload.read()
    await upload.seek(0)
    return UploadedDocument(filename=upload.filename, content_type=upload.content_type, data=data)


def verification_form(
    title: str | None = Form(None),
    author: str | None = Form(None),
    department: str | None = Form(None),
    institution: str | None = Form(None),
    abstractText: str | None = Form(None),
    keywords: str | None = Form(None),
    submissionYear: int | None = Form(None),
) -> VerificationRequest:
    # Blank title/author are rejected by the service during validation
    return VerificationRequest(
        title=title or "",
        author=author or "",
        department=department or None,
        institution=institution or None,
        abstractText=abstractText or None,
        keywords=split_keywords(keywords),
        submissionYear=submissionYear,
    )
