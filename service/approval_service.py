# service/approval_service.py
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import uuid4
from core.entities import DocumentFingerprint, UploadedDocument
from core.ledger_client import Ledger
from model.api import ApprovalStatistics, VerificationReport, VerificationRequest
from model.paper import PaperRecord
from model.principal import Principal
from model.submission import PendingSubmission
from repository.blob_repository import BlobRepository
from repository.corpus_repository import CorpusRepository
from repository.reviewer_repository import ReviewerRepository
from repository.submission_repository import SubmissionRepository
from service.verification_service import VerificationService, validate_upload
from util.constants import LEDGER_PENDING
from util.enums import ErrorMessage, Role, SubmissionStatus
from util.errors import (
    LedgerUnavailable,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from util.functions import file_extension, sha256_hex
from util.locks import RecordLocks

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalService:
    """
    Quorum approval of verified theses.

    A submission needs one approval from every active reviewer except its
    uploader; only pool members may upload, approve or reject. Every mutation
    of one record runs under that record's Redis lock, so "add approval, check
    quorum, transition" is a single step per id across workers.

    Quorum persists APPROVED with ledgerTxId=PENDING before the ledger is
    called, so a failure anywhere after that point leaves a terminal record
    that only `retry_ledger` can finish and the ledger sees each id at most
    once from the approval path.
    """

    def __init__(
        self,
        submissions: SubmissionRepository,
        corpus: CorpusRepository,
        blobs: BlobRepository,
        reviewers: ReviewerRepository,
        verifier: VerificationService,
        ledger: Ledger,
        locks: RecordLocks,
    ) -> None:
        self._submissions = submissions
        self._corpus = corpus
        self._blobs = blobs
        self._reviewers = reviewers
        self._verifier = verifier
        self._ledger = ledger
        self._locks = locks

    # ---------------- submit ----------------

    async def submit(
        self,
        principal: Principal,
        request: VerificationRequest,
        document: UploadedDocument,
        validation_document: Optional[UploadedDocument],
    ) -> Tuple[PendingSubmission, VerificationReport]:
        """
        Verify, then park the thesis for approval.
        Logs: ids, sizes and the required quorum (no payloads).
        """
        if document.size == 0 or validation_document is None or validation_document.size == 0:
            raise ValidationError.of(ErrorMessage.VALIDATION_DOCUMENT_REQUIRED)
        validation_ext = validate_upload(validation_document)
        await self._require_pool_member(principal)

        # Submissions always see the full reviewer report
        viewer = principal if principal.reviewer_facing else Principal(id=principal.id, role=Role.REVIEWER)
        report, fingerprint = await self._verifier.verify_with_fingerprint(viewer, request, document)
        if report.blockingDuplicate:
            logger.warning(
                "submit.blocked uploader=%s match=%s plagiarism=%.2f",
                principal.id,
                report.matchType.value,
                report.plagiarismScore,
            )
            raise StateConflictError(ErrorMessage.DUPLICATE_SUBMISSION)

        async with self._locks.hold(f"file:{fingerprint.file_hash}"):
            existing = await self._submissions.find_by_file_hash(fingerprint.file_hash)
            if existing is not None and existing.status is SubmissionStatus.PENDING_APPROVAL:
                raise StateConflictError(ErrorMessage.ALREADY_PENDING)
            if (existing is not None and existing.status is SubmissionStatus.APPROVED) or (
                await self._corpus.find_by_file_hash(fingerprint.file_hash) is not None
            ):
                raise StateConflictError(ErrorMessage.ALREADY_RECORDED)

            active = await self._reviewers.count_active()
            required = active - 1
            if required <= 0:
                logger.warning("submit.insufficient_reviewers active=%d", active)
                raise StateConflictError(ErrorMessage.INSUFFICIENT_REVIEWERS)

            submission_id = str(uuid4())
            thesis_ext = file_extension(document.filename or "")
            content_path = await self._blobs.put(
                self._blobs.thesis_path(submission_id, thesis_ext), document.data
            )
            validation_path = await self._blobs.put(
                self._blobs.validation_path(submission_id, validation_ext),
                validation_document.data,
            )
            submission = self._new_submission(
                submission_id,
                principal,
                request,
                document,
                validation_document,
                fingerprint,
                content_path=content_path,
                validation_path=validation_path,
                required=required,
            )
            await self._submissions.save(submission)

        logger.info(
            "submit.ok id=%s uploader=%s bytes=%d required=%d",
            submission.id,
            principal.id,
            document.size,
            required,
        )
        return submission, report

    @staticmethod
    def _new_submission(
        submission_id: str,
        principal: Principal,
        request: VerificationRequest,
        document: UploadedDocument,
        validation_document: UploadedDocument,
        fp: DocumentFingerprint,
        *,
        content_path: str,
        validation_path: str,
        required: int,
    ) -> PendingSubmission:
        return PendingSubmission(
            id=submission_id,
            title=request.title.strip(),
            author=request.author.strip(),
            department=request.department,
            institution=request.institution,
            abstractText=request.abstractText,
            keywords=list(request.keywords),
            submissionYear=request.submissionYear,
            fileHash=fp.file_hash,
            fileName=document.filename,
            contentPath=content_path,
            validationDocHash=sha256_hex(validation_document.data),
            validationDocName=validation_document.filename,
            validationDocPath=validation_path,
            uploadedBy=principal.id,
            totalApprovalsRequired=required,
            titleEmbedding=fp.title_embedding,
            contentEmbedding=fp.content_embedding,
            embeddingModel=fp.embedding_model,
            textLength=fp.text_length,
            textPrefix=fp.text_prefix,
        )

    # ---------------- transitions ----------------

    async def approve(self, submission_id: str, reviewer: Principal) -> PendingSubmission:
        async with self._locks.hold(submission_id):
            submission = await self.get(submission_id)
            if reviewer.id == submission.uploadedBy:
                raise StateConflictError(ErrorMessage.SELF_APPROVAL)
            await self._require_pool_member(reviewer)
            if submission.is_terminal:
                raise StateConflictError(ErrorMessage.TERMINAL_STATE)
            if reviewer.id in submission.approvals:
                raise StateConflictError(ErrorMessage.DOUBLE_APPROVAL)

            submission.approvals.add(reviewer.id)
            logger.info(
                "approve.ok id=%s reviewer=%s count=%d required=%d",
                submission.id,
                reviewer.id,
                len(submission.approvals),
                submission.totalApprovalsRequired,
            )
            if not submission.quorum_reached:
                await self._submissions.save(submission)
                return submission

            # Terminal before the hand-off: nothing below can re-open the record
            submission.status = SubmissionStatus.APPROVED
            submission.approvedAt = _now()
            submission.ledgerTxId = LEDGER_PENDING
            await self._submissions.save(submission)
            logger.info(
                "approve.quorum id=%s approvals=%d", submission.id, len(submission.approvals)
            )
            await self._finish_hand_off(submission)
            return submission

    async def reject(self, submission_id: str, reviewer: Principal, reason: str) -> PendingSubmission:
        async with self._locks.hold(submission_id):
            submission = await self.get(submission_id)
            if reviewer.id == submission.uploadedBy:
                raise StateConflictError(ErrorMessage.SELF_REJECTION)
            await self._require_pool_member(reviewer)
            if not reason or not reason.strip():
                raise ValidationError.of(ErrorMessage.REASON_REQUIRED)
            if submission.is_terminal:
                raise StateConflictError(ErrorMessage.TERMINAL_STATE)

            submission.status = SubmissionStatus.REJECTED
            submission.rejectionReason = reason.strip()
            submission.rejectedBy = reviewer.id
            submission.rejectedAt = _now()
            await self._submissions.save(submission)

        logger.info("reject.ok id=%s reviewer=%s", submission.id, reviewer.id)
        return submission

    async def retry_ledger(self, submission_id: str) -> PendingSubmission:
        """
        Finish an interrupted hand-off for an approved record: commit to the
        ledger if no transaction id was stored, then make sure the record is
        in the corpus. A record with both done is refused.
        """
        async with self._locks.hold(submission_id):
            submission = await self.get(submission_id)
            if submission.status is not SubmissionStatus.APPROVED:
                raise StateConflictError(ErrorMessage.LEDGER_NOT_PENDING)
            recorded = await self._corpus.get(submission.id) is not None
            if submission.ledgerTxId != LEDGER_PENDING and recorded:
                raise StateConflictError(ErrorMessage.LEDGER_NOT_PENDING)

            logger.info(
                "ledger.retry id=%s tx=%s recorded=%s",
                submission.id,
                submission.ledgerTxId,
                recorded,
            )
            await self._finish_hand_off(submission)
            return submission

    async def _finish_hand_off(self, submission: PendingSubmission) -> None:
        """
        Ledger commit (only while ledgerTxId is PENDING), then the corpus append.
        The transaction id is saved before the append so a corpus failure never
        leads to a second commit.
        """
        if submission.ledgerTxId == LEDGER_PENDING:
            tx_id = await self._hand_off(self._to_record(submission))
            if tx_id != LEDGER_PENDING:
                submission.ledgerTxId = tx_id
                await self._submissions.save(submission)
                logger.info("ledger.handoff.ok id=%s tx=%s", submission.id, tx_id)

        try:
            await self._corpus.append(self._to_record(submission))
        except StateConflictError:
            # Appended by an earlier attempt; the corpus is append-only
            logger.info("corpus.append.exists id=%s", submission.id)

    async def _hand_off(self, record: PaperRecord) -> str:
        try:
            return await self._ledger.commit(record)
        except LedgerUnavailable as e:
            logger.warning("ledger.handoff.pending id=%s reason=%s", record.id, e)
            return LEDGER_PENDING

    async def _require_pool_member(self, principal: Principal) -> None:
        if not await self._reviewers.is_active(principal.id):
            logger.warning("reviewer.not_in_pool principal=%s", principal.id)
            raise StateConflictError(ErrorMessage.NOT_A_REVIEWER)

    @staticmethod
    def _to_record(s: PendingSubmission) -> PaperRecord:
        return PaperRecord(
            id=s.id,
            title=s.title,
            author=s.author,
            department=s.department,
            institution=s.institution,
            submissionDate=s.submittedAt,
            fileHash=s.fileHash,
            abstractText=s.abstractText,
            keywords=list(s.keywords),
            titleEmbedding=s.titleEmbedding,
            contentEmbedding=s.contentEmbedding,
            embeddingModel=s.embeddingModel,
            textLength=s.textLength,
            textPrefix=s.textPrefix,
            uploadedBy=s.uploadedBy,
            approvedBy=sorted(s.approvals),
            ledgerTxId=s.ledgerTxId,
        )

    # ---------------- queries ----------------

    async def get(self, submission_id: str) -> PendingSubmission:
        submission = await self._submissions.get(submission_id)
        if submission is None:
            raise NotFoundError.of(ErrorMessage.SUBMISSION_NOT_FOUND)
        return submission

    async def list_by_status(self, status: Optional[SubmissionStatus] = None) -> List[PendingSubmission]:
        if status is None:
            return await self._submissions.list_all()
        return await self._submissions.list_by_status(status)

    async def awaiting_approval(self, reviewer: Principal) -> List[PendingSubmission]:
        pending = await self._submissions.list_by_status(SubmissionStatus.PENDING_APPROVAL)
        return [
            s for s in pending if s.uploadedBy != reviewer.id and reviewer.id not in s.approvals
        ]

    async def uploaded_by(self, reviewer: Principal) -> List[PendingSubmission]:
        return [s for s in await self._submissions.list_all() if s.uploadedBy == reviewer.id]

    async def statistics(self, reviewer: Principal) -> ApprovalStatistics:
        everything = await self._submissions.list_all()
        pending = [s for s in everything if s.status is SubmissionStatus.PENDING_APPROVAL]
        return ApprovalStatistics(
            totalPending=len(pending),
            uploadedByMe=sum(1 for s in everything if s.uploadedBy == reviewer.id),
            approvedByMe=sum(1 for s in everything if reviewer.id in s.approvals),
            awaitingMyApproval=sum(
                1
                for s in pending
                if s.uploadedBy != reviewer.id and reviewer.id not in s.approvals
            ),
        )
