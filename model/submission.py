# model/submission.py
from datetime import datetime, timezone
from pydantic import BaseModel, Field
from util.enums import SubmissionStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PendingSubmission(BaseModel):
    """
    The only entity with a lifecycle:
      PENDING_APPROVAL -> APPROVED | REJECTED (both terminal, retained as audit trail).
    Invariants (enforced by ApprovalService under a per-record lock):
      - uploadedBy never appears in approvals
      - approvals has no duplicates
      - len(approvals) == totalApprovalsRequired triggers APPROVED exactly once
    """

    id: str
    title: str
    author: str
    department: str | None = None
    institution: str | None = None
    abstractText: str | None = None
    keywords: list[str] = Field(default_factory=list)
    submissionYear: int | None = None

    fileHash: str
    fileName: str | None = None
    contentPath: str
    validationDocHash: str
    validationDocName: str | None = None
    validationDocPath: str

    uploadedBy: str
    approvals: set[str] = Field(default_factory=set)
    totalApprovalsRequired: int
    status: SubmissionStatus = SubmissionStatus.PENDING_APPROVAL

    rejectionReason: str | None = None
    rejectedBy: str | None = None
    rejectedAt: datetime | None = None
    approvedAt: datetime | None = None
    ledgerTxId: str | None = None
    submittedAt: datetime = Field(default_factory=_now)

    # Copied from verification so the approved record can join the corpus
    titleEmbedding: list[float] | None = None
    contentEmbedding: list[float] | None = None
    embeddingModel: str | None = None
    textLength: int = 0
    textPrefix: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status.terminal

    @property
    def quorum_reached(self) -> bool:
        return len(self.approvals) == self.totalApprovalsRequired

    @property
    def approval_progress(self) -> float:
        if self.totalApprovalsRequired <= 0:
            return 0.0
        return len(self.approvals) / self.totalApprovalsRequired * 100.0
