# model/api.py
from datetime import datetime
from pydantic import BaseModel, Field
from model.paper import PaperRecord
from model.submission import PendingSubmission
from util.enums import AIConclusion, MatchType, SubmissionStatus


class VerificationRequest(BaseModel):
    """Metadata that accompanies an uploaded thesis."""

    title: str
    author: str
    department: str | None = None
    institution: str | None = None
    abstractText: str | None = None
    keywords: list[str] = Field(default_factory=list)
    submissionYear: int | None = None


# ---------------- Verification report ----------------


class MatchedPaper(BaseModel):
    id: str
    title: str
    author: str
    department: str | None = None
    institution: str | None = None
    submissionDate: datetime | None = None

    @classmethod
    def from_record(cls, record: PaperRecord) -> "MatchedPaper":
        return cls(
            id=record.id,
            title=record.title,
            author=record.author,
            department=record.department,
            institution=record.institution,
            submissionDate=record.submissionDate,
        )


class RankedMatchOut(BaseModel):
    paperId: str
    title: str
    author: str
    department: str | None = None
    submissionDate: datetime | None = None
    similarityScore: float


class SimilarityAnalysis(BaseModel):
    titleEmbeddingSimilarity: float
    contentSimilarity: float
    titleStringSimilarity: float
    exactTitleMatch: bool
    embeddingsUsed: bool
    matchedPapersCount: int
    # Reviewer-facing only
    topMatches: list[RankedMatchOut] | None = None


class AIDetection(BaseModel):
    probability: float
    conclusion: AIConclusion
    conclusionText: str
    indicators: list[str] = Field(default_factory=list)
    confidenceFactor: float = 1.0
    sampleLength: int = 0


class VerificationReport(BaseModel):
    verified: bool
    blockingDuplicate: bool
    matchType: MatchType
    similarityScore: float
    plagiarismScore: float
    # Reviewer-facing only
    bestMatch: MatchedPaper | None = None
    similarityAnalysis: SimilarityAnalysis | None = None
    aiDetection: AIDetection | None = None
    message: str
    disclaimer: str
    degraded: bool = False
    fileHash: str
    knownFile: bool = False
    verifiedAt: datetime


class SupportedFormatsResponse(BaseModel):
    formats: list[str]
    contentTypes: list[str]
    maxFileMb: int
    notes: str


class PaperLookupResponse(BaseModel):
    found: bool
    paper: MatchedPaper | None = None
    ledgerTxId: str | None = None


# ---------------- Approval workflow ----------------


class PendingSubmissionResponse(BaseModel):
    id: str
    title: str
    author: str
    department: str | None = None
    institution: str | None = None
    abstractText: str | None = None
    keywords: list[str] = Field(default_factory=list)
    submissionYear: int | None = None
    fileName: str | None = None
    fileHash: str
    uploadedBy: str
    approvals: list[str] = Field(default_factory=list)
    approvalCount: int
    totalApprovalsRequired: int
    approvalProgress: float
    status: SubmissionStatus
    rejectionReason: str | None = None
    rejectedBy: str | None = None
    rejectedAt: datetime | None = None
    approvedAt: datetime | None = None
    ledgerTxId: str | None = None
    submittedAt: datetime

    @classmethod
    def from_submission(cls, s: PendingSubmission) -> "PendingSubmissionResponse":
        return cls(
            id=s.id,
            title=s.title,
            author=s.author,
            department=s.department,
            institution=s.institution,
            abstractText=s.abstractText,
            keywords=list(s.keywords),
            submissionYear=s.submissionYear,
            fileName=s.fileName,
            fileHash=s.fileHash,
            uploadedBy=s.uploadedBy,
            approvals=sorted(s.approvals),
            approvalCount=len(s.approvals),
            totalApprovalsRequired=s.totalApprovalsRequired,
            approvalProgress=round(s.approval_progress, 2),
            status=s.status,
            rejectionReason=s.rejectionReason,
            rejectedBy=s.rejectedBy,
            rejectedAt=s.rejectedAt,
            approvedAt=s.approvedAt,
            ledgerTxId=s.ledgerTxId,
            submittedAt=s.submittedAt,
        )


class SubmitResponse(BaseModel):
    submission: PendingSubmissionResponse
    report: VerificationReport


class RejectRequest(BaseModel):
    reason: str = ""


class ApprovalStatistics(BaseModel):
    totalPending: int
    uploadedByMe: int
    approvedByMe: int
    awaitingMyApproval: int
