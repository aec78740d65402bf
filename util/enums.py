# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class EmbeddingBackend(str, Enum):
    HTTP = "http"
    LOCAL = "local"


class Role(str, Enum):
    ADMIN = "ADMIN"
    REVIEWER = "REVIEWER"
    SUBMITTER = "SUBMITTER"

    @property
    def reviewer_facing(self) -> bool:
        return self in (Role.ADMIN, Role.REVIEWER)


class MatchType(str, Enum):
    FIRST_SUBMISSION = "FIRST_SUBMISSION"
    IDENTICAL_CONTENT = "IDENTICAL_CONTENT"
    EXACT_TITLE_MATCH = "EXACT_TITLE_MATCH"
    EXACT_MATCH = "EXACT_MATCH"
    HIGH_SIMILARITY = "HIGH_SIMILARITY"
    PARTIAL_MATCH = "PARTIAL_MATCH"
    NO_MATCH = "NO_MATCH"
    ORIGINAL_WORK = "ORIGINAL_WORK"


class VerificationStage(str, Enum):
    VALIDATING = "VALIDATING"
    HASHING = "HASHING"
    IDENTICAL_CHECK = "IDENTICAL_CHECK"
    EMBEDDING_COMPARE = "EMBEDDING_COMPARE"
    SCORING = "SCORING"
    REPORTED = "REPORTED"


class SubmissionStatus(str, Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def terminal(self) -> bool:
        return self is not SubmissionStatus.PENDING_APPROVAL


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    UNAUTHENTICATED = ErrorInfo(
        "Missing or invalid principal headers", status.HTTP_401_UNAUTHORIZED
    )
    FORBIDDEN = ErrorInfo(
        "This action requires an administrator", status.HTTP_403_FORBIDDEN
    )
    REVIEWER_ONLY = ErrorInfo(
        "This action is restricted to reviewers", status.HTTP_403_FORBIDDEN
    )

    # Validation
    FILE_REQUIRED = ErrorInfo("File cannot be empty", status.HTTP_400_BAD_REQUEST)
    FILENAME_REQUIRED = ErrorInfo("Filename is required", status.HTTP_400_BAD_REQUEST)
    LEGACY_DOC = ErrorInfo(
        "Legacy DOC format is not supported. Please convert to DOCX format.",
        status.HTTP_400_BAD_REQUEST,
    )
    UNSUPPORTED_FORMAT = ErrorInfo(
        "Unsupported file format. Supported formats: PDF (.pdf), Word Document (.docx)",
        status.HTTP_400_BAD_REQUEST,
    )
    FILE_TOO_LARGE = ErrorInfo(
        "File size exceeds the upload limit", status.HTTP_400_BAD_REQUEST
    )
    NO_TEXT = ErrorInfo(
        "No text content could be extracted from the document",
        status.HTTP_400_BAD_REQUEST,
    )
    MISSING_FIELD = ErrorInfo("Missing required field", status.HTTP_400_BAD_REQUEST)
    VALIDATION_DOCUMENT_REQUIRED = ErrorInfo(
        "Both thesis file and validation document are required",
        status.HTTP_400_BAD_REQUEST,
    )
    REASON_REQUIRED = ErrorInfo(
        "A rejection reason is required", status.HTTP_400_BAD_REQUEST
    )

    # Lookups
    SUBMISSION_NOT_FOUND = ErrorInfo(
        "Pending thesis not found", status.HTTP_404_NOT_FOUND
    )
    PAPER_NOT_FOUND = ErrorInfo("Paper not found", status.HTTP_404_NOT_FOUND)

    # Workflow guards
    SELF_APPROVAL = ErrorInfo(
        "You cannot approve your own thesis submission", status.HTTP_409_CONFLICT
    )
    DOUBLE_APPROVAL = ErrorInfo(
        "You have already approved this thesis", status.HTTP_409_CONFLICT
    )
    SELF_REJECTION = ErrorInfo(
        "You cannot reject your own thesis submission", status.HTTP_409_CONFLICT
    )
    TERMINAL_STATE = ErrorInfo(
        "This thesis has already been approved or rejected", status.HTTP_409_CONFLICT
    )
    INSUFFICIENT_REVIEWERS = ErrorInfo(
        "Insufficient admins for approval workflow. Need at least 2 active admins.",
        status.HTTP_409_CONFLICT,
    )
    DUPLICATE_SUBMISSION = ErrorInfo(
        "Verification found a blocking duplicate of existing research",
        status.HTTP_409_CONFLICT,
    )
    ALREADY_PENDING = ErrorInfo(
        "This thesis file has already been submitted for approval",
        status.HTTP_409_CONFLICT,
    )
    ALREADY_RECORDED = ErrorInfo(
        "This thesis has already been verified and recorded on the ledger",
        status.HTTP_409_CONFLICT,
    )
    LEDGER_NOT_PENDING = ErrorInfo(
        "Only approved theses with an unfinished ledger or corpus hand-off can be retried",
        status.HTTP_409_CONFLICT,
    )
    NOT_A_REVIEWER = ErrorInfo(
        "Only members of the active reviewer pool can submit, approve or reject theses",
        status.HTTP_409_CONFLICT,
    )
    RECORD_BUSY = ErrorInfo(
        "This thesis is being updated by another request. Try again shortly.",
        status.HTTP_409_CONFLICT,
    )


class AIConclusion(str, Enum):
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW_MODERATE = "LOW_MODERATE"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"
