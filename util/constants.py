# util/constants.py
from typing import Final


class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    VERIFY_THESIS = V1 + "/verify-thesis"
    SUPPORTED_FORMATS = V1 + "/supported-formats"
    PAPER_BY_HASH = V1 + "/papers/by-hash/{file_hash}"
    PENDING = V1 + "/pending-thesis"
    PENDING_SUBMIT = PENDING + "/submit"
    PENDING_AWAITING = PENDING + "/awaiting-my-approval"
    PENDING_STATS = PENDING + "/stats"
    PENDING_ITEM = PENDING + "/{submission_id}"
    PENDING_APPROVE = PENDING_ITEM + "/approve"
    PENDING_REJECT = PENDING_ITEM + "/reject"
    PENDING_RETRY_LEDGER = PENDING_ITEM + "/retry-ledger"


class ExternalURIs:
    OLLAMA_EMBEDDINGS = "/api/embeddings"
    LEDGER_RECORDS = "/records"


# Header names used by the upstream gateway to pass the authenticated principal.
PRINCIPAL_ID_HEADER: Final[str] = "X-Principal-Id"
PRINCIPAL_ROLE_HEADER: Final[str] = "X-Principal-Role"

# Sentinel ledger id for an approved record whose hand-off failed.
LEDGER_PENDING: Final[str] = "PENDING"

SUPPORTED_EXTENSIONS: Final[tuple[str, ...]] = ("pdf", "docx")
SUPPORTED_CONTENT_TYPES: Final[tuple[str, ...]] = (
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)

REPORT_DISCLAIMER: Final[str] = (
    "Similarity, plagiarism and AI-authorship figures are heuristic, best-effort "
    "estimates. They are not proof of misconduct and must be reviewed by a person."
)
