# repository/namespaces.py
from typing import Final

ROOT: Final[str] = "thesisguard"

CORPUS: Final[str] = f"{ROOT}:corpus"  # accepted records, append-only
SUBMISSIONS: Final[str] = f"{ROOT}:submissions"  # pending/approved/rejected audit trail
BLOBS: Final[str] = f"{ROOT}:blobs"  # raw uploaded files, keyed by storage path
REVIEWERS: Final[str] = f"{ROOT}:reviewers"

CORPUS_IDS: Final[str] = f"{CORPUS}:ids"
CORPUS_BY_HASH: Final[str] = f"{CORPUS}:by-hash"
SUBMISSION_IDS: Final[str] = f"{SUBMISSIONS}:ids"
SUBMISSION_BY_HASH: Final[str] = f"{SUBMISSIONS}:by-hash"
SUBMISSION_BY_STATUS: Final[str] = f"{SUBMISSIONS}:by-status"
ACTIVE_REVIEWERS: Final[str] = f"{REVIEWERS}:active"
LOCKS: Final[str] = f"{ROOT}:locks"
