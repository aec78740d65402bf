# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import EmbeddingBackend, Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(default="*", validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(default=30, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=60, validation_alias="RATE_LIMIT_SECONDS")
    MAX_FILE_MB: int = Field(default=50, validation_alias="MAX_FILE_MB")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Embedding provider
    EMBEDDING_BACKEND: EmbeddingBackend = Field(
        default=EmbeddingBackend.HTTP, validation_alias="EMBEDDING_BACKEND"
    )
    EMBEDDING_API_URL: str = Field(
        default="http://localhost:11434", validation_alias="EMBEDDING_API_URL"
    )
    EMBEDDING_MODEL: str = Field(
        default="nomic-embed-text", validation_alias="EMBEDDING_MODEL"
    )
    # Used only by the local backend
    EMBEDDING_MODEL_NAME: str = "sentence-transformers/all-MiniLM-L6-v2"
    EMBEDDING_TIMEOUT_SECONDS: float = Field(
        default=30.0, validation_alias="EMBEDDING_TIMEOUT_SECONDS"
    )
    EMBEDDING_MAX_DOCUMENT_CHARS: int = 8000

    # Ledger
    LEDGER_API_URL: str = Field(
        default="http://localhost:7051", validation_alias="LEDGER_API_URL"
    )
    LEDGER_TIMEOUT_SECONDS: float = Field(
        default=15.0, validation_alias="LEDGER_TIMEOUT_SECONDS"
    )

    # Per-record Redis locks (approval mutations, submit by file hash)
    LOCK_TTL_SECONDS: float = Field(default=120.0, validation_alias="LOCK_TTL_SECONDS")
    LOCK_WAIT_SECONDS: float = Field(default=30.0, validation_alias="LOCK_WAIT_SECONDS")

    # Verification policy
    BLOCKING_PLAGIARISM_PCT: float = Field(
        default=70.0, validation_alias="BLOCKING_PLAGIARISM_PCT"
    )
    TOP_MATCHES_LIMIT: int = 5

    # Reviewer pool seeded at startup (JSON list in env)
    REVIEWER_IDS: list[str] = Field(default_factory=list, validation_alias="REVIEWER_IDS")

    # Logging knobs
    LOGGER_NAME: str = "thesis-guard"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    @property
    def max_file_bytes(self) -> int:
        return self.MAX_FILE_MB * 1024 * 1024


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
