# model/paper.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class PaperRecord(BaseModel):
    """
    A previously accepted record in the corpus (the candidate set for duplicate search).
    Immutable once stored; the corpus repository only ever appends.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    author: str
    department: str | None = None
    institution: str | None = None
    submissionDate: datetime | None = None
    fileHash: str | None = None
    abstractText: str | None = None
    keywords: list[str] = Field(default_factory=list)

    titleEmbedding: list[float] | None = None
    contentEmbedding: list[float] | None = None
    embeddingModel: str | None = None

    # Near-identical pre-pass: length of the extracted text and its normalised prefix
    textLength: int = 0
    textPrefix: str = ""

    uploadedBy: str | None = None
    approvedBy: list[str] = Field(default_factory=list)
    ledgerTxId: str | None = None

    @property
    def has_embeddings(self) -> bool:
        return bool(self.titleEmbedding) and bool(self.contentEmbedding)
