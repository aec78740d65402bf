# core/entities.py
from dataclasses import dataclass, field
from typing import Optional, List, Dict
from model.paper import PaperRecord
from util.enums import AIConclusion


@dataclass
class UploadedDocument:
    """Raw upload as handed over by the transport layer."""

    filename: Optional[str]
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class CandidateScore:
    """Per-candidate figures computed by the duplicate detector."""

    document: PaperRecord
    title_embedding_pct: float
    content_embedding_pct: float
    boosted_content_pct: float
    title_string_pct: float
    exact_title: bool
    combined_pct: float
    duplicate_alert: bool = False


@dataclass
class RankedMatch:
    document: PaperRecord
    score: float


@dataclass
class SimilarityResult:
    best_match: Optional[PaperRecord]
    combined_similarity_pct: float
    title_embedding_sim_pct: float
    content_embedding_sim_pct: float  # boosted value of the best match
    title_string_sim_pct: float
    exact_title_match: bool
    ranked_matches: List[RankedMatch] = field(default_factory=list)
    embeddings_used: bool = True

    @classmethod
    def empty(cls, embeddings_used: bool = True) -> "SimilarityResult":
        return cls(
            best_match=None,
            combined_similarity_pct=0.0,
            title_embedding_sim_pct=0.0,
            content_embedding_sim_pct=0.0,
            title_string_sim_pct=0.0,
            exact_title_match=False,
            embeddings_used=embeddings_used,
        )


@dataclass
class NearIdenticalMatch:
    document: PaperRecord
    text_similarity_pct: float


@dataclass
class AIDetectionResult:
    probability_pct: float
    conclusion: AIConclusion
    conclusion_text: str
    indicators: List[str] = field(default_factory=list)
    raw_score_pct: float = 0.0
    confidence_factor: float = 1.0
    sample_length: int = 0
    sub_scores: Dict[str, float] = field(default_factory=dict)


@dataclass
class DocumentFingerprint:
    """What verification learned about a document; reused when it joins the corpus."""

    file_hash: str
    text_length: int
    text_prefix: str
    title_embedding: Optional[List[float]] = None
    content_embedding: Optional[List[float]] = None
    embedding_model: Optional[str] = None
