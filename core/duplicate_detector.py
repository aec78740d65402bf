# core/duplicate_detector.py
"""
Decides "is this the same work" against a corpus snapshot.

Two entry points:
- find_near_identical: cheap pre-pass on text length + bounded-prefix edit distance.
- find_best_match: embedding distance blended with title string similarity,
  with title-driven boosting of the content score.

Both treat the corpus sequence as a read-only snapshot.
"""

import logging
from typing import List, Optional, Sequence
from core import text_similarity as ts
from core import vector_similarity as vs
from core.entities import (
    CandidateScore,
    NearIdenticalMatch,
    RankedMatch,
    SimilarityResult,
)
from model.paper import PaperRecord

logger = logging.getLogger(__name__)

EXACT_TITLE_PCT = 95.0
VERY_SIMILAR_TITLE_PCT = 85.0
DUPLICATE_ALERT_TITLE_PCT = 80.0
SIMILAR_TITLE_PCT = 75.0
DUPLICATE_ALERT_CONTENT_PCT = 50.0
DUPLICATE_ALERT_FLOOR = 85.0
RANKING_MIN_COMBINED = 25.0

PREFIX_CHARS = 1000
LENGTH_RATIO_MIN = 0.98
IDENTICAL_TEXT_PCT = 95.0
MODERATE_TEXT_PCT = 70.0


def text_prefix(text: str) -> str:
    """First PREFIX_CHARS characters of the normalised text."""
    return ts.normalize_for_comparison(text)[:PREFIX_CHARS]


def find_near_identical(
    text: str, corpus: Sequence[PaperRecord]
) -> Optional[NearIdenticalMatch]:
    """
    Returns the first stored record whose text is > 95% identical on the
    bounded prefix. Records in (70, 95] are logged and skipped: moderate
    overlap alone is not conclusive and goes through full scoring.
    """
    length = len(text)
    if length == 0:
        return None
    prefix = text_prefix(text)

    for doc in corpus:
        if doc.textLength <= 0 or not doc.textPrefix:
            continue
        ratio = min(length, doc.textLength) / max(length, doc.textLength)
        if ratio <= LENGTH_RATIO_MIN:
            continue

        logger.info(
            "identical.length_match doc=%s new=%d stored=%d",
            doc.id,
            length,
            doc.textLength,
        )
        sim = ts.text_similarity_pct(prefix, doc.textPrefix)
        if sim > IDENTICAL_TEXT_PCT:
            logger.warning("identical.hit doc=%s sim=%.2f", doc.id, sim)
            return NearIdenticalMatch(document=doc, text_similarity_pct=sim)
        if sim > MODERATE_TEXT_PCT:
            logger.info("identical.moderate doc=%s sim=%.2f", doc.id, sim)
    return None


def _boost_content(content_pct: float, title_string_pct: float, exact: bool) -> float:
    if exact or title_string_pct >= EXACT_TITLE_PCT:
        return max(content_pct, 95.0)
    if title_string_pct >= VERY_SIMILAR_TITLE_PCT:
        return max(content_pct, min(95.0, content_pct + 25.0))
    if title_string_pct >= SIMILAR_TITLE_PCT:
        return max(content_pct, min(90.0, content_pct + 15.0))
    return content_pct


def score_candidate(
    title: str,
    title_embedding: Optional[Sequence[float]],
    content_embedding: Optional[Sequence[float]],
    doc: PaperRecord,
) -> CandidateScore:
    exact = ts.is_exact_title_match(title, doc.title)
    title_string_pct = ts.title_string_similarity_pct(title, doc.title)

    embeddings_ok = vs.vectors_valid(title_embedding, doc.titleEmbedding) and vs.vectors_valid(
        content_embedding, doc.contentEmbedding
    )
    title_pct = vs.similarity_percentage(title_embedding, doc.titleEmbedding) if embeddings_ok else 0.0
    content_pct = (
        vs.similarity_percentage(content_embedding, doc.contentEmbedding) if embeddings_ok else 0.0
    )

    boosted = _boost_content(content_pct, title_string_pct, exact)
    exact_flag = exact or title_string_pct >= EXACT_TITLE_PCT
    if exact_flag:
        logger.warning("duplicate.exact_title doc=%s", doc.id)
    elif title_string_pct >= SIMILAR_TITLE_PCT:
        logger.warning("duplicate.similar_title doc=%s title_pct=%.2f", doc.id, title_string_pct)

    if title_string_pct >= VERY_SIMILAR_TITLE_PCT:
        w_title, w_content = 0.6, 0.4
    else:
        w_title, w_content = 0.3, 0.7

    if embeddings_ok:
        combined = vs.combined_similarity(
            title_embedding,
            doc.titleEmbedding,
            content_embedding,
            doc.contentEmbedding,
            w_title,
            w_content,
        )
    else:
        # Text-only: the legible title is the only evidence left
        combined = title_string_pct * w_title + boosted * w_content

    # A human-legible title match outweighs an embedding-only title match
    if title_string_pct >= SIMILAR_TITLE_PCT:
        combined = title_string_pct * w_title + boosted * w_content

    alert = False
    if title_string_pct >= DUPLICATE_ALERT_TITLE_PCT and content_pct >= DUPLICATE_ALERT_CONTENT_PCT:
        combined = max(combined, DUPLICATE_ALERT_FLOOR)
        alert = True
        logger.warning(
            "duplicate.alert doc=%s title_pct=%.2f content_pct=%.2f combined=%.2f",
            doc.id,
            title_string_pct,
            content_pct,
            combined,
        )

    logger.debug(
        "duplicate.candidate doc=%s title_emb=%.2f title_str=%.2f content=%.2f adj=%.2f combined=%.2f",
        doc.id,
        title_pct,
        title_string_pct,
        content_pct,
        boosted,
        combined,
    )
    return CandidateScore(
        document=doc,
        title_embedding_pct=title_pct,
        content_embedding_pct=content_pct,
        boosted_content_pct=boosted,
        title_string_pct=title_string_pct,
        exact_title=exact_flag,
        combined_pct=combined,
        duplicate_alert=alert,
    )


def find_best_match(
    title: str,
    title_embedding: Optional[Sequence[float]],
    content_embedding: Optional[Sequence[float]],
    corpus: Sequence[PaperRecord],
) -> SimilarityResult:
    """
    Scores every candidate and keeps the one with the highest combined score.
    Ties keep the earlier candidate. Candidates with combined > 25% or
    title-string > 75% are ranked in descending order.
    """
    embeddings_used = bool(title_embedding) and bool(content_embedding)
    best: Optional[CandidateScore] = None
    ranked: List[RankedMatch] = []

    for doc in corpus:
        cand = score_candidate(title, title_embedding, content_embedding, doc)
        if cand.combined_pct > RANKING_MIN_COMBINED or cand.title_string_pct > SIMILAR_TITLE_PCT:
            ranked.append(RankedMatch(document=doc, score=cand.combined_pct))
        if best is None or cand.combined_pct > best.combined_pct:
            best = cand

    ranked.sort(key=lambda m: m.score, reverse=True)

    if best is None or best.combined_pct <= 0.0:
        result = SimilarityResult.empty(embeddings_used=embeddings_used)
        result.ranked_matches = ranked
        return result

    logger.info(
        "duplicate.best doc=%s combined=%.2f ranked=%d embeddings=%s",
        best.document.id,
        best.combined_pct,
        len(ranked),
        embeddings_used,
    )
    return SimilarityResult(
        best_match=best.document,
        combined_similarity_pct=best.combined_pct,
        title_embedding_sim_pct=best.title_embedding_pct,
        content_embedding_sim_pct=best.boosted_content_pct,
        title_string_sim_pct=best.title_string_pct,
        exact_title_match=best.exact_title,
        ranked_matches=ranked,
        embeddings_used=embeddings_used,
    )
