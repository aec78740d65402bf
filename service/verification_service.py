# service/verification_service.py
import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from config.settings import settings
from core import ai_content_scorer, plagiarism_scorer
from core.document_text import extract_text
from core.duplicate_detector import find_best_match, find_near_identical, text_prefix
from core.embedding_client import EmbeddingProvider, embed_document, embed_title
from core.entities import (
    AIDetectionResult,
    DocumentFingerprint,
    NearIdenticalMatch,
    SimilarityResult,
    UploadedDocument,
)
from model.api import (
    AIDetection,
    MatchedPaper,
    PaperLookupResponse,
    RankedMatchOut,
    SimilarityAnalysis,
    VerificationReport,
    VerificationRequest,
)
from model.paper import PaperRecord
from model.principal import Principal
from repository.corpus_repository import CorpusRepository
from util.constants import REPORT_DISCLAIMER, SUPPORTED_EXTENSIONS
from util.enums import ErrorMessage, MatchType, VerificationStage
from util.errors import EmbeddingUnavailable, NotFoundError, ValidationError
from util.functions import file_extension, sha256_hex
from util.timing import timed

logger = logging.getLogger(__name__)

ORIGINAL_WORK_PCT = 15.0
NEGLIGIBLE_PCT = 5.0
VERIFIED_PCT = 75.0
IDENTICAL_PCT = 95.0


def validate_upload(document: UploadedDocument, max_bytes: Optional[int] = None) -> str:
    """
    Returns the lowercase extension of an acceptable upload.
    Raises ValidationError for a missing name, legacy .doc, any other type,
    an empty body or an oversized body.
    """
    if not document.filename or not document.filename.strip():
        raise ValidationError.of(ErrorMessage.FILENAME_REQUIRED)
    ext = file_extension(document.filename.strip())
    if ext == "doc":
        raise ValidationError.of(ErrorMessage.LEGACY_DOC)
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValidationError.of(ErrorMessage.UNSUPPORTED_FORMAT)
    if document.size == 0:
        raise ValidationError.of(ErrorMessage.FILE_REQUIRED)
    limit = max_bytes if max_bytes is not None else settings.max_file_bytes
    if document.size > limit:
        raise ValidationError.of(
            ErrorMessage.FILE_TOO_LARGE, f"{limit // (1024 * 1024)} MB"
        )
    return ext


def _ai_info(ai: Optional[AIDetectionResult]) -> str:
    if ai is None:
        return "AI Detection: not run"
    return f"AI Detection: {ai.probability_pct:.1f}% probability"


def _reviewer_message(
    best: PaperRecord, similarity: float, plagiarism: float, verified: bool, ai_info: str
) -> str:
    where = f"'{best.title}' by {best.author} from {best.institution or 'unknown institution'}"
    dept = best.department or "n/a"
    if plagiarism >= 95.0:
        return (
            f"SEVERE PLAGIARISM DETECTED: {similarity:.1f}% similarity with {where} ({dept}). "
            f"This appears to be copied or nearly identical content. | {ai_info}"
        )
    if plagiarism >= 85.0:
        return (
            f"HIGH PLAGIARISM RISK: {similarity:.1f}% similarity detected with {where}. "
            f"Significant overlap found. Department: {dept} | Plagiarism Score: {plagiarism:.1f}% | {ai_info}"
        )
    if plagiarism >= 70.0:
        return (
            f"MODERATE PLAGIARISM RISK: {similarity:.1f}% similarity with {where}. "
            f"Please review for potential plagiarism. Department: {dept} | Score: {plagiarism:.1f}% | {ai_info}"
        )
    if verified:
        return (
            f"SIMILARITY DETECTED: {similarity:.1f}% similarity with existing research {where}. "
            f"Department: {dept} | Plagiarism Score: {plagiarism:.1f}% | {ai_info} | "
            "Recommended: Review for citations and references"
        )
    return _low_similarity_message(similarity, plagiarism, ai_info)


def _submitter_message(similarity: float, plagiarism: float, verified: bool, ai_info: str) -> str:
    figures = f"Similarity Score: {similarity:.1f}% | Plagiarism Risk: {plagiarism:.1f}% | {ai_info}"
    if plagiarism >= 95.0:
        return (
            f"SEVERE PLAGIARISM DETECTED: {figures} | "
            "Status: Nearly identical content found. This appears to be copied material."
        )
    if plagiarism >= 85.0:
        return (
            f"HIGH PLAGIARISM RISK: {figures} | "
            "Status: Significant overlap detected with existing research"
        )
    if plagiarism >= 70.0:
        return (
            f"MODERATE PLAGIARISM RISK: {figures} | "
            "Status: Moderate overlap detected - please review content carefully"
        )
    if verified:
        return f"SIMILARITY DETECTED: {figures} | Status: Some similarity found with existing research"
    return _low_similarity_message(similarity, plagiarism, ai_info)


def _low_similarity_message(similarity: float, plagiarism: float, ai_info: str) -> str:
    return (
        f"LOW SIMILARITY: Similarity Score: {similarity:.1f}% | Plagiarism Risk: {plagiarism:.1f}% | "
        f"{ai_info} | Status: Minimal overlap detected - appears to be largely original work"
    )


class VerificationService:
    """
    Staged verification of one upload against the corpus:
      VALIDATING -> HASHING -> IDENTICAL_CHECK -> EMBEDDING_COMPARE -> SCORING -> REPORTED

    Short-circuits:
      - validation failure raises before hashing
      - near-identical text returns a fixed 100/100 report (no AI scoring)
      - an empty corpus returns a first-submission report (AI scoring still runs)

    An unreachable embedding provider never fails the call: comparison falls
    back to title strings and the report is marked degraded.
    """

    def __init__(
        self,
        corpus: CorpusRepository,
        embedder: EmbeddingProvider,
        blocking_plagiarism_pct: float = settings.BLOCKING_PLAGIARISM_PCT,
        top_matches_limit: int = settings.TOP_MATCHES_LIMIT,
    ) -> None:
        self._corpus = corpus
        self._embedder = embedder
        self._blocking_pct = float(blocking_plagiarism_pct)
        self._top_matches = int(top_matches_limit)

    @staticmethod
    def _stage(stage: VerificationStage, **kv) -> None:
        suffix = "".join(f" {k}={v}" for k, v in kv.items())
        logger.info("verify.stage stage=%s%s", stage.value, suffix)

    async def verify(
        self,
        principal: Principal,
        request: VerificationRequest,
        document: UploadedDocument,
    ) -> VerificationReport:
        report, _ = await self.verify_with_fingerprint(principal, request, document)
        return report

    async def verify_with_fingerprint(
        self,
        principal: Principal,
        request: VerificationRequest,
        document: UploadedDocument,
    ) -> Tuple[VerificationReport, DocumentFingerprint]:
        self._stage(VerificationStage.VALIDATING, principal=principal.id, bytes=document.size)
        ext = validate_upload(document)
        if not request.title or not request.title.strip():
            raise ValidationError.of(ErrorMessage.MISSING_FIELD, "title")
        if not request.author or not request.author.strip():
            raise ValidationError.of(ErrorMessage.MISSING_FIELD, "author")
        title = request.title.strip()

        self._stage(VerificationStage.HASHING)
        file_hash = sha256_hex(document.data)
        known = await self._corpus.find_by_file_hash(file_hash)
        if known is not None:
            logger.info("verify.hash.known hash=%s doc=%s", file_hash[:12], known.id)

        try:
            with timed(logger, "verify.extract", ext=ext, bytes=document.size):
                text = await asyncio.to_thread(extract_text, document.data, ext)
        except Exception as e:
            logger.error("verify.extract.error ext=%s", ext, exc_info=True)
            raise ValidationError.of(ErrorMessage.NO_TEXT) from e
        if not text.strip():
            raise ValidationError.of(ErrorMessage.NO_TEXT)

        fingerprint = DocumentFingerprint(
            file_hash=file_hash,
            text_length=len(text),
            text_prefix=text_prefix(text),
        )

        self._stage(VerificationStage.IDENTICAL_CHECK)
        corpus = await self._corpus.all()
        hit = await asyncio.to_thread(find_near_identical, text, corpus)
        if hit is not None:
            report = self._identical_report(principal, hit, file_hash, known is not None)
            self._stage(VerificationStage.REPORTED, match=report.matchType.value)
            return report, fingerprint

        self._stage(VerificationStage.EMBEDDING_COMPARE, corpus=len(corpus))
        title_emb, content_emb = await self._embed(title, text)
        degraded = title_emb is None or content_emb is None
        if not degraded:
            fingerprint.title_embedding = title_emb
            fingerprint.content_embedding = content_emb
            fingerprint.embedding_model = getattr(self._embedder, "model_name", None)

        ai = await asyncio.to_thread(
            ai_content_scorer.analyze, text, title, request.abstractText
        )

        if not corpus:
            report = self._first_submission_report(ai, file_hash, degraded)
            self._stage(VerificationStage.REPORTED, match=report.matchType.value)
            return report, fingerprint

        self._stage(VerificationStage.SCORING, embeddings=not degraded)
        with timed(logger, "verify.compare", corpus=len(corpus)):
            similarity = await asyncio.to_thread(
                find_best_match, title, title_emb, content_emb, corpus
            )

        report = self._scored_report(
            principal, similarity, ai, file_hash, degraded, known is not None, len(corpus)
        )
        self._stage(
            VerificationStage.REPORTED,
            match=report.matchType.value,
            similarity=f"{report.similarityScore:.2f}",
            plagiarism=f"{report.plagiarismScore:.2f}",
            blocking=report.blockingDuplicate,
        )
        return report, fingerprint

    async def lookup_by_hash(self, file_hash: str) -> PaperLookupResponse:
        record = await self._corpus.find_by_file_hash(file_hash)
        if record is None:
            raise NotFoundError.of(ErrorMessage.PAPER_NOT_FOUND)
        return PaperLookupResponse(
            found=True, paper=MatchedPaper.from_record(record), ledgerTxId=record.ledgerTxId
        )

    # ---------------- internals ----------------

    async def _embed(
        self, title: str, text: str
    ) -> Tuple[Optional[List[float]], Optional[List[float]]]:
        try:
            title_emb = await embed_title(self._embedder, title)
            content_emb = await embed_document(self._embedder, text)
        except EmbeddingUnavailable as e:
            logger.warning("verify.embed.degraded reason=%s", e)
            return None, None
        return title_emb, content_emb

    def _is_blocking(self, match_type: MatchType, plagiarism: float) -> bool:
        if match_type in (MatchType.IDENTICAL_CONTENT, MatchType.EXACT_TITLE_MATCH):
            return True
        return plagiarism >= self._blocking_pct

    @staticmethod
    def _ai_out(ai: AIDetectionResult) -> AIDetection:
        return AIDetection(
            probability=round(ai.probability_pct, 2),
            conclusion=ai.conclusion,
            conclusionText=ai.conclusion_text,
            indicators=list(ai.indicators),
            confidenceFactor=ai.confidence_factor,
            sampleLength=ai.sample_length,
        )

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _identical_report(
        self, principal: Principal, hit: NearIdenticalMatch, file_hash: str, known: bool
    ) -> VerificationReport:
        doc = hit.document
        if principal.reviewer_facing:
            message = (
                "CRITICAL: Identical content detected! This document appears to be the same "
                f"as '{doc.title}' by {doc.author} already in the corpus."
            )
        else:
            message = (
                "CRITICAL: Identical content detected! This document appears to be the same "
                "as an existing paper in our database."
            )
        analysis = SimilarityAnalysis(
            titleEmbeddingSimilarity=0.0,
            contentSimilarity=round(hit.text_similarity_pct, 2),
            titleStringSimilarity=0.0,
            exactTitleMatch=False,
            embeddingsUsed=False,
            matchedPapersCount=1,
        )
        return VerificationReport(
            verified=True,
            blockingDuplicate=True,
            matchType=MatchType.IDENTICAL_CONTENT,
            similarityScore=100.0,
            plagiarismScore=100.0,
            bestMatch=MatchedPaper.from_record(doc) if principal.reviewer_facing else None,
            similarityAnalysis=analysis,
            aiDetection=None,
            message=message,
            disclaimer=REPORT_DISCLAIMER,
            fileHash=file_hash,
            knownFile=known,
            verifiedAt=self._now(),
        )

    def _first_submission_report(
        self, ai: AIDetectionResult, file_hash: str, degraded: bool
    ) -> VerificationReport:
        message = (
            "VERIFICATION COMPLETE: Database contains no prior submissions for comparison. "
            f"Similarity Score: 0.0% | Plagiarism Risk: 0% | {_ai_info(ai)} | "
            "Status: First submission - No conflicts detected."
        )
        analysis = SimilarityAnalysis(
            titleEmbeddingSimilarity=0.0,
            contentSimilarity=0.0,
            titleStringSimilarity=0.0,
            exactTitleMatch=False,
            embeddingsUsed=not degraded,
            matchedPapersCount=0,
        )
        return VerificationReport(
            verified=False,
            blockingDuplicate=False,
            matchType=MatchType.FIRST_SUBMISSION,
            similarityScore=0.0,
            plagiarismScore=0.0,
            similarityAnalysis=analysis,
            aiDetection=self._ai_out(ai),
            message=message,
            disclaimer=REPORT_DISCLAIMER,
            degraded=degraded,
            fileHash=file_hash,
            verifiedAt=self._now(),
        )

    def _scored_report(
        self,
        principal: Principal,
        sim: SimilarityResult,
        ai: AIDetectionResult,
        file_hash: str,
        degraded: bool,
        known: bool,
        corpus_size: int,
    ) -> VerificationReport:
        best = sim.best_match
        combined = sim.combined_similarity_pct
        ai_info = _ai_info(ai)
        reviewer = principal.reviewer_facing

        if best is not None and sim.exact_title_match:
            match_type = MatchType.EXACT_TITLE_MATCH
            plagiarism = plagiarism_scorer.plagiarism_score(combined, sim.title_string_sim_pct)
            plagiarism = plagiarism_scorer.exact_title_floor(
                plagiarism, sim.content_embedding_sim_pct
            )
            verified = True
            if reviewer:
                message = (
                    "CRITICAL: Research with identical title already exists! "
                    f"Title: '{best.title}' by {best.author} from "
                    f"{best.institution or 'unknown institution'}. Plagiarism score: {plagiarism:.1f}%"
                )
            else:
                message = (
                    "CRITICAL: Research with identical title already exists! "
                    f"Similarity Score: {combined:.1f}% | Plagiarism Risk: {plagiarism:.1f}% | "
                    "Status: Duplicate title detected"
                )
        elif best is None or combined < ORIGINAL_WORK_PCT:
            match_type = MatchType.ORIGINAL_WORK
            plagiarism = 0.0
            verified = False
            if combined <= NEGLIGIBLE_PCT:
                message = (
                    "VERIFICATION COMPLETE: No similar research found in database. "
                    f"Similarity Score: {combined:.1f}% | Plagiarism Risk: 0% | {ai_info} | "
                    "Status: Original work detected. No title conflicts found."
                )
            else:
                message = (
                    "VERIFICATION COMPLETE: Very low similarity detected. "
                    f"Similarity Score: {combined:.1f}% | Plagiarism Risk: 0% | {ai_info} | "
                    "Status: Appears to be original work with minimal overlap."
                )
        else:
            plagiarism = plagiarism_scorer.plagiarism_score(combined, sim.title_string_sim_pct)
            plagiarism = plagiarism_scorer.apply_minimum_floors(combined, plagiarism)
            if combined >= IDENTICAL_PCT:
                match_type = MatchType.IDENTICAL_CONTENT
            else:
                match_type = plagiarism_scorer.determine_match_type(combined)
            verified = combined >= VERIFIED_PCT
            if reviewer:
                message = _reviewer_message(best, combined, plagiarism, verified, ai_info)
            else:
                message = _submitter_message(combined, plagiarism, verified, ai_info)

        top: Optional[List[RankedMatchOut]] = None
        if reviewer:
            top = [
                RankedMatchOut(
                    paperId=m.document.id,
                    title=m.document.title,
                    author=m.document.author,
                    department=m.document.department,
                    submissionDate=m.document.submissionDate,
                    similarityScore=round(m.score, 2),
                )
                for m in sim.ranked_matches[: self._top_matches]
            ]

        analysis = SimilarityAnalysis(
            titleEmbeddingSimilarity=round(sim.title_embedding_sim_pct, 2),
            contentSimilarity=round(sim.content_embedding_sim_pct, 2),
            titleStringSimilarity=round(sim.title_string_sim_pct, 2),
            exactTitleMatch=sim.exact_title_match,
            embeddingsUsed=sim.embeddings_used and not degraded,
            matchedPapersCount=corpus_size,
            topMatches=top,
        )
        if degraded:
            message += " | Note: semantic comparison unavailable, title-only comparison used"

        show_best = reviewer and best is not None and match_type is not MatchType.ORIGINAL_WORK
        return VerificationReport(
            verified=verified,
            blockingDuplicate=self._is_blocking(match_type, plagiarism),
            matchType=match_type,
            similarityScore=round(combined, 2),
            plagiarismScore=round(plagiarism, 2),
            bestMatch=MatchedPaper.from_record(best) if show_best else None,
            similarityAnalysis=analysis,
            aiDetection=self._ai_out(ai),
            message=message,
            disclaimer=REPORT_DISCLAIMER,
            degraded=degraded,
            fileHash=file_hash,
            knownFile=known,
            verifiedAt=self._now(),
        )
