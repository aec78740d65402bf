# core/ai_content_scorer.py
"""
Heuristic estimate of AI-assisted authorship.

Five independent analyses (each capped at 100) are blended with fixed weights,
then scaled by a confidence factor that under-trusts short samples. The
result is a best-effort signal with an explicit list of indicators, never a
verdict.
"""

import logging
import re
import statistics
from typing import Dict, List, Optional, Tuple
from core.entities import AIDetectionResult
from util.enums import AIConclusion

logger = logging.getLogger(__name__)

WEIGHTS: Dict[str, float] = {
    "vocabulary": 0.25,
    "style": 0.30,
    "structure": 0.20,
    "consistency": 0.15,
    "authenticity": 0.10,
}

LONG_DOCUMENT_CHARS = 10_000
HEAD_SAMPLE_CHARS = 5_000
MIDDLE_WINDOW_CHARS = 2_000

# (phrase, weight). Self-reference is near-conclusive; stock academic filler is weak evidence.
AI_PHRASES: Tuple[Tuple[str, float], ...] = (
    ("as an ai language model", 40.0),
    ("as an ai", 30.0),
    ("i'm an ai", 30.0),
    ("i am an ai", 30.0),
    ("large language model", 30.0),
    ("my knowledge cutoff", 30.0),
    ("artificial intelligence", 10.0),
    ("in conclusion, it is evident that", 5.0),
    ("furthermore, it should be noted that", 5.0),
    ("it is worth noting that", 5.0),
    ("it is important to acknowledge that", 5.0),
    ("in this regard, it can be observed", 5.0),
    ("moreover, it is crucial to understand", 5.0),
    ("additionally, it should be emphasized", 5.0),
    ("consequently, it becomes apparent", 5.0),
    ("undeniably", 5.0),
    ("unequivocally", 5.0),
    ("indubitably", 5.0),
    ("irrefutably", 5.0),
    ("seamlessly integrated", 5.0),
    ("cutting-edge technology", 5.0),
    ("paradigm shift", 5.0),
    ("holistic approach", 5.0),
    ("comprehensive analysis", 5.0),
    ("multifaceted approach", 5.0),
    ("robust methodology", 5.0),
    ("innovative framework", 5.0),
    ("revolutionary breakthrough", 5.0),
    ("groundbreaking research", 5.0),
    ("delve into", 5.0),
)

AI_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"\b(furthermore|moreover|additionally|consequently)\s*,?\s*it\s+(is|should|can|must)\b", re.I),
    re.compile(r"\bin\s+conclusion\s*,?\s*(it\s+is\s+evident|we\s+can\s+see|it\s+becomes\s+clear)\b", re.I),
    re.compile(r"\bit\s+is\s+(worth\s+noting|important\s+to\s+acknowledge|crucial\s+to\s+understand)\s+that\b", re.I),
    re.compile(
        r"\b(comprehensive|robust|innovative|cutting-edge|state-of-the-art|groundbreaking)\s+"
        r"(analysis|approach|methodology|framework|research|solution)\b",
        re.I,
    ),
    re.compile(
        r"\b(seamlessly|effortlessly|inherently|fundamentally|intrinsically)\s+"
        r"(integrated|connected|linked|established)\b",
        re.I,
    ),
)

COMPLEX_WORDS = (
    "utilize",
    "facilitate",
    "demonstrate",
    "comprehensive",
    "substantial",
    "significant",
    "innovative",
    "extensive",
    "inherent",
)
TRANSITIONS = ("furthermore", "moreover", "additionally", "consequently", "therefore", "however")
GENERIC_PHRASES = (
    "it is important to note",
    "it should be mentioned",
    "one must consider",
    "it is worth highlighting",
    "it cannot be denied",
)
SUPERLATIVES = (
    "revolutionary",
    "groundbreaking",
    "unprecedented",
    "extraordinary",
    "remarkable",
    "exceptional",
    "outstanding",
    "phenomenal",
)
DOMAIN_TERMS = ("algorithm", "methodology", "experiment", "results", "analysis")

CONCLUSIONS: Tuple[Tuple[float, AIConclusion, str], ...] = (
    (
        80.0,
        AIConclusion.HIGH,
        "HIGH PROBABILITY: Strong indicators suggest this content was likely generated with AI assistance",
    ),
    (
        60.0,
        AIConclusion.MODERATE,
        "MODERATE PROBABILITY: Multiple indicators suggest possible AI assistance in content generation",
    ),
    (
        40.0,
        AIConclusion.LOW_MODERATE,
        "LOW-MODERATE PROBABILITY: Some patterns suggest potential AI assistance, but inconclusive",
    ),
    (
        20.0,
        AIConclusion.LOW,
        "LOW PROBABILITY: Few indicators detected, likely human-authored with minimal AI assistance",
    ),
    (
        0.0,
        AIConclusion.VERY_LOW,
        "VERY LOW PROBABILITY: Content appears to be primarily human-authored",
    ),
)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n+")
_WS = re.compile(r"\s+")
_YEAR = re.compile(r"\b\d{4}\b")
_DECIMAL = re.compile(r"\d+\.\d+")
_ACRONYM = re.compile(r"\b[A-Z]{2,}\b")


# ---------------- sampling & helpers ----------------


def build_sample(document_text: Optional[str], title: Optional[str], abstract_text: Optional[str]) -> str:
    """
    title + abstract + document text. Documents over 10k chars contribute the
    first 5k chars plus a 2k window centred on the midpoint.
    """
    parts: List[str] = []
    if title and title.strip():
        parts.append(title.strip())
    if abstract_text and abstract_text.strip():
        parts.append(abstract_text.strip())
    if document_text and document_text.strip():
        if len(document_text) > LONG_DOCUMENT_CHARS:
            mid = len(document_text) // 2
            half = MIDDLE_WINDOW_CHARS // 2
            parts.append(document_text[:HEAD_SAMPLE_CHARS])
            parts.append(document_text[mid - half : mid + half])
        else:
            parts.append(document_text)
    return "\n\n".join(parts)


def count_occurrences(text: str, needle: str) -> int:
    return text.count(needle) if needle else 0


def _sentences(text: str) -> List[str]:
    return [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def _first_words(text: str, n: int) -> str:
    return " ".join(text.split()[:n])


def confidence_factor(sample_length: int) -> float:
    if sample_length < 500:
        return 0.7
    if sample_length < 1000:
        return 0.85
    if sample_length > 5000:
        return 1.1
    return 1.0


def conclusion_for(probability: float) -> Tuple[AIConclusion, str]:
    for threshold, label, text in CONCLUSIONS:
        if probability >= threshold:
            return label, text
    return CONCLUSIONS[-1][1], CONCLUSIONS[-1][2]


# ---------------- the five analyses ----------------


def analyze_vocabulary(text: str, indicators: List[str]) -> float:
    score = 0.0
    lower = text.lower()

    for phrase, weight in AI_PHRASES:
        if phrase in lower:
            score += weight
            indicators.append(f"AI phrase detected: '{phrase}'")

    for pattern in AI_PATTERNS:
        if pattern.search(text):
            score += 8.0
            indicators.append("AI writing pattern detected")

    complex_count = sum(count_occurrences(lower, w) for w in COMPLEX_WORDS)
    total_words = len(text.split())
    ratio = complex_count / total_words if total_words else 0.0
    if ratio > 0.05:
        score += ratio * 200
        indicators.append(f"High complexity vocabulary ratio: {ratio * 100:.1f}%")

    return min(100.0, score)


def has_uniform_punctuation(text: str) -> bool:
    periods = count_occurrences(text, ".")
    commas = count_occurrences(text, ",")
    return periods > 5 and commas > 5 and abs(periods - commas) < 2


def analyze_style(text: str, indicators: List[str]) -> float:
    score = 0.0
    sentences = _sentences(text)

    if len(sentences) > 5:
        lengths = [len(s.split()) for s in sentences if len(s.strip()) > 10]
        if len(lengths) > 3:
            avg = statistics.mean(lengths)
            variance = statistics.variance(lengths)
            # Low variance with long sentences reads as machine-uniform
            if variance < 10.0 and avg > 15:
                score += 25.0
                indicators.append(f"Uniform sentence lengths detected (avg: {avg:.1f} words)")
            if avg > 25:
                score += 15.0
                indicators.append(f"Excessively long sentences (avg: {avg:.1f} words)")

    if sentences:
        lower = text.lower()
        transitions = sum(count_occurrences(lower, t) for t in TRANSITIONS)
        ratio = transitions / len(sentences)
        if ratio > 0.3:
            score += 20.0
            indicators.append(f"Excessive transition word usage: {ratio * 100:.1f}%")

    if has_uniform_punctuation(text):
        score += 10.0
        indicators.append("Suspiciously uniform punctuation patterns")

    return min(100.0, score)


def analyze_structure(text: str, indicators: List[str]) -> float:
    score = 0.0
    paragraphs = [p for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]

    if len(paragraphs) > 3:
        similar_starts = 0
        for prev, cur in zip(paragraphs, paragraphs[1:]):
            if len(cur.strip()) <= 50:
                continue
            a = _first_words(prev, 3).lower()
            b = _first_words(cur, 3).lower()
            if not a or not b:
                continue
            if any(a.startswith(w) and b.startswith(w) for w in ("the", "in", "this")):
                similar_starts += 1
        if similar_starts > len(paragraphs) * 0.4:
            score += 15.0
            indicators.append("Repetitive paragraph structure detected")

    lower = text.lower()
    if "in conclusion" in lower and any(
        p in lower for p in ("it is evident", "we can conclude", "it becomes clear")
    ):
        score += 12.0
        indicators.append("Formulaic conclusion structure detected")

    return min(100.0, score)


def has_abrupt_topic_change(sentence1: str, sentence2: str) -> bool:
    words1 = sentence1.lower().split()
    words2 = sentence2.lower().split()
    if len(words1) < 3 or len(words2) < 3:
        return False
    overlap = set(words1) & set(words2)
    # Under 10% shared vocabulary between neighbours
    return len(overlap) / min(len(words1), len(words2)) < 0.1


def analyze_consistency(text: str, indicators: List[str]) -> float:
    score = 0.0
    sentences = _sentences(text)

    if len(sentences) > 10:
        window = sentences[:20]
        abrupt = sum(
            1 for prev, cur in zip(window, window[1:]) if has_abrupt_topic_change(prev, cur)
        )
        if abrupt > 3:
            score += 10.0
            indicators.append("Potential topic inconsistencies detected")

    lower = text.lower()
    generic = sum(1 for p in GENERIC_PHRASES if p in lower)
    if generic > 2:
        score += generic * 5.0
        indicators.append(f"Multiple generic filler phrases detected ({generic} instances)")

    return min(100.0, score)


def contains_specific_details(text: str) -> bool:
    return bool(
        _YEAR.search(text)
        or _DECIMAL.search(text)
        or _ACRONYM.search(text)
        or "%" in text
        or any(term in text for term in DOMAIN_TERMS)
    )


def is_content_relevant_to_title(text: str, title: str) -> bool:
    title_words = title.lower().split()
    if not title_words:
        return False
    lower = text.lower()
    relevant = sum(1 for w in title_words if len(w) > 3 and w in lower)
    return relevant / len(title_words) >= 0.5


def analyze_authenticity(text: str, title: Optional[str], indicators: List[str]) -> float:
    score = 0.0

    if not contains_specific_details(text):
        score += 15.0
        indicators.append("Lack of specific technical details or examples")

    if title and title.strip() and not is_content_relevant_to_title(text, title):
        score += 10.0
        indicators.append("Content may not fully align with stated title")

    lower = text.lower()
    superlatives = sum(count_occurrences(lower, s) for s in SUPERLATIVES)
    if superlatives > 2:
        score += superlatives * 3.0
        indicators.append(f"Excessive use of superlative language ({superlatives} instances)")

    return min(100.0, score)


# ---------------- entry point ----------------


def analyze(
    document_text: Optional[str],
    title: Optional[str] = None,
    abstract_text: Optional[str] = None,
) -> AIDetectionResult:
    """
    Score a document for AI-assisted authorship.
    Pure function; safe to call from worker threads.
    """
    sample = build_sample(document_text, title, abstract_text)
    if not sample.strip():
        logger.warning("ai.detect.insufficient_text")
        return AIDetectionResult(
            probability_pct=0.0,
            conclusion=AIConclusion.VERY_LOW,
            conclusion_text="Insufficient text for analysis",
        )

    indicators: List[str] = []
    # Each analysis appends its own indicators, in this order
    sub_scores = {
        "vocabulary": analyze_vocabulary(sample, indicators),
        "style": analyze_style(sample, indicators),
        "structure": analyze_structure(sample, indicators),
        "consistency": analyze_consistency(sample, indicators),
        "authenticity": analyze_authenticity(sample, title, indicators),
    }
    raw = sum(sub_scores[name] * weight for name, weight in WEIGHTS.items())

    factor = confidence_factor(len(sample))
    probability = max(0.0, min(100.0, raw * factor))
    label, text = conclusion_for(probability)

    logger.info(
        "ai.detect.done prob=%.1f raw=%.1f factor=%.2f chars=%d indicators=%d",
        probability,
        raw,
        factor,
        len(sample),
        len(indicators),
    )
    return AIDetectionResult(
        probability_pct=probability,
        conclusion=label,
        conclusion_text=text,
        indicators=indicators,
        raw_score_pct=raw,
        confidence_factor=factor,
        sample_length=len(sample),
        sub_scores=sub_scores,
    )
