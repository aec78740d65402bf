# core/text_similarity.py
import re
from typing import Optional

_NON_ALNUM_ASCII = re.compile(r"[^a-z0-9\s]")
# Unicode letters, digits and whitespace survive (body text is not ASCII-only)
_NON_ALNUM = re.compile(r"[^\w\s]|_")
_WS = re.compile(r"\s+")


def normalize_title(title: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace."""
    lowered = title.lower()
    return _WS.sub(" ", _NON_ALNUM_ASCII.sub("", lowered)).strip()


def normalize_for_comparison(text: str) -> str:
    collapsed = _WS.sub(" ", text)
    return _WS.sub(" ", _NON_ALNUM.sub("", collapsed)).lower().strip()


def levenshtein(s1: str, s2: str) -> int:
    """Classic edit distance over the full (len(s1)+1) x (len(s2)+1) table."""
    rows, cols = len(s1) + 1, len(s2) + 1
    dp = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        dp[i][0] = i
    for j in range(cols):
        dp[0][j] = j

    for i in range(1, rows):
        c1 = s1[i - 1]
        prev, cur = dp[i - 1], dp[i]
        for j in range(1, cols):
            if c1 == s2[j - 1]:
                cur[j] = prev[j - 1]
            else:
                cur[j] = 1 + min(prev[j - 1], prev[j], cur[j - 1])
    return dp[rows - 1][cols - 1]


def _edit_similarity(a: str, b: str) -> float:
    max_len = max(len(a), len(b))
    distance = levenshtein(a, b)
    return max(0.0, (max_len - distance) / max_len * 100.0)


def is_exact_title_match(title1: Optional[str], title2: Optional[str]) -> bool:
    if title1 is None or title2 is None:
        return False
    return normalize_title(title1) == normalize_title(title2)


def title_string_similarity_pct(title1: Optional[str], title2: Optional[str]) -> float:
    if title1 is None or title2 is None:
        return 0.0
    n1, n2 = normalize_title(title1), normalize_title(title2)
    # Equal includes the both-empty case
    if n1 == n2:
        return 100.0
    return _edit_similarity(n1, n2)


def text_similarity_pct(text1: str, text2: str) -> float:
    """Edit-distance similarity of two already-normalised text fragments."""
    if text1 == text2:
        return 100.0 if text1 else 0.0
    return _edit_similarity(text1, text2)
