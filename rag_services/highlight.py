"""
Source highlighting.

Finds where a retrieved chunk sits in the page texts of its PDF so a
viewer can highlight it. Matching is heuristic: exact substring search,
then fuzzy alignment, then the sentence with the most shared keywords.
A miss returns None.
"""
import logging
import re
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel
from rapidfuzz import fuzz

from core.config import settings
from models.document import PageText

logger = logging.getLogger(__name__)

SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s+")
TOKEN_RE = re.compile(r"\S+")
WORD_RE = re.compile(r"[A-Za-z][A-Za-z'-]{3,}")

STOP_WORDS = frozenset({
    "about", "above", "after", "again", "also", "among", "been", "before",
    "being", "below", "between", "both", "could", "does", "doing", "during",
    "each", "from", "further", "have", "having", "here", "into", "itself",
    "just", "more", "most", "much", "must", "only", "other", "over", "same",
    "should", "some", "such", "than", "that", "their", "them", "then",
    "there", "these", "they", "this", "those", "through", "under", "until",
    "very", "were", "what", "when", "where", "which", "while", "will",
    "with", "would", "your",
})


# (page number, normalized text, raw offset of each normalized character)
Page = Tuple[int, str, List[int]]


class Highlight(BaseModel):
    pageNumber: int
    text: str  # whitespace-normalized
    start: int  # offsets into the raw page text
    end: int
    score: float
    method: str  # "exact" | "fuzzy" | "keyword"


def normalize_whitespace(text: str) -> str:
    return " ".join(TOKEN_RE.findall(text))


def split_sentences(text: str) -> List[str]:
    text = normalize_whitespace(text)
    if not text:
        return []
    return [s for s in SENTENCE_END_RE.split(text) if s]


def extract_keywords(text: str, limit: int = 10) -> List[str]:
    """Most frequent non stop-words of four letters or more."""
    words = [w.lower().strip("'-") for w in WORD_RE.findall(text)]
    counts = Counter(w for w in words if w not in STOP_WORDS)
    return [word for word, _ in counts.most_common(limit)]


def normalize_with_offsets(text: str) -> Tuple[str, List[int]]:
    """
    Whitespace-normalize text and map every normalized character back to
    its index in the original.
    """
    chars: List[str] = []
    offsets: List[int] = []
    for match in TOKEN_RE.finditer(text):
        if chars:
            chars.append(" ")
            offsets.append(match.start() - 1)
        chars.extend(match.group())
        offsets.extend(range(match.start(), match.end()))
    return "".join(chars), offsets


def _raw_span(offsets: List[int], start: int, end: int) -> Tuple[int, int]:
    if end <= start:
        return offsets[start], offsets[start]
    return offsets[start], offsets[end - 1] + 1


def _ordered_pages(page_texts: Sequence[PageText], preferred_page: Optional[int]) -> List[Page]:
    pages = [(p.pageNumber, *normalize_with_offsets(p.text)) for p in page_texts if p.text and p.text.strip()]
    if preferred_page is not None:
        pages.sort(key=lambda item: item[0] != preferred_page)
    return pages


def _widen_to_words(text: str, start: int, end: int) -> Tuple[int, int]:
    start = max(0, start)
    end = min(len(text), end)
    while start > 0 and text[start - 1].isalnum():
        start -= 1
    while end < len(text) and text[end].isalnum():
        end += 1
    return start, end


def _exact_match(needle: str, pages: List[Page]) -> Optional[Highlight]:
    needle_lower = needle.lower()
    for page_number, text, offsets in pages:
        index = text.lower().find(needle_lower)
        if index >= 0:
            end = index + len(needle)
            raw_start, raw_end = _raw_span(offsets, index, end)
            return Highlight(
                pageNumber=page_number, text=text[index:end],
                start=raw_start, end=raw_end, score=100.0, method="exact",
            )
    return None


def _fuzzy_match(needle: str, pages: List[Page], min_score: float) -> Optional[Highlight]:
    needle_lower = needle.lower()
    best = None
    for page_number, text, offsets in pages:
        alignment = fuzz.partial_ratio_alignment(needle_lower, text.lower())
        if alignment is None:
            continue
        if best is None or alignment.score > best[3].score:
            best = (page_number, text, offsets, alignment)

    if best is None or best[3].score < min_score:
        return None

    page_number, text, offsets, alignment = best
    start, end = _widen_to_words(text, alignment.dest_start, alignment.dest_end)
    while start < end and text[start] == " ":
        start += 1
    while end > start and text[end - 1] == " ":
        end -= 1
    if start >= end:
        return None
    raw_start, raw_end = _raw_span(offsets, start, end)
    return Highlight(
        pageNumber=page_number, text=text[start:end], start=raw_start, end=raw_end,
        score=round(alignment.score, 1), method="fuzzy",
    )


def _keyword_match(needle: str, pages: List[Page]) -> Optional[Highlight]:
    keywords = extract_keywords(needle)
    if not keywords:
        return None

    best = None
    for page_number, text, offsets in pages:
        for sentence in split_sentences(text):
            sentence_words = {w.lower().strip("'-") for w in WORD_RE.findall(sentence)}
            hits = sum(1 for keyword in keywords if keyword in sentence_words)
            if hits and (best is None or hits > best[0]):
                best = (hits, page_number, text, offsets, sentence)

    if best is None:
        return None

    hits, page_number, text, offsets, sentence = best
    start = text.find(sentence)
    raw_start, raw_end = _raw_span(offsets, start, start + len(sentence))
    return Highlight(
        pageNumber=page_number, text=sentence, start=raw_start, end=raw_end,
        score=round(100.0 * hits / len(keywords), 1), method="keyword",
    )


def locate_source(
    chunk_text: str,
    page_texts: Optional[Sequence[PageText]],
    preferred_page: Optional[int] = None,
    min_score: Optional[float] = None,
) -> Optional[Highlight]:
    """Best-effort location of a chunk inside the page texts."""
    needle = normalize_whitespace(chunk_text or "")
    if not needle or not page_texts:
        return None

    pages = _ordered_pages(page_texts, preferred_page)
    if not pages:
        return None

    min_score = settings.HIGHLIGHT_MIN_SCORE if min_score is None else min_score
    highlight = (
        _exact_match(needle, pages)
        or _fuzzy_match(needle, pages, min_score)
        or _keyword_match(needle, pages)
    )
    if highlight is None:
        logger.debug("No highlight found for chunk starting %r", needle[:40])
    return highlight
