"""Tokenization and sentence helpers shared across components."""

import re

_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'\-]*")
_SENTENCE_END_RE = re.compile(r"[.!?]")
_LINE_SENTENCE_RE = re.compile(r"[.!?\n]")


def words(text: str) -> list[str]:
    """Alphabetic word tokens, case preserved."""
    return _WORD_RE.findall(text)


def whitespace_tokens(text: str) -> set[str]:
    """Lowercased whitespace-separated tokens, the unit used for Jaccard similarity."""
    return set(text.lower().split())


def split_sentences(text: str, break_on_newline: bool = True) -> list[str]:
    """Split text on sentence terminators (and newlines), dropping blanks.

    Args:
        text: Text to split.
        break_on_newline: Also treat line breaks as sentence boundaries.

    Returns:
        Trimmed, non-empty sentences in document order.
    """
    pattern = _LINE_SENTENCE_RE if break_on_newline else _SENTENCE_END_RE
    return [s.strip() for s in pattern.split(text) if s.strip()]


def jaccard(a: set[str], b: set[str]) -> float:
    """Jaccard similarity; 0.0 when both sets are empty."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def coverage(query: set[str], target: set[str]) -> float:
    """Fraction of query items present in target."""
    if not query:
        return 0.0
    return len(query & target) / len(query)


def contains_word(text: str, word: str) -> bool:
    """True when word occurs in text starting at a word boundary."""
    return re.search(rf"\b{re.escape(word)}", text, re.IGNORECASE) is not None
