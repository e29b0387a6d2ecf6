"""Text metrics shared by the quality scorer and the comment validator."""

import re
from collections import Counter

SENTENCE_SPLIT = re.compile(r"[.!?]+")
HEBREW_CHARS = re.compile(r"[\u0590-\u05FF]")
ASCII_LETTERS = re.compile(r"[a-zA-Z]")


def split_words(text: str) -> list[str]:
    """Whitespace-separated words of a text."""
    return text.split()


def split_sentences(text: str) -> list[str]:
    """Non-empty sentences, split on runs of ``.``, ``!`` and ``?``."""
    return [s.strip() for s in SENTENCE_SPLIT.split(text) if s.strip()]


def uniqueness_ratio(words: list[str]) -> float:
    """Distinct lowercase words divided by total words (0 for no words)."""
    if not words:
        return 0.0
    return len({w.lower() for w in words}) / len(words)


def alpha_ratio(text: str) -> float:
    """Share of ASCII letters among all characters of the text."""
    if not text:
        return 0.0
    return len(ASCII_LETTERS.findall(text)) / len(text)


def dominant_word_ratio(words: list[str]) -> float:
    """Frequency of the most common lowercase word relative to the word count."""
    if not words:
        return 0.0
    _word, count = Counter(w.lower() for w in words).most_common(1)[0]
    return count / len(words)


def similarity_percent(text: str, source: str) -> int:
    """Jaccard overlap of the lowercase word sets, as a rounded percentage.

    Args:
        text: Submitted text.
        source: Material the text responds to.

    Returns:
        0-100; 0 when either side has no words.
    """
    text_words = {w.lower() for w in split_words(text)}
    source_words = {w.lower() for w in split_words(source)}
    if not text_words or not source_words:
        return 0
    union = text_words | source_words
    return round(len(text_words & source_words) / len(union) * 100)


def contains_hebrew(text: str) -> bool:
    return HEBREW_CHARS.search(text) is not None


def find_whole_word(word: str, text: str) -> re.Match[str] | None:
    """Case-insensitive whole-word search."""
    pattern = rf"\b{re.escape(word.strip())}\b"
    return re.search(pattern, text, re.IGNORECASE)


def context_snippet(text: str, match: re.Match[str], radius: int = 30) -> str:
    """Text surrounding a match, wrapped in ellipses."""
    start = max(0, match.start() - radius)
    end = min(len(text), match.end() + radius)
    return f"...{text[start:end].strip()}..."
