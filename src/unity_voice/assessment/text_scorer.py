"""Heuristic quality scoring for learner comments and conversation answers."""

from unity_voice.assessment import feedback
from unity_voice.assessment.metrics import (
    context_snippet,
    find_whole_word,
    split_sentences,
    split_words,
    uniqueness_ratio,
)
from unity_voice.models.assessment import ScoringResult, WordUsage

MAX_COMPONENT_SCORE = 100
MAX_TOTAL_SCORE = 200

CONNECTIVES: tuple[str, ...] = (
    "however", "therefore", "because", "although", "moreover", "furthermore",
)

UNGRAMMATICAL_PATTERNS: tuple[str, ...] = ("me are", "me is", "me have", "i are")

OPINION_WORDS: tuple[str, ...] = (
    "think", "believe", "feel", "opinion", "agree", "disagree", "consider",
)

OPINION_PHRASES: tuple[str, ...] = (
    "i think", "i believe", "in my opinion", "i feel", "my experience",
)

# Matched by substring against the lowercase topic name, first hit wins
TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "technology": (
        "technology", "innovation", "digital", "computer", "internet",
        "future", "startup", "software", "artificial", "science",
    ),
    "environment": (
        "environment", "climate", "pollution", "sustainability", "energy",
        "recycling", "nature", "green", "water", "planet",
    ),
    "history": (
        "history", "heritage", "tradition", "ancient", "past",
        "culture", "museum", "generation", "memory", "archaeology",
    ),
    "holocaust": (
        "holocaust", "memory", "survivors", "revival", "history",
        "remember", "independence", "tragedy", "community", "resilience",
    ),
    "society": (
        "society", "culture", "community", "diversity", "tolerance",
        "immigration", "tradition", "equality", "people", "integration",
    ),
    "economy": (
        "economy", "business", "entrepreneur", "market", "investment",
        "money", "company", "growth", "startup", "innovation",
    ),
    "diplomacy": (
        "diplomacy", "relations", "international", "peace", "cooperation",
        "agreement", "countries", "embassy", "negotiation", "global",
    ),
    "war": (
        "security", "soldiers", "defense", "hostages", "resilience",
        "unity", "community", "peace", "courage", "hope",
    ),
}

GENERIC_KEYWORDS: tuple[str, ...] = (
    "important", "example", "people", "world", "life",
    "change", "experience", "learn", "future", "problem",
)


def topic_keywords(topic_name: str) -> tuple[str, ...]:
    """Keyword set for a topic, falling back to generic keywords."""
    topic = topic_name.lower()
    for key, keywords in TOPIC_KEYWORDS.items():
        if key in topic:
            return keywords
    return GENERIC_KEYWORDS


def score_clarity(text: str) -> int:
    """Clarity from length, sentence shape and use of connectives."""
    words = split_words(text)
    sentences = split_sentences(text)
    word_count = len(words)
    sentence_count = len(sentences)
    score = 0

    if word_count >= 40:
        score += 30
    elif word_count >= 25:
        score += 25
    elif word_count >= 15:
        score += 20
    elif word_count >= 10:
        score += 15

    if sentence_count:
        avg_sentence_length = word_count / sentence_count
        if 8 <= avg_sentence_length <= 20:
            score += 30
        elif avg_sentence_length >= 5:
            score += 20
        elif avg_sentence_length >= 3:
            score += 10

    if sentence_count >= 3:
        score += 25
    elif sentence_count >= 2:
        score += 15

    if any(find_whole_word(c, text) for c in CONNECTIVES):
        score += 15

    return min(MAX_COMPONENT_SCORE, score)


def score_grammar(text: str) -> int:
    """Grammar from capitalization, terminal punctuation and known error patterns."""
    sentences = split_sentences(text)
    score = 30.0

    if sentences:
        capitalized = sum(1 for s in sentences if s[0].isupper())
        score += 30 * capitalized / len(sentences)

    if text.strip().endswith((".", "!", "?")):
        score += 25

    lowered = text.lower()
    if not any(pattern in lowered for pattern in UNGRAMMATICAL_PATTERNS):
        score += 15

    return min(MAX_COMPONENT_SCORE, round(score))


def analyze_word_usage(text: str, required_words: list[str]) -> list[WordUsage]:
    usage = []
    for word in required_words:
        match = find_whole_word(word, text)
        usage.append(
            WordUsage(
                word=word,
                used=match is not None,
                context=context_snippet(text, match) if match else "",
            )
        )
    return usage


def score_vocabulary(text: str, word_usage: list[WordUsage]) -> int:
    """Vocabulary from required-word coverage and lexical variety.

    Args:
        text: Submitted text.
        word_usage: Per-word usage from :func:`analyze_word_usage`.

    Returns:
        Score 0-100.
    """
    if word_usage:
        used = sum(1 for u in word_usage if u.used)
        score = used / len(word_usage) * 70
        if used == len(word_usage):
            score += 20
    else:
        score = 70.0

    if uniqueness_ratio(split_words(text)) > 0.8:
        score += 10

    return min(MAX_COMPONENT_SCORE, round(score))


def score_content_relevance(text: str, source_text: str, topic_name: str) -> int:
    """Content relevance from opinion markers, topic keywords and length."""
    word_count = len(split_words(text))
    lowered = text.lower()
    score = 25

    if "?" in source_text:
        if any(find_whole_word(w, text) for w in OPINION_WORDS):
            score += 20
        if word_count > 20:
            score += 15

    keyword_hits = sum(1 for k in topic_keywords(topic_name) if find_whole_word(k, text))
    score += min(20, keyword_hits * 4)

    if any(phrase in lowered for phrase in OPINION_PHRASES):
        score += 10

    if word_count >= 50:
        score += 10

    return min(MAX_COMPONENT_SCORE, score)


def score(
    comment_text: str,
    source_text: str,
    required_words: list[str],
    topic_name: str,
) -> ScoringResult:
    """Score a submitted text on clarity, grammar, vocabulary and relevance.

    Deterministic and free of side effects; never raises for string input.

    Args:
        comment_text: The learner's text.
        source_text: Post or question the learner responded to.
        required_words: Vocabulary the text is expected to use.
        topic_name: Topic of the exercise, used for keyword lookup.

    Returns:
        ScoringResult with sub-scores, total, feedback and word usage.
    """
    comment_text = comment_text or ""
    source_text = source_text or ""
    word_usage = analyze_word_usage(comment_text, required_words or [])

    clarity = score_clarity(comment_text)
    grammar = score_grammar(comment_text)
    vocabulary = score_vocabulary(comment_text, word_usage)
    relevance = score_content_relevance(comment_text, source_text, topic_name or "")
    total = min(MAX_TOTAL_SCORE, clarity + grammar + vocabulary + relevance)

    return ScoringResult(
        clarity_score=clarity,
        grammar_score=grammar,
        vocabulary_score=vocabulary,
        content_relevance_score=relevance,
        total_score=total,
        clarity_feedback=feedback.clarity_feedback(clarity),
        grammar_feedback=feedback.grammar_feedback(grammar),
        vocabulary_feedback=feedback.vocabulary_feedback(vocabulary),
        content_relevance_feedback=feedback.content_relevance_feedback(relevance),
        overall_feedback=feedback.overall_feedback(total),
        word_usage=word_usage,
    )
