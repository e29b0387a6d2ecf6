"""Fixed feedback tables for the text quality scorer."""

# Sub-score bands: >= 80, >= 60, >= 40, below
BAND_THRESHOLDS: tuple[int, int, int] = (80, 60, 40)

# Overall bands on the 0-200 total: >= 160, >= 120, >= 80, below
OVERALL_THRESHOLDS: tuple[int, int, int] = (160, 120, 80)

CLARITY_FEEDBACK: tuple[str, str, str, str] = (
    "Your comment is clear and well organized.",
    "Your ideas are mostly clear. Try to develop them in a few more complete sentences.",
    "Your meaning comes through, but the structure is hard to follow. "
    "Use more complete sentences of moderate length.",
    "Try to express your ideas more clearly in several full sentences.",
)

GRAMMAR_FEEDBACK: tuple[str, str, str, str] = (
    "Very good grammar, capitalization and punctuation.",
    "Good grammar overall. Check capitalization at the start of each sentence.",
    "Some grammar issues. Start sentences with a capital letter and end them with punctuation.",
    "Pay close attention to grammar, capitalization and punctuation.",
)

VOCABULARY_FEEDBACK: tuple[str, str, str, str] = (
    "Excellent use of the required vocabulary.",
    "Good use of vocabulary. Try to include every required word.",
    "You used some of the required words. Try to include more of them naturally.",
    "Try to use the required words in your comment.",
)

CONTENT_RELEVANCE_FEEDBACK: tuple[str, str, str, str] = (
    "Your comment addresses the post directly and shares a clear opinion.",
    "Relevant response. Add your own opinion and more topic details.",
    "Your comment is somewhat related to the topic. Respond to the post more directly.",
    "Try to address the topic and the question in the post.",
)

OVERALL_FEEDBACK: tuple[str, str, str, str] = (
    "Excellent work! Your English is strong and your comment is engaging.",
    "Good work! Keep practicing to polish the details.",
    "Nice effort. Focus on the suggestions above to improve.",
    "Keep working on your English skills. Every comment is practice!",
)


def band_index(score: float, thresholds: tuple[int, int, int] = BAND_THRESHOLDS) -> int:
    """Index into a four-entry feedback table; 0 is the best band."""
    for i, threshold in enumerate(thresholds):
        if score >= threshold:
            return i
    return len(thresholds)


def clarity_feedback(score: float) -> str:
    return CLARITY_FEEDBACK[band_index(score)]


def grammar_feedback(score: float) -> str:
    return GRAMMAR_FEEDBACK[band_index(score)]


def vocabulary_feedback(score: float) -> str:
    return VOCABULARY_FEEDBACK[band_index(score)]


def content_relevance_feedback(score: float) -> str:
    return CONTENT_RELEVANCE_FEEDBACK[band_index(score)]


def overall_feedback(total: float) -> str:
    return OVERALL_FEEDBACK[band_index(total, OVERALL_THRESHOLDS)]
