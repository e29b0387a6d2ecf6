"""Well-formedness and anti-plagiarism checks for submitted comments."""

from unity_voice.assessment.metrics import (
    alpha_ratio,
    contains_hebrew,
    dominant_word_ratio,
    similarity_percent,
    split_words,
    uniqueness_ratio,
)
from unity_voice.models.assessment import ValidationDetails, ValidationResult

MIN_WORDS = 5
MAX_CHARS = 1000
COPIED_SIMILARITY = 80
SIMILAR_SIMILARITY = 60
MIN_UNIQUENESS = 0.5
MIN_ALPHA_RATIO = 0.6
MAX_DOMINANT_WORD_RATIO = 0.3


def validate(comment_text: str, source_text: str) -> ValidationResult:
    """Check a comment before accepting it.

    Every violated rule appends one issue; the comment is valid iff no
    issue was found. Never raises for string input.

    Args:
        comment_text: The learner's comment.
        source_text: Post the comment responds to.

    Returns:
        ValidationResult with issues and the computed measurements.
    """
    comment_text = comment_text or ""
    source_text = source_text or ""
    words = split_words(comment_text)
    issues: list[str] = []

    if len(words) < MIN_WORDS:
        issues.append(f"Comment is too short. Please write at least {MIN_WORDS} words.")

    if len(comment_text) > MAX_CHARS:
        issues.append(f"Comment is too long. Please keep it under {MAX_CHARS} characters.")

    if contains_hebrew(comment_text):
        issues.append("Please write your comment in English only.")

    similarity = similarity_percent(comment_text, source_text)
    if similarity > COPIED_SIMILARITY:
        issues.append("Comment appears to be copied from the post. Please use your own words.")
    elif similarity >= SIMILAR_SIMILARITY:
        issues.append("Comment is too similar to the post. Try to be more original.")

    uniqueness = uniqueness_ratio(words)
    if uniqueness < MIN_UNIQUENESS:
        issues.append("Comment has too much repetition. Try to vary your words.")

    letters = alpha_ratio(comment_text)
    if letters < MIN_ALPHA_RATIO:
        issues.append("Comment should contain mostly letters.")

    if dominant_word_ratio(words) > MAX_DOMINANT_WORD_RATIO:
        issues.append("Comment has too much repetition of the same word.")

    return ValidationResult(
        is_valid=not issues,
        issues=issues,
        details=ValidationDetails(
            word_count=len(words),
            char_count=len(comment_text),
            uniqueness_ratio=round(uniqueness, 2),
            alpha_ratio=round(letters, 2),
            similarity=similarity,
        ),
    )
