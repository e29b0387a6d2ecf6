"""Text assessment result models."""

from pydantic import BaseModel, Field


class WordUsage(BaseModel):
    """Whether a required word appears in a submission, with context."""

    word: str
    used: bool = False
    context: str = ""


class ScoringResult(BaseModel):
    """Multi-dimensional quality score for a submitted text.

    Each component is 0-100; the total is their sum capped at 200.
    """

    clarity_score: int = 0
    grammar_score: int = 0
    vocabulary_score: int = 0
    content_relevance_score: int = 0
    total_score: int = 0
    clarity_feedback: str = ""
    grammar_feedback: str = ""
    vocabulary_feedback: str = ""
    content_relevance_feedback: str = ""
    overall_feedback: str = ""
    word_usage: list[WordUsage] = Field(default_factory=list)


class ValidationDetails(BaseModel):
    word_count: int = 0
    char_count: int = 0
    uniqueness_ratio: float = 0.0
    alpha_ratio: float = 0.0
    similarity: int = 0


class ValidationResult(BaseModel):
    """Outcome of checking a comment before it is accepted."""

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    details: ValidationDetails = Field(default_factory=ValidationDetails)
