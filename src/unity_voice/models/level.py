"""Per-level progress models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class LevelState(StrEnum):
    """Progress states of a (user, topic, level)."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class UserLevelRecord(BaseModel):
    """Aggregate progress for one user on one topic level."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    topic_name: str
    level: int
    earned_score: float = 0
    completed_at: datetime | None = None

    @property
    def state(self) -> LevelState:
        if self.completed_at is None:
            return LevelState.IN_PROGRESS
        return LevelState.COMPLETED


class LevelCompletionResult(BaseModel):
    """Structured outcome of an explicit level completion."""

    success: bool
    user_id: str
    topic_name: str
    completed_level: int
    earned_score: int | None = None
    next_level: int | None = None
    error: str | None = None
