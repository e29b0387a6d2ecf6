"""Task data models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class TaskType(StrEnum):
    """Kinds of learning activity a task can represent."""

    FLASHCARD = "flashcard"
    POST = "post"
    CONVERSATION = "conversation"
    QUIZ = "quiz"


class Task(BaseModel):
    """One user attempt at a learning activity within a topic and level."""

    model_config = ConfigDict(from_attributes=True)

    task_id: str
    user_id: str
    topic_name: str
    level: int = Field(ge=1)
    task_type: TaskType
    score: float | None = 0
    created_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = None
    duration_seconds: int | None = None

    @property
    def is_open(self) -> bool:
        return self.completed_at is None


class WordAssociationResult(BaseModel):
    """Outcome of attaching vocabulary words to a task.

    Word inserts are best-effort: individual failures land in ``failed``
    and ``ok`` turns False only when the association step could not run.
    """

    task_id: str
    added: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    ok: bool = True
