"""REST API routes for tasks, level progress, feedback and content."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from unity_voice.assessment.text_scorer import score
from unity_voice.assessment.validator import validate
from unity_voice.content.generator import ContentGenerator, GeneratedWord
from unity_voice.models.assessment import ScoringResult, ValidationResult
from unity_voice.models.level import LevelCompletionResult, UserLevelRecord
from unity_voice.models.task import Task, TaskType, WordAssociationResult
from unity_voice.progression.engine import LevelProgressionEngine
from unity_voice.tasks.service import TaskService

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class CreateTaskRequest(BaseModel):
    user_id: str
    topic_name: str
    level: int = Field(ge=1)
    task_type: TaskType


class CompleteTaskRequest(BaseModel):
    score: float
    duration: int | None = Field(default=None, ge=0)


class UpdateTaskRequest(BaseModel):
    score: float | None = None
    duration: int | None = Field(default=None, ge=0)
    completed_at: datetime | None = None


class TaskWordsRequest(BaseModel):
    word_ids: list[str]


class UserLevelRequest(BaseModel):
    user_id: str
    topic_name: str | None = None
    level: int | None = Field(default=None, ge=1)


class CommentFeedbackRequest(BaseModel):
    comment_content: str
    post_content: str = ""
    required_words: list[str] = Field(default_factory=list)
    topic_name: str = "general"


class CommentValidationRequest(BaseModel):
    comment_content: str
    post_content: str = ""


class GenerateWordsRequest(BaseModel):
    topic_name: str
    level: int = Field(default=1, ge=1)
    count: int = Field(default=5, ge=1, le=20)


class GeneratePostRequest(BaseModel):
    topic_name: str
    level: int = Field(default=1, ge=1)
    required_words: list[str] = Field(default_factory=list)


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def get_progression(request: Request) -> LevelProgressionEngine:
    return request.app.state.progression


def get_generator(request: Request) -> ContentGenerator:
    generator = getattr(request.app.state, "content_generator", None)
    if generator is None:
        raise HTTPException(status_code=503, detail="Content generation is not configured")
    return generator


@router.post("/tasks", status_code=201)
async def create_task(
    body: CreateTaskRequest, tasks: TaskService = Depends(get_task_service)
) -> dict:
    """Create a task or return the matching open one."""
    task_id = await tasks.create_task(body.user_id, body.topic_name, body.level, body.task_type)
    if task_id is None:
        raise HTTPException(status_code=404, detail="User or topic level not found")
    return {"task_id": task_id}


@router.get("/tasks/user/{user_id}")
async def list_user_tasks(
    user_id: str,
    topic_name: str | None = None,
    tasks: TaskService = Depends(get_task_service),
) -> list[Task]:
    return await tasks.get_user_tasks(user_id, topic_name)


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, tasks: TaskService = Depends(get_task_service)) -> Task:
    task = await tasks.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.patch("/tasks/{task_id}")
async def update_task(
    task_id: str, body: UpdateTaskRequest, tasks: TaskService = Depends(get_task_service)
) -> dict:
    if body.score is None and body.duration is None and body.completed_at is None:
        raise HTTPException(status_code=400, detail="No fields to update provided")
    if not await tasks.update_task(task_id, body.score, body.duration, body.completed_at):
        raise HTTPException(status_code=404, detail="Task not updated")
    return {"task_id": task_id, "updated": True}


@router.put("/tasks/{task_id}/complete")
async def complete_task(
    task_id: str, body: CompleteTaskRequest, tasks: TaskService = Depends(get_task_service)
) -> dict:
    if not await tasks.complete_task(task_id, body.score, body.duration):
        raise HTTPException(status_code=404, detail="Task not completed")
    return {"task_id": task_id, "completed": True}


@router.post("/tasks/{task_id}/words")
async def add_task_words(
    task_id: str, body: TaskWordsRequest, tasks: TaskService = Depends(get_task_service)
) -> WordAssociationResult:
    result = await tasks.add_words_to_task(task_id, body.word_ids)
    if not result.ok:
        raise HTTPException(status_code=500, detail="Failed to add words to task")
    return result


@router.get("/tasks/{task_id}/words")
async def list_task_words(task_id: str, tasks: TaskService = Depends(get_task_service)) -> list[str]:
    return await tasks.get_task_words(task_id)


@router.post("/user-levels/initialize")
async def initialize_user_levels(
    body: UserLevelRequest, progression: LevelProgressionEngine = Depends(get_progression)
) -> dict:
    if not await progression.initialize_user_levels(body.user_id):
        raise HTTPException(status_code=500, detail="Failed to initialize user levels")
    return {"user_id": body.user_id, "initialized": True}


@router.post("/user-levels/complete")
async def complete_user_level(
    body: UserLevelRequest, progression: LevelProgressionEngine = Depends(get_progression)
) -> LevelCompletionResult:
    if body.topic_name is None or body.level is None:
        raise HTTPException(status_code=400, detail="topic_name and level are required")
    result = await progression.complete_user_level(body.user_id, body.topic_name, body.level)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return result


@router.get("/user-levels/{user_id}")
async def list_user_levels(
    user_id: str,
    topic_name: str | None = None,
    progression: LevelProgressionEngine = Depends(get_progression),
) -> list[UserLevelRecord]:
    return await progression.get_user_levels(user_id, topic_name)


@router.post("/feedback/comment")
async def comment_feedback(body: CommentFeedbackRequest) -> ScoringResult:
    """Score a learner comment against its post and required words."""
    if not body.comment_content.strip():
        raise HTTPException(status_code=400, detail="Comment content is required")
    result = score(body.comment_content, body.post_content, body.required_words, body.topic_name)
    logger.info("comment_scored", total=result.total_score, topic=body.topic_name)
    return result


@router.post("/comments/validate")
async def validate_comment(body: CommentValidationRequest) -> ValidationResult:
    return validate(body.comment_content, body.post_content)


@router.post("/content/words")
async def generate_words(
    body: GenerateWordsRequest, generator: ContentGenerator = Depends(get_generator)
) -> list[GeneratedWord]:
    return await generator.generate_words(body.topic_name, body.level, body.count)


@router.post("/content/post")
async def generate_post(
    body: GeneratePostRequest, generator: ContentGenerator = Depends(get_generator)
) -> dict:
    text = await generator.generate_post(body.topic_name, body.level, body.required_words)
    if not text:
        raise HTTPException(status_code=502, detail="Post generation failed")
    return {"text": text}


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
