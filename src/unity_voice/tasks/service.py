"""Task lifecycle: creation, completion and vocabulary association."""

import uuid
from collections.abc import Callable
from datetime import datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError

from unity_voice.models.task import Task, TaskType, WordAssociationResult
from unity_voice.progression.engine import LevelProgressionEngine
from unity_voice.storage.repository import ScoreRepository

logger = structlog.get_logger()


def new_task_id() -> str:
    return str(uuid.uuid4())


class TaskService:
    """Creates and completes tasks and triggers level progression.

    Args:
        repository: Persistence boundary.
        progression: Engine updating level records after completions.
        clock: Source of "now" timestamps.
        id_factory: Generator of unique task ids.
    """

    def __init__(
        self,
        repository: ScoreRepository,
        progression: LevelProgressionEngine,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = new_task_id,
    ):
        self.repository = repository
        self.progression = progression
        self.clock = clock
        self.id_factory = id_factory

    async def create_task(
        self,
        user_id: str,
        topic_name: str,
        level: int,
        task_type: TaskType,
    ) -> str | None:
        """Create a task, or return the open task already matching it.

        Args:
            user_id: Owner of the task.
            topic_name: Topic of the task.
            level: Level within the topic.
            task_type: Kind of activity.

        Returns:
            Task id, or None if the type is unknown, the user or topic level
            does not exist, or the insert failed.
        """
        log = logger.bind(user_id=user_id, topic=topic_name, level=level, task_type=str(task_type))
        try:
            task_type = TaskType(task_type)
        except ValueError:
            log.warning("task_type_unknown")
            return None

        try:
            async with self.repository.transaction() as uow:
                if not await uow.user_exists(user_id):
                    log.warning("task_user_not_found")
                    return None
                if not await uow.level_exists(topic_name, level):
                    log.warning("task_level_not_found")
                    return None

                existing = await uow.find_open_task(user_id, topic_name, level, task_type)
                if existing:
                    log.info("task_found_open", task_id=existing.task_id)
                    return existing.task_id

                task = Task(
                    task_id=self.id_factory(),
                    user_id=user_id,
                    topic_name=topic_name,
                    level=level,
                    task_type=task_type,
                    score=0,
                    created_at=self.clock(),
                )
                inserted = await uow.insert_task(task)
                if inserted != 1:
                    # A concurrent creator won the open-task slot
                    winner = await uow.find_open_task(user_id, topic_name, level, task_type)
                    if winner is None:
                        raise RuntimeError(f"Task insert affected {inserted} rows")
                    log.info("task_found_open", task_id=winner.task_id)
                    return winner.task_id

                await self.progression.ensure_level_record(uow, user_id, topic_name, level)
        except (SQLAlchemyError, RuntimeError):
            log.exception("task_creation_failed")
            return None

        log.info("task_created", task_id=task.task_id)
        return task.task_id

    async def complete_task(
        self,
        task_id: str,
        score: float,
        duration: int | None = None,
    ) -> bool:
        """Mark a task completed and run level progression.

        Progression failures are logged; the completion itself stays.

        Args:
            task_id: Task to complete.
            score: Final task score.
            duration: Seconds spent; derived from the creation time if omitted.

        Returns:
            True if the task row was updated.
        """
        completed_at = self.clock()

        try:
            async with self.repository.transaction() as uow:
                task = await uow.get_task(task_id)
                if task is None:
                    logger.warning("task_not_found", task_id=task_id)
                    return False
                if duration is None:
                    duration = max(0, int((completed_at - task.created_at).total_seconds()))
                updated = await uow.update_task(
                    task_id,
                    completed_at=completed_at,
                    score=score,
                    duration_seconds=duration,
                )
        except SQLAlchemyError:
            logger.exception("task_completion_failed", task_id=task_id)
            return False

        logger.info("task_completed", task_id=task_id, score=score, duration=duration)
        task = task.model_copy(
            update={"score": score, "completed_at": completed_at, "duration_seconds": duration}
        )

        try:
            await self.progression.update_score(task)
            if task.task_type == TaskType.CONVERSATION:
                await self.progression.complete_level_from_conversation(task)
        except Exception:
            logger.exception(
                "level_progression_failed",
                task_id=task_id,
                user_id=task.user_id,
                topic=task.topic_name,
                level=task.level,
            )

        return updated > 0

    async def add_words_to_task(self, task_id: str, word_ids: list[str]) -> WordAssociationResult:
        """Associate vocabulary words with a task, skipping duplicates.

        Each word is inserted in its own transaction. Individual failures
        are logged and reported in ``failed`` without aborting the loop;
        ``ok`` is False only when the database could not be reached at all.
        """
        result = WordAssociationResult(task_id=task_id)
        if not word_ids:
            return result

        distinct = list(dict.fromkeys(word_ids))
        try:
            async with self.repository.transaction() as uow:
                task = await uow.get_task(task_id)
        except SQLAlchemyError:
            logger.exception("task_words_unavailable", task_id=task_id)
            return WordAssociationResult(task_id=task_id, failed=distinct, ok=False)
        if task is None:
            logger.warning("task_words_unknown_task", task_id=task_id)

        for word_id in distinct:
            try:
                async with self.repository.transaction() as uow:
                    await uow.add_word_to_task(task_id, word_id)
            except SQLAlchemyError:
                logger.exception("task_word_insert_failed", task_id=task_id, word_id=word_id)
                result.failed.append(word_id)
            else:
                result.added.append(word_id)

        logger.info(
            "task_words_added", task_id=task_id, added=len(result.added), failed=len(result.failed)
        )
        return result

    async def get_user_tasks(self, user_id: str, topic_name: str | None = None) -> list[Task]:
        """Tasks of a user, open tasks first, then newest first."""
        try:
            async with self.repository.transaction() as uow:
                tasks = await uow.list_user_tasks(user_id, topic_name)
        except SQLAlchemyError:
            logger.exception("user_tasks_fetch_failed", user_id=user_id, topic=topic_name)
            return []
        logger.debug("user_tasks_fetched", user_id=user_id, count=len(tasks))
        return tasks

    async def get_task(self, task_id: str) -> Task | None:
        try:
            async with self.repository.transaction() as uow:
                return await uow.get_task(task_id)
        except SQLAlchemyError:
            logger.exception("task_fetch_failed", task_id=task_id)
            return None

    async def update_task(
        self,
        task_id: str,
        score: float | None = None,
        duration: int | None = None,
        completed_at: datetime | None = None,
    ) -> bool:
        """Partially update a task's score, duration or completion time."""
        values = {}
        if score is not None:
            values["score"] = score
        if duration is not None:
            values["duration_seconds"] = duration
        if completed_at is not None:
            values["completed_at"] = completed_at
        if not values:
            return False

        try:
            async with self.repository.transaction() as uow:
                updated = await uow.update_task(task_id, **values)
        except SQLAlchemyError:
            logger.exception("task_update_failed", task_id=task_id)
            return False
        return updated > 0

    async def get_task_words(self, task_id: str) -> list[str]:
        try:
            async with self.repository.transaction() as uow:
                return await uow.list_task_words(task_id)
        except SQLAlchemyError:
            logger.exception("task_words_fetch_failed", task_id=task_id)
            return []
