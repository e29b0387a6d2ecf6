"""Level progression: aggregate task scores into level records and unlock levels.

Each (user, topic, level) moves NOT_STARTED -> IN_PROGRESS -> COMPLETED.
A record is created lazily (or pre-seeded for level 1 of every topic),
and a level completes either when a conversation task finishes (sum policy)
or through explicit finalization (average policy).
"""

import math
from collections.abc import Callable
from datetime import datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError

from unity_voice.models.level import LevelCompletionResult, LevelState, UserLevelRecord
from unity_voice.models.task import Task
from unity_voice.storage.repository import ScoreRepository, ScoreUnitOfWork

logger = structlog.get_logger()

# Earned score for an explicitly completed level with no completed tasks
DEFAULT_LEVEL_SCORE = 60


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class LevelProgressionEngine:
    """Keeps level records consistent with task completions.

    Args:
        repository: Persistence boundary.
        clock: Source of "now" timestamps.
    """

    def __init__(
        self,
        repository: ScoreRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.clock = clock

    @staticmethod
    async def ensure_level_record(
        uow: ScoreUnitOfWork, user_id: str, topic_name: str, level: int
    ) -> bool:
        """NOT_STARTED -> IN_PROGRESS; a no-op when the record already exists.

        Returns:
            True if a record was created.
        """
        created = await uow.insert_level_record_if_absent(user_id, topic_name, level)
        if created:
            logger.info("level_record_created", user_id=user_id, topic=topic_name, level=level)
        return bool(created)

    async def initialize_user_levels(self, user_id: str) -> bool:
        """Pre-seed a level 1 record for every topic that defines one."""
        try:
            async with self.repository.transaction() as uow:
                topics = await uow.list_first_levels()
                created = 0
                for topic_name in topics:
                    created += await self.ensure_level_record(uow, user_id, topic_name, 1)
        except SQLAlchemyError:
            logger.exception("user_levels_initialization_failed", user_id=user_id)
            return False

        logger.info("user_levels_initialized", user_id=user_id, topics=len(topics), created=created)
        return True

    async def get_level_state(
        self, user_id: str, topic_name: str, level: int
    ) -> LevelState | None:
        """State of a (user, topic, level), or None when it cannot be read."""
        try:
            async with self.repository.transaction() as uow:
                record = await uow.get_level_record(user_id, topic_name, level)
        except SQLAlchemyError:
            logger.exception(
                "level_state_fetch_failed", user_id=user_id, topic=topic_name, level=level
            )
            return None
        if record is None:
            return LevelState.NOT_STARTED
        return record.state

    async def get_user_levels(
        self, user_id: str, topic_name: str | None = None
    ) -> list[UserLevelRecord]:
        try:
            async with self.repository.transaction() as uow:
                return await uow.list_level_records(user_id, topic_name)
        except SQLAlchemyError:
            logger.exception("user_levels_fetch_failed", user_id=user_id, topic=topic_name)
            return []

    async def update_score(self, task: Task) -> None:
        """Record a completed task's score on its level and refresh the user's score.

        Runs for every task type. Completed levels keep their aggregate.
        """
        async with self.repository.transaction() as uow:
            await self.ensure_level_record(uow, task.user_id, task.topic_name, task.level)
            await uow.set_in_progress_score(
                task.user_id, task.topic_name, task.level, task.score or 0
            )
            await uow.refresh_user_score(task.user_id)

        logger.debug(
            "level_score_updated",
            user_id=task.user_id,
            topic=task.topic_name,
            level=task.level,
            score=task.score,
        )

    async def complete_level_from_conversation(self, task: Task) -> float:
        """IN_PROGRESS -> COMPLETED under the sum policy, unlocking the next level.

        The earned score becomes the sum of every task score at the level;
        the next level's record is created with score 0 unless it already
        exists. Both writes share one transaction.

        Args:
            task: The completed conversation task.

        Returns:
            The new earned score.
        """
        now = self.clock()
        next_level = task.level + 1

        async with self.repository.transaction() as uow:
            await self.ensure_level_record(uow, task.user_id, task.topic_name, task.level)
            record = await uow.get_level_record(task.user_id, task.topic_name, task.level)
            total = await uow.sum_task_scores(task.user_id, task.topic_name, task.level)
            await uow.set_level_result(
                task.user_id,
                task.topic_name,
                task.level,
                earned_score=total,
                completed_at=record.completed_at or now,
            )
            await uow.insert_level_record_if_absent(task.user_id, task.topic_name, next_level)
            await uow.refresh_user_score(task.user_id)

        logger.info(
            "level_completed_by_conversation",
            user_id=task.user_id,
            topic=task.topic_name,
            level=task.level,
            earned_score=total,
            next_level=next_level,
        )
        return total

    async def complete_user_level(
        self, user_id: str, topic_name: str, level: int
    ) -> LevelCompletionResult:
        """Finalize a level under the average policy.

        The earned score is the rounded mean of completed task scores
        (DEFAULT_LEVEL_SCORE when none completed). Failures roll back and
        are reported in the result instead of raised.
        """
        now = self.clock()
        next_level = level + 1

        try:
            async with self.repository.transaction() as uow:
                average = await uow.average_completed_task_scores(user_id, topic_name, level)
                earned = DEFAULT_LEVEL_SCORE if average is None else _round_half_up(average)

                await self.ensure_level_record(uow, user_id, topic_name, level)
                await uow.set_level_result(
                    user_id, topic_name, level, earned_score=earned, completed_at=now
                )
                await uow.insert_level_record_if_absent(user_id, topic_name, next_level)
        except Exception as e:
            logger.exception(
                "user_level_completion_failed", user_id=user_id, topic=topic_name, level=level
            )
            return LevelCompletionResult(
                success=False,
                user_id=user_id,
                topic_name=topic_name,
                completed_level=level,
                error=str(e) or type(e).__name__,
            )

        logger.info(
            "user_level_completed",
            user_id=user_id,
            topic=topic_name,
            level=level,
            earned_score=earned,
            next_level=next_level,
        )
        return LevelCompletionResult(
            success=True,
            user_id=user_id,
            topic_name=topic_name,
            completed_level=level,
            earned_score=earned,
            next_level=next_level,
        )
