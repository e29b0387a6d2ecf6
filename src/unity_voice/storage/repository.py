"""Score repository: transactional access to tasks, level records and reference data."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import Table, case, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from unity_voice.models.level import UserLevelRecord
from unity_voice.models.task import Task, TaskType
from unity_voice.storage.db import (
    LevelRow,
    TaskRow,
    TopicRow,
    UserLevelRow,
    UserRow,
    WordInTaskRow,
)


def _level_key(row: type[TaskRow] | type[UserLevelRow], user_id: str, topic_name: str, level: int):
    return (row.user_id == user_id, row.topic_name == topic_name, row.level == level)


class ScoreUnitOfWork:
    """Statements executed inside one repository transaction.

    Args:
        session: Session bound to the open transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert_ignore(self, table: Table):
        """INSERT that silently skips rows violating a uniqueness constraint."""
        dialect = self.session.bind.dialect.name
        if dialect == "sqlite":
            return sqlite.insert(table).on_conflict_do_nothing()
        if dialect == "postgresql":
            return postgresql.insert(table).on_conflict_do_nothing()
        raise NotImplementedError(f"Unsupported database dialect: {dialect}")

    async def _execute_ignore(self, table: Table, values: dict[str, Any]) -> int:
        result = await self.session.execute(self._insert_ignore(table).values(**values))
        return result.rowcount

    # Reference data

    async def user_exists(self, user_id: str) -> bool:
        found = await self.session.scalar(select(UserRow.user_id).where(UserRow.user_id == user_id))
        return found is not None

    async def level_exists(self, topic_name: str, level: int) -> bool:
        found = await self.session.scalar(
            select(LevelRow.level).where(LevelRow.topic_name == topic_name, LevelRow.level == level)
        )
        return found is not None

    async def list_first_levels(self) -> list[str]:
        """Topic names that define a level 1."""
        rows = await self.session.scalars(
            select(LevelRow.topic_name).where(LevelRow.level == 1).order_by(LevelRow.topic_name)
        )
        return list(rows)

    async def add_user(self, user_id: str, email: str | None = None) -> int:
        return await self._execute_ignore(
            UserRow.__table__,
            {"user_id": user_id, "email": email, "score": 0, "created_at": datetime.now()},
        )

    async def get_user_score(self, user_id: str) -> float | None:
        return await self.session.scalar(select(UserRow.score).where(UserRow.user_id == user_id))

    async def add_topic(self, topic_name: str, topic_he: str | None = None, icon: str | None = None) -> int:
        return await self._execute_ignore(
            TopicRow.__table__, {"topic_name": topic_name, "topic_he": topic_he, "icon": icon}
        )

    async def add_level(self, topic_name: str, level: int) -> int:
        return await self._execute_ignore(LevelRow.__table__, {"topic_name": topic_name, "level": level})

    # Tasks

    async def find_open_task(
        self, user_id: str, topic_name: str, level: int, task_type: TaskType
    ) -> Task | None:
        row = await self.session.scalar(
            select(TaskRow).where(
                *_level_key(TaskRow, user_id, topic_name, level),
                TaskRow.task_type == task_type.value,
                TaskRow.completed_at.is_(None),
            )
        )
        return Task.model_validate(row) if row else None

    async def insert_task(self, task: Task) -> int:
        """Insert a task unless an open one already holds its (user, topic, level, type).

        Returns:
            Number of rows inserted (0 or 1).
        """
        values = task.model_dump()
        values["task_type"] = task.task_type.value
        return await self._execute_ignore(TaskRow.__table__, values)

    async def get_task(self, task_id: str) -> Task | None:
        row = await self.session.get(TaskRow, task_id)
        return Task.model_validate(row) if row else None

    async def update_task(self, task_id: str, **values: Any) -> int:
        result = await self.session.execute(
            update(TaskRow)
            .where(TaskRow.task_id == task_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def list_user_tasks(self, user_id: str, topic_name: str | None = None) -> list[Task]:
        """Tasks of a user, open ones first, newest first within each group."""
        stmt = select(TaskRow).where(TaskRow.user_id == user_id)
        if topic_name:
            stmt = stmt.where(TaskRow.topic_name == topic_name)
        stmt = stmt.order_by(
            case((TaskRow.completed_at.is_(None), 0), else_=1),
            TaskRow.created_at.desc(),
        )
        rows = await self.session.scalars(stmt)
        return [Task.model_validate(row) for row in rows]

    async def sum_task_scores(self, user_id: str, topic_name: str, level: int) -> float:
        """Sum of the scores of every task at a (user, topic, level)."""
        total = await self.session.scalar(
            select(func.coalesce(func.sum(TaskRow.score), 0)).where(
                *_level_key(TaskRow, user_id, topic_name, level)
            )
        )
        return float(total or 0)

    async def average_completed_task_scores(
        self, user_id: str, topic_name: str, level: int
    ) -> float | None:
        """Mean score of completed tasks at a (user, topic, level), None if none completed."""
        average = await self.session.scalar(
            select(func.avg(TaskRow.score)).where(
                *_level_key(TaskRow, user_id, topic_name, level),
                TaskRow.completed_at.is_not(None),
            )
        )
        return None if average is None else float(average)

    # Words in task

    async def add_word_to_task(self, task_id: str, word_id: str) -> int:
        return await self._execute_ignore(
            WordInTaskRow.__table__, {"task_id": task_id, "word_id": word_id}
        )

    async def list_task_words(self, task_id: str) -> list[str]:
        rows = await self.session.scalars(
            select(WordInTaskRow.word_id)
            .where(WordInTaskRow.task_id == task_id)
            .order_by(WordInTaskRow.word_id)
        )
        return list(rows)

    # Level records

    async def get_level_record(
        self, user_id: str, topic_name: str, level: int
    ) -> UserLevelRecord | None:
        row = await self.session.scalar(
            select(UserLevelRow).where(*_level_key(UserLevelRow, user_id, topic_name, level))
        )
        return UserLevelRecord.model_validate(row) if row else None

    async def list_level_records(
        self, user_id: str, topic_name: str | None = None
    ) -> list[UserLevelRecord]:
        stmt = select(UserLevelRow).where(UserLevelRow.user_id == user_id)
        if topic_name:
            stmt = stmt.where(UserLevelRow.topic_name == topic_name)
        stmt = stmt.order_by(UserLevelRow.topic_name, UserLevelRow.level)
        rows = await self.session.scalars(stmt)
        return [UserLevelRecord.model_validate(row) for row in rows]

    async def insert_level_record_if_absent(
        self,
        user_id: str,
        topic_name: str,
        level: int,
        earned_score: float = 0,
        completed_at: datetime | None = None,
    ) -> int:
        """Create a level record; an existing record is left untouched."""
        return await self._execute_ignore(
            UserLevelRow.__table__,
            {
                "user_id": user_id,
                "topic_name": topic_name,
                "level": level,
                "earned_score": earned_score,
                "completed_at": completed_at,
            },
        )

    async def set_in_progress_score(
        self, user_id: str, topic_name: str, level: int, earned_score: float
    ) -> int:
        """Overwrite the earned score of a level that is not completed yet."""
        result = await self.session.execute(
            update(UserLevelRow)
            .where(
                *_level_key(UserLevelRow, user_id, topic_name, level),
                UserLevelRow.completed_at.is_(None),
            )
            .values(earned_score=earned_score)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def set_level_result(
        self,
        user_id: str,
        topic_name: str,
        level: int,
        earned_score: float,
        completed_at: datetime,
    ) -> int:
        result = await self.session.execute(
            update(UserLevelRow)
            .where(*_level_key(UserLevelRow, user_id, topic_name, level))
            .values(earned_score=earned_score, completed_at=completed_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def refresh_user_score(self, user_id: str) -> int:
        """Set the user's overall score to the mean earned score of their levels."""
        average = (
            select(func.coalesce(func.avg(UserLevelRow.earned_score), 0))
            .where(UserLevelRow.user_id == user_id)
            .scalar_subquery()
        )
        result = await self.session.execute(
            update(UserRow)
            .where(UserRow.user_id == user_id)
            .values(score=average)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class ScoreRepository:
    """Persistence boundary shared by the task service and the progression engine.

    Constructed once at process start and passed to the services.

    Args:
        session_factory: Factory producing sessions bound to the database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "ScoreRepository":
        return cls(async_sessionmaker(engine, expire_on_commit=False))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ScoreUnitOfWork]:
        """Open a transaction that commits on exit and rolls back on any exception."""
        async with self.session_factory() as session:
            async with session.begin():
                yield ScoreUnitOfWork(session)
