"""SQLAlchemy tables and engine factory."""

from datetime import datetime
from pathlib import Path

from sqlalchemy import URL, DateTime, Float, ForeignKey, Index, Integer, String, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from unity_voice.config import Settings


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True)
    score: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)


class TopicRow(Base):
    __tablename__ = "topics"

    topic_name: Mapped[str] = mapped_column(String(128), primary_key=True)
    topic_he: Mapped[str | None] = mapped_column(String(128), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)


class LevelRow(Base):
    __tablename__ = "levels"

    topic_name: Mapped[str] = mapped_column(
        String(128), ForeignKey("topics.topic_name"), primary_key=True
    )
    level: Mapped[int] = mapped_column(Integer, primary_key=True)


# Backends with partial indexes and INSERT ... ON CONFLICT DO NOTHING
SUPPORTED_BACKENDS = ("sqlite", "postgresql")

# One open task per (user, topic, level, type): partial unique index over open rows
_OPEN_ONLY = text("completed_at IS NULL")


class TaskRow(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index(
            "uq_tasks_open",
            "user_id",
            "topic_name",
            "level",
            "task_type",
            unique=True,
            sqlite_where=_OPEN_ONLY,
            postgresql_where=_OPEN_ONLY,
        ),
        Index("ix_tasks_user_topic_level", "user_id", "topic_name", "level"),
    )

    task_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.user_id"), nullable=False)
    topic_name: Mapped[str] = mapped_column(String(128), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    task_type: Mapped[str] = mapped_column(String(32), nullable=False)
    score: Mapped[float | None] = mapped_column(Float, default=0, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)


class UserLevelRow(Base):
    __tablename__ = "user_in_level"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.user_id"), primary_key=True)
    topic_name: Mapped[str] = mapped_column(String(128), primary_key=True)
    level: Mapped[int] = mapped_column(Integer, primary_key=True)
    earned_score: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class WordInTaskRow(Base):
    __tablename__ = "words_in_task"

    task_id: Mapped[str] = mapped_column(String(36), ForeignKey("tasks.task_id"), primary_key=True)
    word_id: Mapped[str] = mapped_column(String(36), primary_key=True)


def _is_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Build the async engine for the configured database URL."""
    url = make_url(settings.database_url)
    if url.get_backend_name() not in SUPPORTED_BACKENDS:
        raise ValueError(f"Unsupported database backend: {url.get_backend_name()}")
    if _is_memory_sqlite(url):
        # In-memory SQLite lives on a single shared connection
        return create_async_engine(
            url,
            echo=settings.database_echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    if url.get_backend_name() == "sqlite":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(url, echo=settings.database_echo)


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
