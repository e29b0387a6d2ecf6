"""Shared fixtures: in-memory database, seeded reference data, services."""

from datetime import datetime, timedelta

import pytest

from unity_voice.config import Settings
from unity_voice.progression.engine import LevelProgressionEngine
from unity_voice.storage.db import create_engine_from_settings, create_schema
from unity_voice.storage.repository import ScoreRepository
from unity_voice.tasks.service import TaskService

USER_ID = "user-1"


class FakeClock:
    """Controllable replacement for datetime.now."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 9, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current += timedelta(seconds=seconds)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def engine():
    engine = create_engine_from_settings(Settings(database_url="sqlite+aiosqlite://"))
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def repository(engine):
    repository = ScoreRepository.from_engine(engine)
    async with repository.transaction() as uow:
        await uow.add_user(USER_ID, "learner@example.com")
        for topic_name, levels in (("topicA", 3), ("topicB", 2)):
            await uow.add_topic(topic_name)
            for level in range(1, levels + 1):
                await uow.add_level(topic_name, level)
    return repository


@pytest.fixture
def progression(repository, clock):
    return LevelProgressionEngine(repository, clock=clock)


@pytest.fixture
def task_service(repository, progression, clock):
    return TaskService(repository, progression, clock=clock)
