"""Tests for the task lifecycle service."""

from unittest.mock import AsyncMock

from sqlalchemy.exc import SQLAlchemyError

from unity_voice.models.task import TaskType
from unity_voice.storage.repository import ScoreUnitOfWork

from conftest import USER_ID


class TestCreateTask:
    async def test_creates_new_task(self, task_service):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.FLASHCARD)
        assert task_id is not None

        task = await task_service.get_task(task_id)
        assert task.user_id == USER_ID
        assert task.topic_name == "topicA"
        assert task.level == 1
        assert task.task_type == TaskType.FLASHCARD
        assert task.score == 0
        assert task.is_open

    async def test_second_create_returns_same_open_task(self, task_service):
        first = await task_service.create_task(USER_ID, "topicA", 1, TaskType.POST)
        second = await task_service.create_task(USER_ID, "topicA", 1, TaskType.POST)
        assert first == second
        assert len(await task_service.get_user_tasks(USER_ID)) == 1

    async def test_different_type_creates_separate_task(self, task_service):
        post = await task_service.create_task(USER_ID, "topicA", 1, TaskType.POST)
        quiz = await task_service.create_task(USER_ID, "topicA", 1, TaskType.QUIZ)
        assert post != quiz

    async def test_accepts_plain_string_type(self, task_service):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, "conversation")
        task = await task_service.get_task(task_id)
        assert task.task_type == TaskType.CONVERSATION

    async def test_new_task_after_completion(self, task_service):
        first = await task_service.create_task(USER_ID, "topicA", 1, TaskType.QUIZ)
        await task_service.complete_task(first, 80)
        second = await task_service.create_task(USER_ID, "topicA", 1, TaskType.QUIZ)
        assert second is not None
        assert second != first

    async def test_unknown_user_returns_none(self, task_service):
        assert await task_service.create_task("ghost", "topicA", 1, TaskType.QUIZ) is None

    async def test_unknown_type_returns_none(self, task_service):
        assert await task_service.create_task(USER_ID, "topicA", 1, "essay") is None
        assert await task_service.get_user_tasks(USER_ID) == []

    async def test_unknown_level_returns_none(self, task_service):
        assert await task_service.create_task(USER_ID, "topicA", 9, TaskType.QUIZ) is None
        assert await task_service.create_task(USER_ID, "nope", 1, TaskType.QUIZ) is None

    async def test_creates_level_record_lazily(self, task_service, progression):
        await task_service.create_task(USER_ID, "topicB", 2, TaskType.FLASHCARD)
        levels = await progression.get_user_levels(USER_ID, "topicB")
        assert [(r.level, r.earned_score, r.completed_at) for r in levels] == [(2, 0, None)]

    async def test_lost_race_returns_existing_open_task(self, task_service, monkeypatch):
        existing = await task_service.create_task(USER_ID, "topicA", 2, TaskType.POST)

        original = ScoreUnitOfWork.find_open_task
        calls = []

        async def stale_then_real(self, *args):
            calls.append(args)
            if len(calls) == 1:
                return None
            return await original(self, *args)

        monkeypatch.setattr(ScoreUnitOfWork, "find_open_task", stale_then_real)

        task_id = await task_service.create_task(USER_ID, "topicA", 2, TaskType.POST)
        assert task_id == existing
        open_tasks = [t for t in await task_service.get_user_tasks(USER_ID) if t.is_open]
        assert len(open_tasks) == 1

    async def test_persistence_error_returns_none(self, task_service, monkeypatch):
        monkeypatch.setattr(
            ScoreUnitOfWork, "user_exists", AsyncMock(side_effect=SQLAlchemyError("down"))
        )
        assert await task_service.create_task(USER_ID, "topicA", 1, TaskType.QUIZ) is None


class TestCompleteTask:
    async def test_sets_score_and_completion(self, task_service, clock):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.QUIZ)
        clock.advance(90)

        assert await task_service.complete_task(task_id, 75) is True

        task = await task_service.get_task(task_id)
        assert task.score == 75
        assert task.completed_at == clock.current
        assert task.duration_seconds == 90
        assert not task.is_open

    async def test_explicit_duration_wins(self, task_service, clock):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.QUIZ)
        clock.advance(600)
        await task_service.complete_task(task_id, 60, duration=42)
        task = await task_service.get_task(task_id)
        assert task.duration_seconds == 42

    async def test_unknown_task_returns_false(self, task_service):
        assert await task_service.complete_task("missing", 50) is False

    async def test_progression_failure_keeps_completion(self, task_service):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.CONVERSATION)
        task_service.progression.update_score = AsyncMock(side_effect=SQLAlchemyError("boom"))

        assert await task_service.complete_task(task_id, 85) is True
        task = await task_service.get_task(task_id)
        assert task.score == 85
        assert task.completed_at is not None

    async def test_updates_level_score_for_every_type(self, task_service, progression):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.FLASHCARD)
        await task_service.complete_task(task_id, 70)

        levels = await progression.get_user_levels(USER_ID, "topicA")
        assert len(levels) == 1
        assert levels[0].earned_score == 70
        assert levels[0].completed_at is None

    async def test_refreshes_user_score(self, task_service, repository):
        first = await task_service.create_task(USER_ID, "topicA", 1, TaskType.QUIZ)
        second = await task_service.create_task(USER_ID, "topicB", 1, TaskType.QUIZ)
        await task_service.complete_task(first, 60)
        await task_service.complete_task(second, 80)

        async with repository.transaction() as uow:
            assert await uow.get_user_score(USER_ID) == 70


class TestAddWordsToTask:
    async def test_empty_list_is_ok(self, task_service):
        result = await task_service.add_words_to_task("any-task", [])
        assert result.ok
        assert result.added == []
        assert result.failed == []

    async def test_adds_distinct_words(self, task_service):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.FLASHCARD)
        result = await task_service.add_words_to_task(task_id, ["w2", "w1", "w2"])

        assert result.ok
        assert result.added == ["w2", "w1"]
        assert await task_service.get_task_words(task_id) == ["w1", "w2"]

    async def test_existing_association_is_noop(self, task_service):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.FLASHCARD)
        await task_service.add_words_to_task(task_id, ["w1"])
        result = await task_service.add_words_to_task(task_id, ["w1", "w3"])

        assert result.ok
        assert result.failed == []
        assert await task_service.get_task_words(task_id) == ["w1", "w3"]

    async def test_single_word_failure_is_reported(self, task_service, monkeypatch):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.FLASHCARD)
        original = ScoreUnitOfWork.add_word_to_task

        async def flaky(self, task_id, word_id):
            if word_id == "bad":
                raise SQLAlchemyError("constraint")
            return await original(self, task_id, word_id)

        monkeypatch.setattr(ScoreUnitOfWork, "add_word_to_task", flaky)

        result = await task_service.add_words_to_task(task_id, ["w1", "bad", "w2"])
        assert result.ok
        assert result.added == ["w1", "w2"]
        assert result.failed == ["bad"]
        assert await task_service.get_task_words(task_id) == ["w1", "w2"]

    async def test_every_word_failing_is_still_best_effort(self, task_service, monkeypatch):
        monkeypatch.setattr(
            ScoreUnitOfWork, "add_word_to_task", AsyncMock(side_effect=SQLAlchemyError("down"))
        )
        result = await task_service.add_words_to_task("task", ["w1", "w2"])
        assert result.ok
        assert result.added == []
        assert result.failed == ["w1", "w2"]

    async def test_unreachable_database_is_not_ok(self, task_service, monkeypatch):
        monkeypatch.setattr(
            ScoreUnitOfWork, "get_task", AsyncMock(side_effect=SQLAlchemyError("down"))
        )
        result = await task_service.add_words_to_task("task", ["w1", "w1", "w2"])
        assert not result.ok
        assert result.failed == ["w1", "w2"]


class TestGetUserTasks:
    async def test_open_first_then_newest(self, task_service, clock):
        flashcard = await task_service.create_task(USER_ID, "topicA", 1, TaskType.FLASHCARD)
        clock.advance(10)
        post = await task_service.create_task(USER_ID, "topicA", 1, TaskType.POST)
        clock.advance(10)
        quiz = await task_service.create_task(USER_ID, "topicA", 1, TaskType.QUIZ)
        clock.advance(10)
        other = await task_service.create_task(USER_ID, "topicB", 1, TaskType.QUIZ)
        clock.advance(10)
        await task_service.complete_task(post, 50)
        await task_service.complete_task(other, 50)

        tasks = await task_service.get_user_tasks(USER_ID)
        assert [t.task_id for t in tasks] == [quiz, flashcard, other, post]

    async def test_topic_filter(self, task_service):
        await task_service.create_task(USER_ID, "topicA", 1, TaskType.FLASHCARD)
        b_task = await task_service.create_task(USER_ID, "topicB", 1, TaskType.FLASHCARD)

        tasks = await task_service.get_user_tasks(USER_ID, "topicB")
        assert [t.task_id for t in tasks] == [b_task]

    async def test_unknown_user_is_empty(self, task_service):
        assert await task_service.get_user_tasks("ghost") == []


class TestUpdateTask:
    async def test_partial_update(self, task_service):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.POST)
        assert await task_service.update_task(task_id, score=40) is True

        task = await task_service.get_task(task_id)
        assert task.score == 40
        assert task.is_open

    async def test_nothing_to_update(self, task_service):
        task_id = await task_service.create_task(USER_ID, "topicA", 1, TaskType.POST)
        assert await task_service.update_task(task_id) is False

    async def test_missing_task(self, task_service):
        assert await task_service.update_task("missing", duration=10) is False
