"""Tests for the generic repository's error mapping."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from quizbank.errors import BusinessLogicError, DatabaseError
from quizbank.models import Quiz, QuizCollaborator, User
from quizbank.repositories.base import CONFLICT_MESSAGE, Repository


@pytest.mark.asyncio
class TestRepositoryErrors:
    """Store failures surface as domain errors with the right status."""

    async def test_duplicate_insert_is_a_conflict(
        self, db_session: AsyncSession, test_user: User, test_user_2: User, test_quiz: Quiz
    ):
        grants = Repository(db_session, QuizCollaborator)
        await grants.insert(quiz_id=test_quiz.id, user_id=test_user_2.id, granted_by=test_user.id)

        with pytest.raises(BusinessLogicError) as exc_info:
            async with db_session.begin_nested():
                await grants.insert(quiz_id=test_quiz.id, user_id=test_user_2.id, granted_by=test_user.id)

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == CONFLICT_MESSAGE
        assert isinstance(exc_info.value.__cause__, IntegrityError)
        assert await grants.count(
            QuizCollaborator.quiz_id == test_quiz.id, QuizCollaborator.user_id == test_user_2.id
        ) == 1

    async def test_integrity_error_on_execute_is_a_conflict(self):
        db = MagicMock()
        db.execute = AsyncMock(side_effect=IntegrityError("UPDATE Quizzes", {}, Exception("UNIQUE")))

        with pytest.raises(BusinessLogicError):
            await Repository(db, Quiz).execute(select(Quiz))

    async def test_other_store_failures_are_database_errors(self):
        db = MagicMock()
        db.flush = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")))

        with pytest.raises(DatabaseError) as exc_info:
            await Repository(db, Quiz).flush()

        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, BusinessLogicError)
