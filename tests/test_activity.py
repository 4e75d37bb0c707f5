"""Unit tests for the activity log writer."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from quizbank.models import ActivityLog, User
from quizbank.services.activity_service import ActivityService


class _FailingSavepoint:
    async def __aenter__(self):
        raise OperationalError("SAVEPOINT sp_1", {}, Exception("database is locked"))

    async def __aexit__(self, *exc_info):
        return False


@pytest.mark.asyncio
class TestActivityService:
    """Tests for ActivityService.record."""

    async def test_record_writes_entry(self, db_session: AsyncSession, test_user: User):
        entity_id = uuid4()

        written = await ActivityService(db_session).record(
            test_user.id, "quiz_created", {"title": "Algebra I"}, entity_type="quiz", entity_id=entity_id
        )
        await db_session.commit()

        assert written is True
        entry = await db_session.scalar(select(ActivityLog).where(ActivityLog.entity_id == entity_id))
        assert entry.action == "quiz_created"
        assert entry.details == {"title": "Algebra I"}
        assert entry.user_id == test_user.id

    async def test_store_failure_is_swallowed(self):
        db = MagicMock()
        db.begin_nested.return_value = _FailingSavepoint()

        written = await ActivityService(db).record(uuid4(), "quiz_created")

        assert written is False
        db.add.assert_not_called()
