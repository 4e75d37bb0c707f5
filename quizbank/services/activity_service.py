"""Activity log writer.

Recording is best effort: each entry is written inside its own savepoint so a
failure rolls back only the log row, is logged, and never reaches the caller
of the primary operation.
"""

import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class ActivityService:
    """Writes ActivityLog rows for successful mutations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        user_id: UUID,
        action: str,
        details: Optional[dict[str, Any]] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
    ) -> bool:
        """
        Record an activity entry.

        Args:
            user_id: The acting user
            action: Action name, e.g. ``quiz_created``
            details: JSON-serializable context
            entity_type: ``quiz`` or ``folder``
            entity_id: Affected entity id

        Returns:
            True if the entry was written, False if writing failed.
        """
        try:
            async with self.db.begin_nested():
                self.db.add(
                    ActivityLog(
                        user_id=user_id,
                        action=action,
                        entity_type=entity_type,
                        entity_id=entity_id,
                        details=details or {},
                    )
                )
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Activity log write failed: action={action}, user={user_id}: {e}", exc_info=True)
            return False
