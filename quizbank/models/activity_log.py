"""ActivityLog SQLAlchemy model."""

import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Uuid

from ..database import Base, utcnow


class ActivityLog(Base):
    """
    Audit trail entry written after a successful mutation.

    ``entity_id`` is intentionally not a foreign key so entries can describe
    entities that no longer exist.

    Attributes:
        id: Unique identifier (UUID)
        user_id: FK to the acting user
        action: Action name, e.g. ``quiz_created``
        entity_type: ``quiz`` or ``folder`` (nullable for batch actions)
        entity_id: Id of the affected entity (nullable)
        details: JSON payload with action-specific context
        created_at: Timestamp of the action
    """

    __tablename__ = "ActivityLogs"
    __allow_unmapped__ = True

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    user_id = Column(
        Uuid,
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    action = Column(
        String(50),
        nullable=False,
    )

    entity_type = Column(
        String(20),
        nullable=True,
    )

    entity_id = Column(
        Uuid,
        nullable=True,
    )

    details = Column(
        JSON,
        nullable=False,
        default=dict,
    )

    created_at = Column(
        DateTime,
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_activity_logs_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        """String representation of ActivityLog."""
        return f"<ActivityLog(user_id={self.user_id}, action={self.action})>"
