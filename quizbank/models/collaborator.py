"""QuizCollaborator SQLAlchemy model for non-owner access grants."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from ..database import Base, utcnow

PERMISSION_VIEW = "view"
PERMISSION_EDIT = "edit"
PERMISSION_ADMIN = "admin"
PERMISSIONS = (PERMISSION_VIEW, PERMISSION_EDIT, PERMISSION_ADMIN)
EDIT_PERMISSIONS = (PERMISSION_EDIT, PERMISSION_ADMIN)

GRANT_ACTIVE = "active"
GRANT_REMOVED = "removed"


class QuizCollaborator(Base):
    """
    Collaborator grant extending access (never ownership) on a quiz.

    There is exactly one row per (quiz_id, user_id). Re-granting updates the
    row; revoking flips ``status`` to ``removed``. Rows are only physically
    deleted when their quiz is permanently deleted.

    Attributes:
        id: Unique identifier (UUID)
        quiz_id: FK to the quiz
        user_id: FK to the collaborator
        permission: view | edit | admin
        status: active | removed
        granted_by: FK to the user who issued the grant
        created_at: Timestamp when the grant was created
        updated_at: Timestamp when the grant was last changed
    """

    __tablename__ = "QuizCollaborators"
    __allow_unmapped__ = True

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    quiz_id = Column(
        Uuid,
        ForeignKey("Quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id = Column(
        Uuid,
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    permission = Column(
        String(20),
        nullable=False,
        default=PERMISSION_VIEW,
    )

    status = Column(
        String(20),
        nullable=False,
        default=GRANT_ACTIVE,
    )

    granted_by = Column(
        Uuid,
        ForeignKey("Users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(
        DateTime,
        default=utcnow,
        nullable=False,
    )

    updated_at = Column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("quiz_id", "user_id", name="uq_quiz_collaborators_quiz_user"),
    )

    def __repr__(self) -> str:
        """String representation of QuizCollaborator."""
        return (
            f"<QuizCollaborator(quiz_id={self.quiz_id}, user_id={self.user_id}, "
            f"permission={self.permission}, status={self.status})>"
        )
