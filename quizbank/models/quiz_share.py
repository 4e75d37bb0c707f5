"""QuizShare and QuizView SQLAlchemy models."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid

from ..database import Base, utcnow


class QuizShare(Base):
    """
    Record of a quiz being shared with a recipient.

    Each share issues a random token used to build the share link sent in
    the notification email.

    Attributes:
        id: Unique identifier (UUID)
        quiz_id: FK to the shared quiz
        shared_by: FK to the sharing user
        recipient_id: FK to the recipient
        permission: Permission granted with the share
        share_token: 32-character URL-safe token
        message: Optional message from the sender
        expires_at: When the share link stops working
        created_at: Timestamp when the share was created
    """

    __tablename__ = "QuizShares"
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

    shared_by = Column(
        Uuid,
        ForeignKey("Users.id", ondelete="SET NULL"),
        nullable=True,
    )

    recipient_id = Column(
        Uuid,
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    permission = Column(
        String(20),
        nullable=False,
    )

    share_token = Column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
    )

    message = Column(
        Text,
        nullable=False,
        default="",
    )

    expires_at = Column(
        DateTime,
        nullable=False,
    )

    created_at = Column(
        DateTime,
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of QuizShare."""
        return f"<QuizShare(quiz_id={self.quiz_id}, recipient_id={self.recipient_id})>"


class QuizView(Base):
    """
    A single read of a quiz by a user.

    Attributes:
        id: Unique identifier (UUID)
        quiz_id: FK to the viewed quiz
        user_id: FK to the viewer
        viewed_at: Timestamp of the view
    """

    __tablename__ = "QuizViews"
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

    viewed_at = Column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
