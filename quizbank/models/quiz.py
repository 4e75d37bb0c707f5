"""Quiz and QuizQuestion SQLAlchemy models."""

import uuid
from typing import List

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from ..database import Base, utcnow
from .mixins import SoftDeleteMixin


class Quiz(SoftDeleteMixin, Base):
    """
    Quiz model owned by a single user and optionally filed in a folder.

    ``estimated_time``, ``difficulty`` and ``question_count`` are derived from
    the questions by the quiz service and are not user-editable.

    Attributes:
        id: Unique identifier (UUID)
        owner_id: FK to the owning user
        folder_id: FK to Folder (null = top level)
        title: Title, unique among the owner's live quizzes
        description: Free text description
        category: One of the known quiz categories
        tags: JSON list of tag strings
        is_public: Readable by anyone when true
        status: active | draft | archived
        question_count: Number of questions (derived)
        estimated_time: Estimated completion time in minutes (derived)
        difficulty: low | medium | high (derived)
        created_at: Timestamp when quiz was created
        updated_at: Timestamp when quiz was last updated
        last_accessed_at: Timestamp of the last read
        deleted_at: Soft delete timestamp (null = live)
    """

    __tablename__ = "Quizzes"
    __allow_unmapped__ = True

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    owner_id = Column(
        Uuid,
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    folder_id = Column(
        Uuid,
        ForeignKey("Folders.id"),
        nullable=True,
        index=True,
    )

    title = Column(
        String(255),
        nullable=False,
        index=True,
    )

    description = Column(
        Text,
        nullable=False,
        default="",
    )

    category = Column(
        String(50),
        nullable=False,
        default="general",
    )

    tags = Column(
        JSON,
        nullable=False,
        default=list,
    )

    is_public = Column(
        Boolean,
        nullable=False,
        default=False,
    )

    status = Column(
        String(20),
        nullable=False,
        default="draft",
    )

    # Derived fields
    question_count = Column(
        Integer,
        nullable=False,
        default=0,
    )

    estimated_time = Column(
        Integer,
        nullable=False,
        default=0,
    )

    difficulty = Column(
        String(20),
        nullable=False,
        default="low",
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

    last_accessed_at = Column(
        DateTime,
        nullable=True,
    )

    __table_args__ = (
        Index("ix_quizzes_owner_title", "owner_id", "title"),
    )

    questions: List["QuizQuestion"] = relationship(
        "QuizQuestion",
        back_populates="quiz",
        order_by="QuizQuestion.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """String representation of Quiz."""
        return f"<Quiz(id={self.id}, title={self.title}, owner_id={self.owner_id})>"


class QuizQuestion(Base):
    """
    A single question in a quiz, ordered by ``position``.

    Attributes:
        id: Unique identifier (UUID)
        quiz_id: FK to the quiz
        position: 0-based order within the quiz
        question: Question text
        question_type: multiple_choice | true_false | fill_in_blank | essay | matching
        options: JSON list of answer options (may be empty)
        correct_answer: Expected answer
        explanation: Optional explanation shown after answering
        points: Score weight (1-10)
    """

    __tablename__ = "QuizQuestions"
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

    position = Column(
        Integer,
        nullable=False,
        default=0,
    )

    question = Column(
        Text,
        nullable=False,
    )

    question_type = Column(
        String(30),
        nullable=False,
        default="multiple_choice",
    )

    options = Column(
        JSON,
        nullable=False,
        default=list,
    )

    correct_answer = Column(
        Text,
        nullable=False,
    )

    explanation = Column(
        Text,
        nullable=False,
        default="",
    )

    points = Column(
        Integer,
        nullable=False,
        default=1,
    )

    quiz = relationship(
        "Quiz",
        back_populates="questions",
    )

    def __repr__(self) -> str:
        """String representation of QuizQuestion."""
        return f"<QuizQuestion(id={self.id}, quiz_id={self.quiz_id}, position={self.position})>"
