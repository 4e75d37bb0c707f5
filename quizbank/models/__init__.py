"""SQLAlchemy ORM models package."""

from .activity_log import ActivityLog
from .collaborator import QuizCollaborator
from .folder import Folder
from .quiz import Quiz, QuizQuestion
from .quiz_share import QuizShare, QuizView
from .user import User

__all__ = [
    "ActivityLog",
    "Folder",
    "Quiz",
    "QuizCollaborator",
    "QuizQuestion",
    "QuizShare",
    "QuizView",
    "User",
]
