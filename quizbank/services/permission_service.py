"""Permission service for quiz access checks.

Quiz access model:
- Owner: full rights (edit, delete, move, share, change visibility)
- Admin collaborator: read, edit and share
- Edit collaborator: read and edit
- View collaborator: read only
- Anyone: read when the quiz is public

Only ``active`` grants count. Checks on a missing or soft-deleted quiz raise
``NotFoundError``; checks on an existing quiz the caller has no right to
raise ``UnauthorizedError``. Existence is always checked first.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError, UnauthorizedError
from ..models.collaborator import (
    EDIT_PERMISSIONS,
    GRANT_ACTIVE,
    PERMISSION_ADMIN,
    QuizCollaborator,
)
from ..models.quiz import Quiz
from ..repositories import Repository

ROLE_OWNER = "owner"
ROLE_PUBLIC = "public"


class PermissionService:
    """
    Service class for quiz permission checks.

    The ``can_*`` methods are side-effect-free predicates. The ``require_*``
    methods return the loaded quiz or raise.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the PermissionService.

        Args:
            db: SQLAlchemy async database session
        """
        self.db = db
        self.quizzes = Repository(db, Quiz)
        self.grants = Repository(db, QuizCollaborator)

    async def get_active_grant(self, quiz_id: UUID, user_id: UUID) -> Optional[QuizCollaborator]:
        return await self.grants.first(
            QuizCollaborator.quiz_id == quiz_id,
            QuizCollaborator.user_id == user_id,
            QuizCollaborator.status == GRANT_ACTIVE,
        )

    async def permission_for(self, quiz: Quiz, caller_id: UUID) -> Optional[str]:
        """
        Effective permission of the caller on a loaded quiz.

        Returns:
            'owner', the active grant's permission ('admin', 'edit', 'view'),
            'public' for a public quiz, or None.
        """
        if quiz.owner_id == caller_id:
            return ROLE_OWNER
        grant = await self.get_active_grant(quiz.id, caller_id)
        if grant is not None:
            return grant.permission
        if quiz.is_public:
            return ROLE_PUBLIC
        return None

    async def get_permission(self, quiz_id: UUID, caller_id: UUID) -> Optional[str]:
        """Effective permission on a quiz, or None when it is missing or inaccessible."""
        quiz = await self.quizzes.get(quiz_id)
        if quiz is None:
            return None
        return await self.permission_for(quiz, caller_id)

    async def can_read(self, quiz_id: UUID, caller_id: UUID) -> bool:
        """True iff the quiz is live and the caller owns it, it is public, or has any active grant."""
        return await self.get_permission(quiz_id, caller_id) is not None

    async def can_edit(self, quiz_id: UUID, caller_id: UUID) -> bool:
        """True iff the quiz is live and the caller owns it or holds an edit/admin grant."""
        permission = await self.get_permission(quiz_id, caller_id)
        return permission == ROLE_OWNER or permission in EDIT_PERMISSIONS

    async def can_admin(self, quiz_id: UUID, caller_id: UUID) -> bool:
        """True iff the caller may share the quiz (owner or admin grant)."""
        permission = await self.get_permission(quiz_id, caller_id)
        return permission in (ROLE_OWNER, PERMISSION_ADMIN)

    async def _load(self, quiz_id: UUID) -> Quiz:
        quiz = await self.quizzes.get(quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz")
        return quiz

    async def require_read(self, quiz_id: UUID, caller_id: UUID) -> Quiz:
        quiz = await self._load(quiz_id)
        if await self.permission_for(quiz, caller_id) is None:
            raise UnauthorizedError("You do not have permission to view this quiz")
        return quiz

    async def require_edit(self, quiz_id: UUID, caller_id: UUID) -> Quiz:
        quiz = await self._load(quiz_id)
        permission = await self.permission_for(quiz, caller_id)
        if permission != ROLE_OWNER and permission not in EDIT_PERMISSIONS:
            raise UnauthorizedError("You do not have permission to edit this quiz")
        return quiz

    async def require_admin(self, quiz_id: UUID, caller_id: UUID) -> Quiz:
        quiz = await self._load(quiz_id)
        if await self.permission_for(quiz, caller_id) not in (ROLE_OWNER, PERMISSION_ADMIN):
            raise UnauthorizedError("You do not have permission to share this quiz")
        return quiz

    async def require_owner(self, quiz_id: UUID, caller_id: UUID, include_deleted: bool = False) -> Quiz:
        quiz = await self.quizzes.get(quiz_id, include_deleted=include_deleted)
        if quiz is None:
            raise NotFoundError("Quiz")
        if quiz.owner_id != caller_id:
            raise UnauthorizedError("Only the quiz owner can perform this action")
        return quiz


def get_permission_service(db: AsyncSession) -> PermissionService:
    """
    Factory function to create a PermissionService instance.

    Args:
        db: SQLAlchemy async database session

    Returns:
        PermissionService instance
    """
    return PermissionService(db)
