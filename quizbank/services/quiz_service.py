"""Quiz organization service.

Composes the permission checks and the folder service to create, update,
move, duplicate, share and bulk-operate on quizzes. Each public operation
runs inside one transaction boundary (joining the caller's when one is
active). Activity logging, share notifications and the related-table cleanup
of a permanent delete are best effort and never fail the operation.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any, Optional
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import transaction, utcnow
from ..errors import (
    BusinessLogicError,
    DatabaseError,
    NotFoundError,
    QuizBankError,
    UnauthorizedError,
    ValidationError,
)
from ..models.activity_log import ActivityLog
from ..models.collaborator import GRANT_ACTIVE, GRANT_REMOVED, PERMISSIONS, QuizCollaborator
from ..models.quiz import Quiz, QuizQuestion
from ..models.quiz_share import QuizShare, QuizView
from ..models.user import User
from ..repositories import Repository
from ..schemas.quiz import (
    BulkItemResult,
    BulkOperationResponse,
    CollaboratorResponse,
    QuizListItem,
    QuizListResponse,
    ShareRecipientResult,
)
from ..utils.security import UNUSABLE_PASSWORD
from .activity_service import ActivityService
from .email_service import EmailService, email_service
from .folder_service import FolderService
from .permission_service import PermissionService
from .quiz_validator import CATEGORIES, QuizValidator, compute_derived_fields, normalize_tags

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "category", "tags", "is_public", "status", "folder_id", "questions")
OWNER_ONLY_FIELDS = ("is_public", "folder_id")
SORTABLE_FIELDS = ("title", "created_at", "updated_at", "last_accessed_at", "question_count", "difficulty")
BULK_ACTIONS = ("delete", "move", "updateCategory", "updateTags")
MAX_COPY_SUFFIX = 1000

# Sentinel for "argument not given" where None is a meaningful value (top level)
_UNSET: Any = object()


class QuizService:
    """
    Service class for quiz operations.

    Args:
        db: SQLAlchemy async database session
        email: Notification sender (defaults to the shared EmailService)
    """

    def __init__(self, db: AsyncSession, email: Optional[EmailService] = None):
        self.db = db
        self.quizzes = Repository(db, Quiz)
        self.users = Repository(db, User)
        self.grants = Repository(db, QuizCollaborator)
        self.shares = Repository(db, QuizShare)
        self.views = Repository(db, QuizView)
        self.activity_logs = Repository(db, ActivityLog)
        self.permissions = PermissionService(db)
        self.folders = FolderService(db)
        self.activity = ActivityService(db)
        self.validator = QuizValidator()
        self.email = email or email_service

    # =========================================================================
    # Helpers
    # =========================================================================

    def _validate(self, data: dict, partial: bool = False) -> None:
        errors = self.validator.validate_quiz_fields(data, partial=partial)
        if "questions" in data:
            errors.extend(self.validator.validate_questions(data["questions"]).errors)
        if errors:
            raise ValidationError("; ".join(errors), errors=errors)

    @staticmethod
    def _question_rows(questions: list[dict]) -> list[QuizQuestion]:
        return [
            QuizQuestion(
                position=position,
                question=q["question"].strip(),
                question_type=q.get("question_type") or "multiple_choice",
                options=[o.strip() for o in q.get("options") or []],
                correct_answer=q["correct_answer"].strip(),
                explanation=q.get("explanation") or "",
                points=q.get("points", 1),
            )
            for position, q in enumerate(questions)
        ]

    @staticmethod
    def _question_dicts(quiz: Quiz) -> list[dict]:
        return [
            {
                "question": q.question,
                "question_type": q.question_type,
                "options": list(q.options or []),
                "correct_answer": q.correct_answer,
                "explanation": q.explanation,
                "points": q.points,
            }
            for q in quiz.questions
        ]

    async def _check_folder(self, folder_id: Optional[UUID], owner_id: UUID) -> None:
        if folder_id is not None:
            await self.folders.get_owned(folder_id, owner_id)

    async def _check_duplicate_title(self, owner_id: UUID, title: str, exclude_id: Optional[UUID] = None) -> None:
        if not await self.check_title_availability(owner_id, title, exclude_id):
            raise BusinessLogicError("A quiz with this title already exists")

    async def _check_quiz_limit(self, owner_id: UUID) -> None:
        if await self.quizzes.count(Quiz.owner_id == owner_id) >= settings.max_quizzes_per_user:
            raise BusinessLogicError(f"Quiz limit reached (maximum {settings.max_quizzes_per_user} quizzes)")

    async def _require_user(self, user_id: UUID) -> User:
        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("User")
        return user

    async def check_title_availability(self, owner_id: UUID, title: str, exclude_id: Optional[UUID] = None) -> bool:
        """True if none of the owner's live quizzes (other than ``exclude_id``) uses the title."""
        conditions = [Quiz.owner_id == owner_id, Quiz.title == title.strip()]
        if exclude_id is not None:
            conditions.append(Quiz.id != exclude_id)
        return not await self.quizzes.exists(*conditions)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_quiz(self, quiz_id: UUID, caller_id: UUID) -> tuple[Quiz, str]:
        """
        Load a quiz the caller may read and record the view.

        Returns:
            The quiz and the caller's effective permission on it.

        Raises:
            NotFoundError: Quiz missing or soft-deleted
            UnauthorizedError: Caller may not read it
        """
        async with transaction(self.db):
            quiz = await self.permissions.require_read(quiz_id, caller_id)
            permission = await self.permissions.permission_for(quiz, caller_id)
            await self._record_view(quiz, caller_id)
        return quiz, permission

    async def get_shared_quiz(self, token: str) -> tuple[Quiz, str]:
        """
        Resolve a share link to its quiz.

        The link works while it is unexpired and the recipient's grant is
        still active; it carries the grant's current permission. The view
        is recorded for the recipient.

        Raises:
            NotFoundError: Unknown, expired or revoked link, or the quiz was deleted
        """
        async with transaction(self.db):
            share = await self.shares.first(QuizShare.share_token == token)
            if share is None or share.expires_at <= utcnow():
                raise NotFoundError("Share link")
            quiz = await self.quizzes.get(share.quiz_id)
            if quiz is None:
                raise NotFoundError("Quiz")
            grant = await self.grants.first(
                QuizCollaborator.quiz_id == quiz.id,
                QuizCollaborator.user_id == share.recipient_id,
                QuizCollaborator.status == GRANT_ACTIVE,
            )
            if grant is None:
                raise NotFoundError("Share link")
            await self._record_view(quiz, share.recipient_id)
        return quiz, grant.permission

    async def _record_view(self, quiz: Quiz, caller_id: UUID) -> None:
        now = utcnow()
        try:
            async with self.db.begin_nested():
                self.db.add(QuizView(quiz_id=quiz.id, user_id=caller_id, viewed_at=now))
                # Keep updated_at: a read is not a modification
                await self.quizzes.update_where(
                    [Quiz.id == quiz.id], {"last_accessed_at": now, "updated_at": quiz.updated_at}
                )
        except (DatabaseError, SQLAlchemyError) as e:
            logger.warning(f"Recording quiz view failed: quiz={quiz.id}, user={caller_id}: {e}", exc_info=True)

    async def list_quizzes(
        self,
        owner_id: UUID,
        folder_id: Optional[UUID] = None,
        top_level_only: bool = False,
        category: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "updated_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> QuizListResponse:
        """Paginated list of the owner's live quizzes."""
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort by '{sort_by}'", field="sort_by")
        if sort_order not in ("asc", "desc"):
            raise ValidationError("Sort order must be 'asc' or 'desc'", field="sort_order")

        conditions = [Quiz.owner_id == owner_id]
        if folder_id is not None:
            await self.folders.get_owned(folder_id, owner_id)
            conditions.append(Quiz.folder_id == folder_id)
        elif top_level_only:
            conditions.append(Quiz.folder_id.is_(None))
        if category:
            conditions.append(Quiz.category == category)
        if status:
            conditions.append(Quiz.status == status)
        if search and search.strip():
            term = search.strip()
            conditions.append(
                or_(Quiz.title.icontains(term, autoescape=True), Quiz.description.icontains(term, autoescape=True))
            )

        column = getattr(Quiz, sort_by)
        order = column.asc() if sort_order == "asc" else column.desc()
        total = await self.quizzes.count(*conditions)
        quizzes = await self.quizzes.find(
            *conditions, order_by=[order, Quiz.id], limit=limit, offset=(page - 1) * limit
        )
        return QuizListResponse(
            items=[QuizListItem.model_validate(q) for q in quizzes],
            total=total,
            page=page,
            limit=limit,
            has_next=page * limit < total,
            has_prev=page > 1,
        )

    async def get_recent_quizzes(self, owner_id: UUID, limit: int = 5) -> list[Quiz]:
        """The owner's most recently updated quizzes."""
        return await self.quizzes.find(
            Quiz.owner_id == owner_id, order_by=[Quiz.updated_at.desc()], limit=limit
        )

    async def list_shared_with_me(self, caller_id: UUID) -> list[QuizListItem]:
        """Live quizzes on which the caller holds an active collaborator grant."""
        result = await self.quizzes.execute(
            select(Quiz, QuizCollaborator.permission)
            .join(QuizCollaborator, QuizCollaborator.quiz_id == Quiz.id)
            .where(
                QuizCollaborator.user_id == caller_id,
                QuizCollaborator.status == GRANT_ACTIVE,
                Quiz.owner_id != caller_id,
                Quiz.live(),
            )
            .order_by(Quiz.updated_at.desc())
        )
        items = []
        for quiz, permission in result.all():
            item = QuizListItem.model_validate(quiz)
            item.permission = permission
            items.append(item)
        return items

    async def list_collaborators(self, quiz_id: UUID, caller_id: UUID) -> list[CollaboratorResponse]:
        await self.permissions.require_read(quiz_id, caller_id)
        result = await self.grants.execute(
            select(QuizCollaborator, User)
            .join(User, User.id == QuizCollaborator.user_id)
            .where(QuizCollaborator.quiz_id == quiz_id, QuizCollaborator.status == GRANT_ACTIVE)
            .order_by(QuizCollaborator.created_at)
        )
        return [
            CollaboratorResponse(
                user_id=user.id,
                email=user.email,
                display_name=user.display_name,
                permission=grant.permission,
                status=grant.status,
                is_pending=user.is_pending,
                created_at=grant.created_at,
            )
            for grant, user in result.all()
        ]

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_quiz(self, owner_id: UUID, data: dict) -> Quiz:
        """
        Create a quiz for ``owner_id``.

        Raises:
            ValidationError: Invalid fields or questions (all errors joined)
            NotFoundError: Owner or folder missing
            BusinessLogicError: Quiz limit reached or duplicate title
        """
        data = dict(data)
        data["title"] = (data.get("title") or "").strip()
        data["questions"] = data.get("questions") or []
        self._validate(data)

        async with transaction(self.db):
            await self._require_user(owner_id)
            await self._check_quiz_limit(owner_id)
            await self._check_folder(data.get("folder_id"), owner_id)
            await self._check_duplicate_title(owner_id, data["title"])

            questions = data["questions"]
            quiz = await self.quizzes.insert(
                owner_id=owner_id,
                folder_id=data.get("folder_id"),
                title=data["title"],
                description=(data.get("description") or "").strip(),
                category=data.get("category") or "general",
                tags=normalize_tags(data.get("tags") or []),
                is_public=bool(data.get("is_public", False)),
                status=data.get("status") or "draft",
                questions=self._question_rows(questions),
                **compute_derived_fields(questions),
            )
            await self.activity.record(
                owner_id, "quiz_created", {"title": quiz.title, "question_count": quiz.question_count},
                entity_type="quiz", entity_id=quiz.id,
            )

        logger.info(f"Quiz created: id={quiz.id}, owner={owner_id}, questions={quiz.question_count}")
        return quiz

    async def update_quiz(self, quiz_id: UUID, caller_id: UUID, data: dict) -> Quiz:
        """
        Update whitelisted quiz fields.

        Editors may change content; only the owner may change ``is_public``
        or ``folder_id``. Derived fields are recomputed when questions change.

        Raises:
            NotFoundError: Quiz (or destination folder) missing
            UnauthorizedError: Caller may not edit, or touched an owner-only field
            ValidationError: Nothing to update or invalid values
            BusinessLogicError: Duplicate title
        """
        updates = {
            key: value
            for key, value in data.items()
            if key in UPDATABLE_FIELDS and (value is not None or key == "folder_id")
        }

        async with transaction(self.db):
            quiz = await self.permissions.require_edit(quiz_id, caller_id)
            if not updates:
                raise ValidationError("No valid fields to update")
            if quiz.owner_id != caller_id and any(key in updates for key in OWNER_ONLY_FIELDS):
                raise UnauthorizedError("Only the quiz owner can change visibility or folder")

            if "title" in updates:
                updates["title"] = updates["title"].strip()
            self._validate(updates, partial=True)

            if "title" in updates and updates["title"] != quiz.title:
                await self._check_duplicate_title(quiz.owner_id, updates["title"], exclude_id=quiz.id)
            if "folder_id" in updates:
                await self._check_folder(updates["folder_id"], quiz.owner_id)
            if "tags" in updates:
                updates["tags"] = normalize_tags(updates["tags"])
            if "description" in updates:
                updates["description"] = updates["description"].strip()

            questions = updates.pop("questions", None)
            if questions is not None:
                quiz.questions = self._question_rows(questions)
                updates.update(compute_derived_fields(questions))

            await self.quizzes.update(quiz, **updates)
            fields = sorted(set(updates) | ({"questions"} if questions is not None else set()))
            await self.activity.record(
                caller_id, "quiz_updated", {"fields": fields}, entity_type="quiz", entity_id=quiz.id
            )

        logger.info(f"Quiz updated: id={quiz_id}, by={caller_id}, fields={fields}")
        return quiz

    async def rename_quiz(self, quiz_id: UUID, caller_id: UUID, title: str) -> Quiz:
        return await self.update_quiz(quiz_id, caller_id, {"title": title or ""})

    async def delete_quiz(self, quiz_id: UUID, caller_id: UUID, permanent: bool = False) -> None:
        """
        Delete a quiz (owner only). Soft delete unless ``permanent``.

        A permanent delete also purges collaborator grants, share records,
        view records and the quiz's activity entries; each cleanup step runs
        in its own savepoint and a failure is logged without stopping the
        others. An already soft-deleted quiz can still be purged permanently.

        Raises:
            NotFoundError: Quiz missing (or already soft-deleted, for a soft delete)
            UnauthorizedError: Caller is not the owner
        """
        async with transaction(self.db):
            quiz = await self.permissions.require_owner(quiz_id, caller_id, include_deleted=permanent)
            if permanent:
                title = quiz.title
                await self._purge_related(quiz.id)
                await self.db.delete(quiz)
                await self.quizzes.flush()
                await self.activity.record(
                    caller_id, "quiz_deleted_permanently", {"quiz_id": str(quiz_id), "title": title}
                )
            else:
                await self.quizzes.soft_delete(quiz)
                await self.activity.record(
                    caller_id, "quiz_deleted", {"title": quiz.title}, entity_type="quiz", entity_id=quiz.id
                )

        logger.info(f"Quiz deleted: id={quiz_id}, by={caller_id}, permanent={permanent}")

    async def _purge_related(self, quiz_id: UUID) -> None:
        steps = (
            ("collaborator grants", self.grants, QuizCollaborator.quiz_id == quiz_id),
            ("share records", self.shares, QuizShare.quiz_id == quiz_id),
            ("view records", self.views, QuizView.quiz_id == quiz_id),
            (
                "activity entries",
                self.activity_logs,
                and_(ActivityLog.entity_type == "quiz", ActivityLog.entity_id == quiz_id),
            ),
        )
        for label, repository, condition in steps:
            try:
                async with self.db.begin_nested():
                    removed = await repository.delete_where(condition)
                logger.debug(f"Purged {removed} {label} for quiz {quiz_id}")
            except (DatabaseError, SQLAlchemyError) as e:
                logger.warning(f"Purging {label} for quiz {quiz_id} failed: {e}", exc_info=True)

    async def move_quiz(self, quiz_id: UUID, folder_id: Optional[UUID], caller_id: UUID) -> Quiz:
        """
        Move a quiz into ``folder_id`` (None = top level). Owner only.

        Raises:
            NotFoundError: Quiz or destination folder missing
            UnauthorizedError: Caller is not the owner
        """
        async with transaction(self.db):
            quiz = await self.permissions.require_owner(quiz_id, caller_id)
            await self._check_folder(folder_id, caller_id)
            old_folder_id = quiz.folder_id
            await self.quizzes.update(quiz, folder_id=folder_id)
            await self.activity.record(
                caller_id, "quiz_moved",
                {
                    "from_folder_id": str(old_folder_id) if old_folder_id else None,
                    "to_folder_id": str(folder_id) if folder_id else None,
                },
                entity_type="quiz", entity_id=quiz.id,
            )

        logger.info(f"Quiz moved: id={quiz_id}, from={old_folder_id}, to={folder_id}")
        return quiz

    async def _copy_title(self, owner_id: UUID, title: str) -> str:
        result = await self.quizzes.execute(
            select(Quiz.title).where(
                Quiz.owner_id == owner_id,
                Quiz.title.startswith(title[:200], autoescape=True),
                Quiz.live(),
            )
        )
        taken = set(result.scalars().all())
        for n in range(1, MAX_COPY_SUFFIX):
            suffix = " (Copy)" if n == 1 else f" (Copy {n})"
            candidate = title[: 255 - len(suffix)] + suffix
            if candidate not in taken:
                return candidate
        raise BusinessLogicError("Could not find a free title for the copy")

    async def duplicate_quiz(
        self,
        quiz_id: UUID,
        caller_id: UUID,
        new_title: Optional[str] = None,
        folder_id: Optional[UUID] = _UNSET,
    ) -> Quiz:
        """
        Copy a readable quiz into the caller's library.

        The copy is a private draft owned by the caller. It stays in the
        source folder only when the caller owns the source; otherwise it
        lands at the top level unless ``folder_id`` is given.

        Raises:
            NotFoundError: Source quiz or destination folder missing
            UnauthorizedError: Caller may not read the source
            ValidationError: Invalid explicit title
            BusinessLogicError: Quiz limit reached or explicit title taken
        """
        async with transaction(self.db):
            source = await self.permissions.require_read(quiz_id, caller_id)
            await self._check_quiz_limit(caller_id)

            if new_title:
                title = new_title.strip()
                errors = self.validator.validate_title(title)
                if errors:
                    raise ValidationError("; ".join(errors), errors=errors, field="title")
                await self._check_duplicate_title(caller_id, title)
            else:
                title = await self._copy_title(caller_id, source.title)

            if folder_id is _UNSET:
                folder_id = source.folder_id if source.owner_id == caller_id else None
            await self._check_folder(folder_id, caller_id)

            questions = self._question_dicts(source)
            copy = await self.quizzes.insert(
                owner_id=caller_id,
                folder_id=folder_id,
                title=title,
                description=source.description,
                category=source.category,
                tags=list(source.tags or []),
                is_public=False,
                status="draft",
                questions=self._question_rows(questions),
                **compute_derived_fields(questions),
            )
            await self.activity.record(
                caller_id, "quiz_duplicated", {"source_quiz_id": str(source.id), "title": title},
                entity_type="quiz", entity_id=copy.id,
            )

        logger.info(f"Quiz duplicated: source={quiz_id}, copy={copy.id}, by={caller_id}")
        return copy

    # =========================================================================
    # Sharing
    # =========================================================================

    @staticmethod
    def _normalize_emails(emails: list[str]) -> list[str]:
        return list(dict.fromkeys(e.strip().lower() for e in emails if e and e.strip()))

    @staticmethod
    def share_url(token: str) -> str:
        return f"{settings.frontend_url.rstrip('/')}/quiz/shared/{token}"

    async def share_quiz(
        self,
        quiz_id: UUID,
        caller_id: UUID,
        emails: list[str],
        permission: str = "view",
        message: str = "",
    ) -> tuple[list[ShareRecipientResult], int, int]:
        """
        Share a quiz with each email address independently.

        Every recipient gets an active collaborator grant with ``permission``
        (unknown addresses are provisioned as pending users), a share record
        with a fresh token, and a notification email. A failing recipient is
        reported in its result and does not affect the others.

        Returns:
            (per-recipient results, success count, failure count)

        Raises:
            ValidationError: Bad permission or no email addresses
            NotFoundError: Quiz missing
            UnauthorizedError: Caller is neither owner nor admin collaborator
        """
        if permission not in PERMISSIONS:
            raise ValidationError(f"Invalid permission: {permission}", field="permission")
        recipients = self._normalize_emails(emails)
        if not recipients:
            raise ValidationError("At least one email address is required", field="emails")
        if len(recipients) > settings.bulk_operation_limit:
            raise ValidationError(
                f"Cannot share with more than {settings.bulk_operation_limit} recipients at once", field="emails"
            )

        results: list[ShareRecipientResult] = []
        async with transaction(self.db):
            quiz = await self.permissions.require_admin(quiz_id, caller_id)
            sharer = await self._require_user(caller_id)

            for email in recipients:
                try:
                    async with self.db.begin_nested():
                        result = await self._share_with(quiz, sharer, email, permission, message)
                    results.append(result)
                except QuizBankError as e:
                    logger.info(f"Sharing quiz {quiz_id} with {email} failed: {e.message}")
                    results.append(ShareRecipientResult(email=email, success=False, error=e.message))

            success_count = sum(1 for r in results if r.success)
            await self.activity.record(
                caller_id, "quiz_shared",
                {"permission": permission, "recipients": success_count, "failed": len(results) - success_count},
                entity_type="quiz", entity_id=quiz.id,
            )
            quiz_title = quiz.title
            sender_name = sharer.display_name or sharer.email

        for result in results:
            if result.success:
                result.notified = await self.email.send_share_notification(
                    recipient=result.email,
                    sender_name=sender_name,
                    quiz_title=quiz_title,
                    share_url=result.share_url,
                    permission=permission,
                    message=message,
                )

        logger.info(f"Quiz shared: id={quiz_id}, by={caller_id}, ok={success_count}, failed={len(results) - success_count}")
        return results, success_count, len(results) - success_count

    async def _share_with(
        self,
        quiz: Quiz,
        sharer: User,
        email: str,
        permission: str,
        message: str,
    ) -> ShareRecipientResult:
        try:
            email = validate_email(email, check_deliverability=False).normalized.lower()
        except EmailNotValidError as e:
            raise ValidationError(f"Invalid email address: {e}", field="email")

        recipient = await self.users.first(User.email == email)
        is_new_user = recipient is None
        if recipient is None:
            recipient = await self.users.insert(
                email=email,
                password_hash=UNUSABLE_PASSWORD,
                display_name=email.split("@")[0],
                is_pending=True,
            )

        if recipient.id == quiz.owner_id:
            raise BusinessLogicError("Cannot share a quiz with its owner")
        if recipient.id == sharer.id:
            raise BusinessLogicError("Cannot share a quiz with yourself")

        grant = await self.grants.first(QuizCollaborator.quiz_id == quiz.id, QuizCollaborator.user_id == recipient.id)
        if grant is None:
            await self.grants.insert(
                quiz_id=quiz.id,
                user_id=recipient.id,
                permission=permission,
                status=GRANT_ACTIVE,
                granted_by=sharer.id,
            )
        else:
            await self.grants.update(grant, permission=permission, status=GRANT_ACTIVE, granted_by=sharer.id)

        token = secrets.token_urlsafe(24)
        await self.shares.insert(
            quiz_id=quiz.id,
            shared_by=sharer.id,
            recipient_id=recipient.id,
            permission=permission,
            share_token=token,
            message=message or "",
            expires_at=utcnow() + timedelta(days=settings.share_token_ttl_days),
        )
        return ShareRecipientResult(
            email=email,
            success=True,
            user_id=recipient.id,
            share_token=token,
            share_url=self.share_url(token),
            is_new_user=is_new_user,
        )

    async def revoke_share(self, quiz_id: UUID, caller_id: UUID, user_id: UUID) -> None:
        """
        Revoke a collaborator's grant (status becomes ``removed``). Owner only.

        Raises:
            NotFoundError: Quiz missing or no active grant for the user
            UnauthorizedError: Caller is not the owner
        """
        async with transaction(self.db):
            quiz = await self.permissions.require_owner(quiz_id, caller_id)
            grant = await self.grants.first(
                QuizCollaborator.quiz_id == quiz.id,
                QuizCollaborator.user_id == user_id,
                QuizCollaborator.status == GRANT_ACTIVE,
            )
            if grant is None:
                raise NotFoundError("Collaborator")
            await self.grants.update(grant, status=GRANT_REMOVED)
            await self.activity.record(
                caller_id, "quiz_share_revoked", {"user_id": str(user_id)}, entity_type="quiz", entity_id=quiz.id
            )

        logger.info(f"Quiz share revoked: id={quiz_id}, user={user_id}")

    # =========================================================================
    # Bulk operations
    # =========================================================================

    def _validate_bulk_data(self, action: str, data: dict) -> dict:
        data = dict(data)
        if action == "move":
            if "folder_id" not in data:
                raise ValidationError("folder_id is required for move", field="folder_id")
            if data["folder_id"] is not None and not isinstance(data["folder_id"], UUID):
                try:
                    data["folder_id"] = UUID(str(data["folder_id"]))
                except ValueError:
                    raise ValidationError("folder_id must be a UUID", field="folder_id")
        if action == "updateCategory" and data.get("category") not in CATEGORIES:
            raise ValidationError(f"Invalid category: {data.get('category')}", field="category")
        if action == "updateTags":
            errors = self.validator.validate_tags(data.get("tags"))
            if errors:
                raise ValidationError("; ".join(errors), errors=errors, field="tags")
        return data

    async def _apply_bulk(self, action: str, quiz_id: UUID, data: dict, caller_id: UUID) -> None:
        if action == "delete":
            quiz = await self.permissions.require_owner(quiz_id, caller_id)
            await self.quizzes.soft_delete(quiz)
        elif action == "move":
            quiz = await self.permissions.require_owner(quiz_id, caller_id)
            await self.quizzes.update(quiz, folder_id=data["folder_id"])
        elif action == "updateCategory":
            quiz = await self.permissions.require_edit(quiz_id, caller_id)
            await self.quizzes.update(quiz, category=data["category"])
        elif action == "updateTags":
            quiz = await self.permissions.require_edit(quiz_id, caller_id)
            await self.quizzes.update(quiz, tags=normalize_tags(data["tags"]))

    async def bulk_operation(
        self,
        action: str,
        quiz_ids: list[UUID],
        data: Optional[dict],
        caller_id: UUID,
    ) -> BulkOperationResponse:
        """
        Apply one action to each quiz independently.

        Each quiz is processed in its own savepoint: a failing id is reported
        in its result and rolled back alone. One activity entry is written
        for the whole batch.

        Raises:
            ValidationError: Unknown action, bad id count or bad action data
            NotFoundError: Destination folder of a move missing or not owned
        """
        if action not in BULK_ACTIONS:
            raise ValidationError(f"Unsupported operation: {action}", field="action")
        ids = list(dict.fromkeys(quiz_ids or []))
        if not ids:
            raise ValidationError("Quiz IDs are required", field="quiz_ids")
        if len(ids) > settings.bulk_operation_limit:
            raise ValidationError(
                f"At most {settings.bulk_operation_limit} quizzes per bulk operation", field="quiz_ids"
            )
        data = self._validate_bulk_data(action, data or {})

        results: list[BulkItemResult] = []
        async with transaction(self.db):
            if action == "move":
                await self._check_folder(data["folder_id"], caller_id)

            for quiz_id in ids:
                try:
                    async with self.db.begin_nested():
                        await self._apply_bulk(action, quiz_id, data, caller_id)
                    results.append(BulkItemResult(quiz_id=quiz_id, success=True))
                except QuizBankError as e:
                    results.append(BulkItemResult(quiz_id=quiz_id, success=False, error=e.message))

            success_count = sum(1 for r in results if r.success)
            await self.activity.record(
                caller_id, "quiz_bulk_operation",
                {
                    "action": action,
                    "quiz_ids": [str(r.quiz_id) for r in results if r.success],
                    "succeeded": success_count,
                    "failed": len(results) - success_count,
                },
            )

        logger.info(f"Bulk {action}: by={caller_id}, ok={success_count}, failed={len(results) - success_count}")
        return BulkOperationResponse(
            action=action,
            results=results,
            success_count=success_count,
            failure_count=len(results) - success_count,
        )


def get_quiz_service(db: AsyncSession) -> QuizService:
    """
    Factory function to create a QuizService instance.

    Args:
        db: SQLAlchemy async database session

    Returns:
        QuizService instance
    """
    return QuizService(db)
