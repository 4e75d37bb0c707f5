"""Quiz API endpoints.

Quiz access errors keep two distinct statuses: 404 when the quiz does not
exist (or was deleted) and 403 when it exists but the caller lacks the
required permission.
"""

from typing import Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.quiz import Quiz
from ..models.user import User
from ..schemas.quiz import (
    BulkOperationRequest,
    BulkOperationResponse,
    CollaboratorResponse,
    QuizCreate,
    QuizDuplicate,
    QuizExportRequest,
    QuizListItem,
    QuizListResponse,
    QuizMove,
    QuizRename,
    QuizResponse,
    QuizShareRequest,
    QuizShareResponse,
    QuizUpdate,
    TitleAvailability,
)
from ..services.auth_service import get_current_user
from ..services.export_service import ExportedFile, ExportService
from ..services.owner_lock_service import OwnerLockService, get_owner_lock_service
from ..services.permission_service import ROLE_OWNER
from ..services.quiz_service import _UNSET, QuizService

router = APIRouter(
    prefix="/quizzes",
    tags=["quizzes"],
)


def _to_response(quiz: Quiz, permission: Optional[str]) -> QuizResponse:
    response = QuizResponse.model_validate(quiz)
    response.permission = permission
    return response


async def _owner_of(db: AsyncSession, quiz_id: UUID) -> Optional[UUID]:
    """Owner of a quiz, used to pick the lock guarding its title."""
    result = await db.execute(select(Quiz.owner_id).where(Quiz.id == quiz_id))
    return result.scalar_one_or_none()


@router.get("", response_model=QuizListResponse)
async def list_quizzes(
    folder_id: Optional[UUID] = Query(None, description="Only quizzes in this folder"),
    top_level_only: bool = Query(False, description="Only quizzes not filed in a folder"),
    category: Optional[str] = Query(None),
    quiz_status: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=255),
    sort_by: str = Query("updated_at"),
    sort_order: str = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> QuizListResponse:
    """List the current user's quizzes with filters and pagination."""
    return await QuizService(db).list_quizzes(
        current_user.id,
        folder_id=folder_id,
        top_level_only=top_level_only,
        category=category,
        status=quiz_status,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


@router.post("", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    body: QuizCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> QuizResponse:
    async with lock.hold(current_user.id):
        quiz = await QuizService(db).create_quiz(current_user.id, body.model_dump())
        await db.commit()

    return _to_response(quiz, ROLE_OWNER)


@router.get("/shared", response_model=list[QuizListItem])
async def list_shared_quizzes(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[QuizListItem]:
    """Quizzes other users shared with the current user."""
    return await QuizService(db).list_shared_with_me(current_user.id)


@router.get("/shared/{token}", response_model=QuizResponse)
async def get_shared_quiz(
    token: str,
    db: AsyncSession = Depends(get_db),
) -> QuizResponse:
    """Open a quiz through a share link. The token is the credential."""
    quiz, permission = await QuizService(db).get_shared_quiz(token)
    await db.commit()
    return _to_response(quiz, permission)


@router.get("/recent", response_model=list[QuizListItem])
async def list_recent_quizzes(
    limit: int = Query(5, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[QuizListItem]:
    quizzes = await QuizService(db).get_recent_quizzes(current_user.id, limit=limit)
    return [QuizListItem.model_validate(q) for q in quizzes]


@router.get("/title-availability", response_model=TitleAvailability)
async def check_title_availability(
    title: str = Query(..., min_length=1, max_length=255),
    exclude_id: Optional[UUID] = Query(None, description="Quiz being renamed"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TitleAvailability:
    available = await QuizService(db).check_title_availability(current_user.id, title, exclude_id)
    return TitleAvailability(title=title.strip(), available=available)


@router.post("/bulk", response_model=BulkOperationResponse)
async def bulk_operation(
    body: BulkOperationRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> BulkOperationResponse:
    """
    Apply delete, move, updateCategory or updateTags to up to 50 quizzes.

    Every quiz succeeds or fails on its own; the response lists each result.
    """
    async with lock.hold(current_user.id):
        result = await QuizService(db).bulk_operation(body.action, body.quiz_ids, body.data, current_user.id)
        await db.commit()

    return result


def _download(exported: ExportedFile) -> Response:
    disposition = f"attachment; filename*=UTF-8''{quote(exported.filename)}"
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": disposition},
    )


@router.post("/export")
async def export_quizzes(
    body: QuizExportRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download several readable quizzes as a ZIP archive, one file each."""
    exported = await ExportService(db).export_quizzes(body.quiz_ids, current_user.id, body.format)
    return _download(exported)


@router.get("/{quiz_id}", response_model=QuizResponse)
async def get_quiz(
    quiz_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> QuizResponse:
    """Get a quiz with its questions. Records the view."""
    quiz, permission = await QuizService(db).get_quiz(quiz_id, current_user.id)
    await db.commit()
    return _to_response(quiz, permission)


@router.get("/{quiz_id}/export")
async def export_quiz(
    quiz_id: UUID,
    export_format: str = Query("json", alias="format", description="text, gift, json or csv"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download a quiz in the requested format."""
    exported = await ExportService(db).export_quiz(quiz_id, current_user.id, export_format)
    return _download(exported)


@router.put("/{quiz_id}", response_model=QuizResponse)
async def update_quiz(
    quiz_id: UUID,
    body: QuizUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> QuizResponse:
    """
    Update a quiz. Editors may change content; only the owner may change
    ``is_public`` or ``folder_id``.
    """
    service = QuizService(db)
    owner_id = await _owner_of(db, quiz_id) or current_user.id
    async with lock.hold(owner_id):
        quiz = await service.update_quiz(quiz_id, current_user.id, body.model_dump(exclude_unset=True))
        permission = await service.permissions.permission_for(quiz, current_user.id)
        await db.commit()

    return _to_response(quiz, permission)


@router.post("/{quiz_id}/rename", response_model=QuizResponse)
async def rename_quiz(
    quiz_id: UUID,
    body: QuizRename,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> QuizResponse:
    service = QuizService(db)
    owner_id = await _owner_of(db, quiz_id) or current_user.id
    async with lock.hold(owner_id):
        quiz = await service.rename_quiz(quiz_id, current_user.id, body.title)
        permission = await service.permissions.permission_for(quiz, current_user.id)
        await db.commit()

    return _to_response(quiz, permission)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(
    quiz_id: UUID,
    permanent: bool = Query(False, description="Remove the quiz and its related records for good"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a quiz (owner only). Soft delete unless ``permanent=true``."""
    await QuizService(db).delete_quiz(quiz_id, current_user.id, permanent=permanent)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{quiz_id}/move", response_model=QuizResponse)
async def move_quiz(
    quiz_id: UUID,
    body: QuizMove,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> QuizResponse:
    async with lock.hold(current_user.id):
        quiz = await QuizService(db).move_quiz(quiz_id, body.folder_id, current_user.id)
        await db.commit()

    return _to_response(quiz, ROLE_OWNER)


@router.post("/{quiz_id}/duplicate", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
async def duplicate_quiz(
    quiz_id: UUID,
    body: QuizDuplicate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> QuizResponse:
    """Copy a readable quiz into the current user's library as a private draft."""
    folder_id = body.folder_id if "folder_id" in body.model_fields_set else _UNSET
    async with lock.hold(current_user.id):
        quiz = await QuizService(db).duplicate_quiz(
            quiz_id, current_user.id, new_title=body.title, folder_id=folder_id
        )
        await db.commit()

    return _to_response(quiz, ROLE_OWNER)


@router.post("/{quiz_id}/share", response_model=QuizShareResponse)
async def share_quiz(
    quiz_id: UUID,
    body: QuizShareRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> QuizShareResponse:
    """
    Share a quiz by email (owner or admin collaborator).

    Each address is handled on its own; unknown addresses get a pending
    account that is claimed when the person registers.
    """
    results, success_count, failure_count = await QuizService(db).share_quiz(
        quiz_id, current_user.id, body.emails, permission=body.permission, message=body.message
    )
    await db.commit()
    return QuizShareResponse(results=results, success_count=success_count, failure_count=failure_count)


@router.get("/{quiz_id}/collaborators", response_model=list[CollaboratorResponse])
async def list_collaborators(
    quiz_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[CollaboratorResponse]:
    return await QuizService(db).list_collaborators(quiz_id, current_user.id)


@router.delete("/{quiz_id}/collaborators/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_collaborator(
    quiz_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Revoke a collaborator's access (owner only)."""
    await QuizService(db).revoke_share(quiz_id, current_user.id, user_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
