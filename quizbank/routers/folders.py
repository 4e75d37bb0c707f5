"""Folder CRUD and tree API endpoints.

Folders are private to their owner: every endpoint is scoped to the current
user and reports other users' folders as not found. Mutations hold the
owner lock across the service call and the commit so concurrent requests
cannot both pass the tree checks against stale state.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.folder import (
    BreadcrumbItem,
    FolderCreate,
    FolderDeleteResponse,
    FolderMove,
    FolderResponse,
    FolderTreeNode,
    FolderUpdate,
)
from ..services.auth_service import get_current_user
from ..services.folder_service import FolderService
from ..services.owner_lock_service import OwnerLockService, get_owner_lock_service

router = APIRouter(
    prefix="/folders",
    tags=["folders"],
)


@router.get("", response_model=list[FolderResponse])
async def list_folders(
    parent_id: Optional[UUID] = Query(None, description="List children of this folder (default: root level)"),
    search: Optional[str] = Query(None, max_length=255, description="Search folder names and descriptions"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[FolderResponse]:
    """
    List one level of the current user's folders, or search all of them.

    Each folder carries its live quiz count and direct subfolder count.
    """
    service = FolderService(db)
    if search:
        return await service.search(current_user.id, search, limit=limit, offset=offset)
    return await service.list_children(current_user.id, parent_id)


@router.get("/tree", response_model=list[FolderTreeNode])
async def get_folder_tree(
    root_id: Optional[UUID] = Query(None, description="Return the subtree below this folder"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[FolderTreeNode]:
    """Get the nested folder tree in a single call."""
    return await FolderService(db).get_tree(current_user.id, root_id)


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    body: FolderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> FolderResponse:
    """
    Create a folder at the root level or under ``parent_id``.

    Fails with 409 on a duplicate sibling name or when the folder would be
    deeper than the maximum depth.
    """
    async with lock.hold(current_user.id):
        folder = await FolderService(db).create(
            current_user.id,
            body.name,
            parent_id=body.parent_id,
            color=body.color,
            description=body.description,
        )
        await db.commit()

    return FolderResponse.model_validate(folder)


@router.get("/{folder_id}", response_model=FolderResponse)
async def get_folder(
    folder_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FolderResponse:
    return await FolderService(db).get_folder(folder_id, current_user.id)


@router.get("/{folder_id}/path", response_model=list[BreadcrumbItem])
async def get_folder_path(
    folder_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[BreadcrumbItem]:
    """Breadcrumb from the root level down to the folder."""
    return await FolderService(db).get_path(folder_id, owner_id=current_user.id)


@router.put("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: UUID,
    body: FolderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> FolderResponse:
    """Rename, recolor or re-describe a folder."""
    async with lock.hold(current_user.id):
        folder = await FolderService(db).update(
            folder_id,
            current_user.id,
            name=body.name,
            color=body.color,
            description=body.description,
        )
        await db.commit()

    return FolderResponse.model_validate(folder)


@router.post("/{folder_id}/move", response_model=FolderResponse)
async def move_folder(
    folder_id: UUID,
    body: FolderMove,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> FolderResponse:
    """
    Move a folder under a new parent (or to the root level).

    Rejected with 409 when the target is the folder itself or one of its
    descendants, when the subtree would exceed the maximum depth, or when
    the destination already has a folder with the same name.
    """
    async with lock.hold(current_user.id):
        folder = await FolderService(db).move(folder_id, body.parent_id, current_user.id)
        await db.commit()

    return FolderResponse.model_validate(folder)


@router.delete("/{folder_id}", response_model=FolderDeleteResponse)
async def delete_folder(
    folder_id: UUID,
    move_quizzes_to_parent: bool = Query(True, description="Move quizzes up instead of deleting them"),
    move_subfolders_to_parent: bool = Query(True, description="Move subfolders up instead of deleting them"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    lock: OwnerLockService = Depends(get_owner_lock_service),
) -> FolderDeleteResponse:
    """
    Delete a folder.

    The cascade policy is applied at every level: quizzes and subfolders are
    either moved to the deleted folder's parent or deleted along with it.
    """
    async with lock.hold(current_user.id):
        result = await FolderService(db).delete(
            folder_id,
            current_user.id,
            move_quizzes_to_parent=move_quizzes_to_parent,
            move_subfolders_to_parent=move_subfolders_to_parent,
        )
        # Commit before responding so the client's re-fetch sees the delete
        await db.commit()

    return FolderDeleteResponse(**result.as_dict())
