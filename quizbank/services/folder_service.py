"""Folder hierarchy service.

Folders form a per-owner tree through ``parent_id``. Invariants enforced here:
- A parent is a live folder owned by the same owner
- No folder is its own ancestor
- Depth (hops to a root-level folder) never exceeds ``max_folder_depth``
- Sibling names are unique per (owner_id, parent_id) among live folders

Depth is never stored. Every walk over the parent chain or the subtree is
bounded by ``MAX_WALK`` so corrupted (cyclic) data cannot hang a request.

Ownership failures are reported as ``NotFoundError`` so folder existence is
not leaked to other users.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ..config import settings
from ..database import transaction, utcnow
from ..errors import BusinessLogicError, DataIntegrityError, NotFoundError, ValidationError
from ..models.folder import DEFAULT_FOLDER_COLOR, Folder
from ..models.quiz import Quiz
from ..repositories import Repository
from ..schemas.folder import BreadcrumbItem, FolderResponse, FolderTreeNode
from .activity_service import ActivityService

logger = logging.getLogger(__name__)

# Hard cap on hops for any walk over the folder graph
MAX_WALK = 10

MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000
COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


@dataclass
class FolderDeleteResult:
    """
    What a cascading folder delete touched.

    Quiz ids are tracked as sets because, when subfolders are deleted and
    quizzes are moved up, a quiz can bubble through several levels before it
    settles in the deleted folder's former parent.
    """

    folders_deleted: int = 0
    subfolders_moved: int = 0
    moved_quiz_ids: set[UUID] = field(default_factory=set)
    deleted_quiz_ids: set[UUID] = field(default_factory=set)

    @property
    def quizzes_moved(self) -> int:
        return len(self.moved_quiz_ids)

    @property
    def quizzes_deleted(self) -> int:
        return len(self.deleted_quiz_ids)

    def as_dict(self) -> dict:
        return {
            "folders_deleted": self.folders_deleted,
            "quizzes_moved": self.quizzes_moved,
            "quizzes_deleted": self.quizzes_deleted,
            "subfolders_moved": self.subfolders_moved,
        }


def _parent_condition(parent_id: Optional[UUID]):
    if parent_id is None:
        return Folder.parent_id.is_(None)
    return Folder.parent_id == parent_id


class FolderService:
    """
    Service class for folder tree operations.

    Args:
        db: SQLAlchemy async database session
        max_depth: Deepest allowed folder depth (root-level folders are depth 0)
    """

    def __init__(self, db: AsyncSession, max_depth: Optional[int] = None):
        self.db = db
        self.folders = Repository(db, Folder)
        self.quizzes = Repository(db, Quiz)
        self.activity = ActivityService(db)
        self.max_depth = max_depth if max_depth is not None else settings.max_folder_depth

    # =========================================================================
    # Validation helpers
    # =========================================================================

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Folder name is required", field="name")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Folder name must not exceed {MAX_NAME_LENGTH} characters", field="name")
        return name

    @staticmethod
    def _clean_description(description: str) -> str:
        description = description.strip()
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Folder description must not exceed {MAX_DESCRIPTION_LENGTH} characters",
                field="description",
            )
        return description

    @staticmethod
    def _clean_color(color: str) -> str:
        if not COLOR_PATTERN.match(color):
            raise ValidationError("Folder color must be a hex color such as #3B82F6", field="color")
        return color

    async def _check_duplicate_name(
        self,
        name: str,
        owner_id: UUID,
        parent_id: Optional[UUID],
        exclude_id: Optional[UUID] = None,
        message: str = "Folder name already exists in this location",
    ) -> None:
        conditions = [Folder.owner_id == owner_id, Folder.name == name, _parent_condition(parent_id)]
        if exclude_id is not None:
            conditions.append(Folder.id != exclude_id)
        if await self.folders.exists(*conditions):
            raise BusinessLogicError(message)

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_owned(self, folder_id: UUID, owner_id: UUID, resource: str = "Folder") -> Folder:
        """
        Fetch a live folder owned by ``owner_id``.

        Raises:
            NotFoundError: If the folder is missing, soft-deleted or owned by someone else
        """
        folder = await self.folders.first(Folder.id == folder_id, Folder.owner_id == owner_id)
        if folder is None:
            raise NotFoundError(resource)
        return folder

    async def can_access_folder(self, folder_id: UUID, caller_id: UUID) -> bool:
        """Folders have no sharing model: only the owner can access a live folder."""
        return await self.folders.exists(Folder.id == folder_id, Folder.owner_id == caller_id)

    async def _live_parent_id(self, folder_id: UUID) -> Optional[UUID]:
        parent = aliased(Folder)
        result = await self.folders.execute(
            select(parent.id)
            .join_from(Folder, parent, Folder.parent_id == parent.id)
            .where(Folder.id == folder_id, parent.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def depth(self, folder_id: UUID) -> int:
        """
        Number of hops from the folder to a root-level folder.

        The walk stops after ``MAX_WALK`` hops; on corrupted (cyclic) data
        the capped value is returned instead of raising.
        """
        hops = 0
        current = folder_id
        while hops < MAX_WALK:
            parent_id = await self._live_parent_id(current)
            if parent_id is None:
                return hops
            hops += 1
            current = parent_id
        logger.warning(f"Folder depth walk hit the cap: folder={folder_id}")
        return hops

    async def max_subtree_depth(self, folder_id: UUID) -> int:
        """Levels of live descendants below the folder (0 for a leaf), capped at ``MAX_WALK``."""
        seen = {folder_id}
        level = [folder_id]
        levels = 0
        while levels < MAX_WALK:
            child_ids = await self.folders.ids(Folder.parent_id.in_(level))
            level = [child_id for child_id in child_ids if child_id not in seen]
            if not level:
                return levels
            seen.update(level)
            levels += 1
        logger.warning(f"Folder subtree walk hit the cap: folder={folder_id}")
        return levels

    async def is_descendant_of(self, candidate_id: UUID, ancestor_id: UUID) -> bool:
        """
        True if ``candidate_id`` is ``ancestor_id`` or lies below it.

        Walks up from the candidate tracking visited ids, so a cycle in the
        stored data ends the walk instead of looping.
        """
        visited: set[UUID] = set()
        current: Optional[UUID] = candidate_id
        while current is not None and len(visited) < MAX_WALK:
            if current == ancestor_id:
                return True
            if current in visited:
                return False
            visited.add(current)
            current = await self._live_parent_id(current)
        return False

    async def get_path(self, folder_id: UUID, owner_id: Optional[UUID] = None) -> list[BreadcrumbItem]:
        """
        Breadcrumb from the root-level ancestor down to the folder.

        Raises:
            NotFoundError: If the folder is missing (or not owned, when owner_id is given)
            DataIntegrityError: If the parent chain loops or exceeds ``MAX_WALK``
                hops; the bounded partial path is attached as ``partial``
        """
        conditions = [Folder.id == folder_id]
        if owner_id is not None:
            conditions.append(Folder.owner_id == owner_id)
        folder = await self.folders.first(*conditions)
        if folder is None:
            raise NotFoundError("Folder")

        path: list[BreadcrumbItem] = []
        visited: set[UUID] = set()
        while folder is not None:
            if folder.id in visited:
                logger.error(f"Folder parent cycle detected: start={folder_id}, at={folder.id}")
                raise DataIntegrityError("Folder hierarchy contains a cycle", partial=path)
            if len(path) >= MAX_WALK:
                logger.error(f"Folder path walk hit the cap: start={folder_id}")
                raise DataIntegrityError("Folder hierarchy is deeper than allowed", partial=path)
            visited.add(folder.id)
            path.insert(0, BreadcrumbItem(id=folder.id, name=folder.name))
            if folder.parent_id is None:
                break
            folder = await self.folders.get(folder.parent_id)
        return path

    async def _counts(self, folder_ids: list[UUID]) -> tuple[dict[UUID, int], dict[UUID, int]]:
        """Live quiz counts and live direct subfolder counts per folder."""
        if not folder_ids:
            return {}, {}

        quiz_rows = await self.quizzes.execute(
            select(Quiz.folder_id, func.count(Quiz.id))
            .where(Quiz.folder_id.in_(folder_ids), Quiz.live())
            .group_by(Quiz.folder_id)
        )
        child = aliased(Folder)
        folder_rows = await self.folders.execute(
            select(child.parent_id, func.count(child.id))
            .where(child.parent_id.in_(folder_ids), child.deleted_at.is_(None))
            .group_by(child.parent_id)
        )
        return dict(quiz_rows.all()), dict(folder_rows.all())

    async def _with_counts(self, folders: list[Folder]) -> list[FolderResponse]:
        quiz_counts, subfolder_counts = await self._counts([f.id for f in folders])
        responses = []
        for folder in folders:
            response = FolderResponse.model_validate(folder)
            response.quiz_count = quiz_counts.get(folder.id, 0)
            response.subfolder_count = subfolder_counts.get(folder.id, 0)
            responses.append(response)
        return responses

    async def get_folder(self, folder_id: UUID, owner_id: UUID) -> FolderResponse:
        folder = await self.get_owned(folder_id, owner_id)
        return (await self._with_counts([folder]))[0]

    async def list_children(self, owner_id: UUID, parent_id: Optional[UUID] = None) -> list[FolderResponse]:
        """One level of the tree, ordered by name, with counts."""
        if parent_id is not None:
            await self.get_owned(parent_id, owner_id)
        folders = await self.folders.find(
            Folder.owner_id == owner_id,
            _parent_condition(parent_id),
            order_by=[Folder.name.asc()],
        )
        return await self._with_counts(folders)

    async def search(self, owner_id: UUID, term: str, limit: int = 50, offset: int = 0) -> list[FolderResponse]:
        """Folders whose name or description contains ``term`` (case-insensitive)."""
        term = term.strip()
        folders = await self.folders.find(
            Folder.owner_id == owner_id,
            or_(Folder.name.icontains(term, autoescape=True), Folder.description.icontains(term, autoescape=True)),
            order_by=[Folder.name.asc()],
            limit=limit,
            offset=offset,
        )
        return await self._with_counts(folders)

    async def get_tree(self, owner_id: UUID, root_id: Optional[UUID] = None) -> list[FolderTreeNode]:
        """
        Nested folder tree below ``root_id`` (or from the root level).

        Built level by level: one folder query and one aggregate query per
        level, at most ``MAX_WALK`` levels.
        """
        if root_id is not None:
            await self.get_owned(root_id, owner_id)

        top: list[FolderTreeNode] = []
        nodes: dict[UUID, FolderTreeNode] = {}
        level = await self.folders.find(
            Folder.owner_id == owner_id,
            _parent_condition(root_id),
            order_by=[Folder.name.asc()],
        )
        levels = 0
        while level and levels < MAX_WALK:
            quiz_counts, subfolder_counts = await self._counts([f.id for f in level])
            for folder in level:
                node = FolderTreeNode.model_validate(folder)
                node.quiz_count = quiz_counts.get(folder.id, 0)
                node.subfolder_count = subfolder_counts.get(folder.id, 0)
                nodes[folder.id] = node
                if folder.parent_id in nodes:
                    nodes[folder.parent_id].children.append(node)
                else:
                    top.append(node)

            parent_ids = [f.id for f in level]
            level = [
                f
                for f in await self.folders.find(
                    Folder.owner_id == owner_id,
                    Folder.parent_id.in_(parent_ids),
                    order_by=[Folder.name.asc()],
                )
                if f.id not in nodes
            ]
            levels += 1
        return top

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(
        self,
        owner_id: UUID,
        name: str,
        parent_id: Optional[UUID] = None,
        color: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Folder:
        """
        Create a folder at the root level or under ``parent_id``.

        Raises:
            ValidationError: Empty or too long name, bad description or color
            NotFoundError: Parent missing or not owned by ``owner_id``
            BusinessLogicError: Duplicate sibling name or depth exceeded
        """
        name = self._clean_name(name)
        description = self._clean_description(description) if description is not None else ""
        color = self._clean_color(color) if color else DEFAULT_FOLDER_COLOR

        async with transaction(self.db):
            if parent_id is not None:
                await self.get_owned(parent_id, owner_id, resource="Parent folder")

            await self._check_duplicate_name(name, owner_id, parent_id)

            if parent_id is not None and await self.depth(parent_id) + 1 > self.max_depth:
                raise BusinessLogicError("Maximum folder depth exceeded")

            folder = await self.folders.insert(
                owner_id=owner_id,
                parent_id=parent_id,
                name=name,
                description=description,
                color=color,
            )
            await self.activity.record(
                owner_id, "folder_created", {"name": name, "parent_id": str(parent_id) if parent_id else None},
                entity_type="folder", entity_id=folder.id,
            )

        logger.info(f"Folder created: id={folder.id}, owner={owner_id}, parent={parent_id}")
        return folder

    async def update(
        self,
        folder_id: UUID,
        owner_id: UUID,
        name: Optional[str] = None,
        color: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Folder:
        """
        Rename, recolor or re-describe a folder. Only the given fields change.

        Raises:
            NotFoundError: Folder missing or not owned
            ValidationError: No field given, or a field is invalid
            BusinessLogicError: A sibling already has the new name
        """
        async with transaction(self.db):
            folder = await self.get_owned(folder_id, owner_id)

            updates = {}
            if name is not None:
                updates["name"] = self._clean_name(name)
            if description is not None:
                updates["description"] = self._clean_description(description)
            if color is not None:
                updates["color"] = self._clean_color(color)
            if not updates:
                raise ValidationError("No valid fields to update")

            if "name" in updates and updates["name"] != folder.name:
                await self._check_duplicate_name(updates["name"], owner_id, folder.parent_id, exclude_id=folder.id)

            await self.folders.update(folder, **updates)
            await self.activity.record(
                owner_id, "folder_updated", {"fields": sorted(updates)},
                entity_type="folder", entity_id=folder.id,
            )

        logger.info(f"Folder updated: id={folder_id}, fields={sorted(updates)}")
        return folder

    async def rename(self, folder_id: UUID, owner_id: UUID, new_name: str) -> Folder:
        return await self.update(folder_id, owner_id, name=new_name if new_name is not None else "")

    async def move(self, folder_id: UUID, new_parent_id: Optional[UUID], owner_id: UUID) -> Folder:
        """
        Re-parent a folder. Only its ``parent_id`` changes; the subtree follows.

        Raises:
            NotFoundError: Folder or new parent missing or not owned
            BusinessLogicError: Cyclic move, depth exceeded or duplicate name
        """
        async with transaction(self.db):
            folder = await self.get_owned(folder_id, owner_id)

            new_depth = 0
            if new_parent_id is not None:
                await self.get_owned(new_parent_id, owner_id, resource="Parent folder")
                if await self.is_descendant_of(new_parent_id, folder_id):
                    raise BusinessLogicError("Cannot move folder into itself or its descendants")
                new_depth = await self.depth(new_parent_id) + 1

            if new_depth + await self.max_subtree_depth(folder_id) > self.max_depth:
                raise BusinessLogicError("Move operation would exceed maximum folder depth")

            await self._check_duplicate_name(
                folder.name, owner_id, new_parent_id, exclude_id=folder.id,
                message="Folder name already exists in destination location",
            )

            old_parent_id = folder.parent_id
            await self.folders.update(folder, parent_id=new_parent_id)
            await self.activity.record(
                owner_id, "folder_moved",
                {
                    "from_parent_id": str(old_parent_id) if old_parent_id else None,
                    "to_parent_id": str(new_parent_id) if new_parent_id else None,
                },
                entity_type="folder", entity_id=folder.id,
            )

        logger.info(f"Folder moved: id={folder_id}, from={old_parent_id}, to={new_parent_id}")
        return folder

    async def delete(
        self,
        folder_id: UUID,
        owner_id: UUID,
        move_quizzes_to_parent: bool = True,
        move_subfolders_to_parent: bool = True,
    ) -> FolderDeleteResult:
        """
        Soft-delete a folder, applying the cascade policy at every level.

        Quizzes directly in a deleted folder are moved to that folder's parent
        or soft-deleted. Subfolders are moved to the parent or deleted
        recursively with the same policy. Children are handled before the
        folder itself is marked deleted, so nothing is left pointing at it.
        All of it happens in one transaction.

        Raises:
            NotFoundError: Folder missing, already deleted or not owned
            BusinessLogicError: A subfolder moving up would collide with a
                sibling name at the destination
        """
        async with transaction(self.db):
            folder = await self.get_owned(folder_id, owner_id)

            if move_subfolders_to_parent:
                await self._check_reparent_names(folder)

            result = FolderDeleteResult()
            await self._delete_subtree(
                folder, move_quizzes_to_parent, move_subfolders_to_parent, result, visited=set()
            )
            await self.activity.record(
                owner_id, "folder_deleted",
                {
                    "name": folder.name,
                    "move_quizzes_to_parent": move_quizzes_to_parent,
                    "move_subfolders_to_parent": move_subfolders_to_parent,
                    **result.as_dict(),
                },
                entity_type="folder", entity_id=folder.id,
            )

        logger.info(f"Folder deleted: id={folder_id}, owner={owner_id}, result={result.as_dict()}")
        return result

    async def _check_reparent_names(self, folder: Folder) -> None:
        children = await self.folders.find(Folder.parent_id == folder.id)
        for child in children:
            await self._check_duplicate_name(
                child.name, folder.owner_id, folder.parent_id, exclude_id=folder.id,
                message=f"Cannot move subfolder '{child.name}' up: name already exists in the parent folder",
            )

    async def _delete_subtree(
        self,
        folder: Folder,
        move_quizzes: bool,
        move_subfolders: bool,
        result: FolderDeleteResult,
        visited: set[UUID],
    ) -> None:
        visited.add(folder.id)
        now = utcnow()

        if move_subfolders:
            result.subfolders_moved += await self.folders.update_where(
                [Folder.parent_id == folder.id],
                {"parent_id": folder.parent_id, "updated_at": now},
            )
        else:
            for child in await self.folders.find(Folder.parent_id == folder.id):
                if child.id in visited:
                    raise DataIntegrityError("Folder hierarchy contains a cycle", partial=[child.id])
                await self._delete_subtree(child, move_quizzes, move_subfolders, result, visited)

        quiz_ids = await self.quizzes.ids(Quiz.folder_id == folder.id)
        if quiz_ids:
            if move_quizzes:
                await self.quizzes.update_where(
                    [Quiz.id.in_(quiz_ids)], {"folder_id": folder.parent_id, "updated_at": now}
                )
                result.moved_quiz_ids.update(quiz_ids)
            else:
                await self.quizzes.update_where(
                    [Quiz.id.in_(quiz_ids)], {"deleted_at": now, "updated_at": now}
                )
                result.deleted_quiz_ids.update(quiz_ids)

        await self.folders.soft_delete(folder)
        result.folders_deleted += 1
