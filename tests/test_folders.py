"""Unit tests for the folder hierarchy service.

A failed service call rolls back the session, which expires every loaded
object, so tests keep plain ids and re-read rows through ``_reload``.
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quizbank.errors import BusinessLogicError, DataIntegrityError, NotFoundError, ValidationError
from quizbank.models import ActivityLog, Folder, Quiz, User
from quizbank.services.folder_service import MAX_WALK, FolderService
from quizbank.services.quiz_service import QuizService


async def _reload(db: AsyncSession, model, id):
    return await db.get(model, id, populate_existing=True)


async def _chain(service: FolderService, owner_id, names: list[str], parent_id=None) -> list:
    """Create nested folders, returning their ids from top to bottom."""
    ids = []
    for name in names:
        folder = await service.create(owner_id, name, parent_id=parent_id)
        parent_id = folder.id
        ids.append(folder.id)
    return ids


async def _live_folder_count(db: AsyncSession, owner_id, name: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Folder).where(
            Folder.owner_id == owner_id, Folder.name == name, Folder.deleted_at.is_(None)
        )
    )
    return result.scalar_one()


@pytest.mark.asyncio
class TestCreateFolder:
    """Tests for folder creation."""

    async def test_create_root_folder(self, db_session: AsyncSession, test_user: User):
        folder = await FolderService(db_session).create(test_user.id, "  Midterms  ", description=" Term 1 ")

        assert folder.name == "Midterms"
        assert folder.parent_id is None
        assert folder.description == "Term 1"
        assert folder.color == "#3B82F6"

    async def test_create_logs_activity(self, db_session: AsyncSession, test_user: User):
        folder = await FolderService(db_session).create(test_user.id, "Midterms")

        result = await db_session.execute(
            select(ActivityLog).where(ActivityLog.entity_id == folder.id)
        )
        entries = result.scalars().all()
        assert [e.action for e in entries] == ["folder_created"]

    async def test_depth_limit_allows_six_levels_and_rejects_the_next(
        self, db_session: AsyncSession, test_user: User
    ):
        """Midterms > Unit 1 > four more levels reaches depth 5; one more level fails."""
        owner_id = test_user.id
        service = FolderService(db_session)
        ids = await _chain(service, owner_id, ["Midterms", "Unit 1", "Week 1", "Day 1", "Part 1", "Section 1"])
        deepest_id = ids[-1]

        assert await service.depth(ids[0]) == 0
        assert await service.depth(deepest_id) == 5

        with pytest.raises(BusinessLogicError, match="Maximum folder depth exceeded"):
            await service.create(owner_id, "Too deep", parent_id=deepest_id)

        assert await _live_folder_count(db_session, owner_id, "Too deep") == 0

    async def test_duplicate_sibling_name_rejected(self, db_session: AsyncSession, test_user: User):
        owner_id = test_user.id
        service = FolderService(db_session)
        parent = await service.create(owner_id, "Semester")
        parent_id = parent.id
        first = await service.create(owner_id, "Quiz Bank", parent_id=parent_id)
        first_id = first.id

        with pytest.raises(BusinessLogicError, match="already exists"):
            await service.create(owner_id, " Quiz Bank ", parent_id=parent_id)

        first = await _reload(db_session, Folder, first_id)
        assert first.name == "Quiz Bank"
        assert first.deleted_at is None
        assert await _live_folder_count(db_session, owner_id, "Quiz Bank") == 1

    async def test_same_name_allowed_under_different_parents(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        a = await service.create(test_user.id, "A")
        b = await service.create(test_user.id, "B")

        await service.create(test_user.id, "Quiz Bank", parent_id=a.id)
        await service.create(test_user.id, "Quiz Bank", parent_id=b.id)

        assert await _live_folder_count(db_session, test_user.id, "Quiz Bank") == 2

    async def test_names_are_case_sensitive(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        await service.create(test_user.id, "Quiz Bank")
        await service.create(test_user.id, "quiz bank")

    async def test_name_of_deleted_folder_can_be_reused(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        folder = await service.create(test_user.id, "Archive")
        await service.delete(folder.id, test_user.id)

        again = await service.create(test_user.id, "Archive")
        assert again.id != folder.id

    async def test_empty_name_rejected(self, db_session: AsyncSession, test_user: User):
        with pytest.raises(ValidationError, match="name is required"):
            await FolderService(db_session).create(test_user.id, "   ")

    async def test_invalid_color_rejected(self, db_session: AsyncSession, test_user: User):
        with pytest.raises(ValidationError) as exc_info:
            await FolderService(db_session).create(test_user.id, "Colors", color="blue")
        assert exc_info.value.field == "color"

    async def test_parent_owned_by_another_user_is_not_found(
        self, db_session: AsyncSession, test_user: User, test_user_2: User
    ):
        owner_id, other_id = test_user.id, test_user_2.id
        service = FolderService(db_session)
        foreign = await service.create(other_id, "Private")
        foreign_id = foreign.id

        with pytest.raises(NotFoundError, match="Parent folder not found"):
            await service.create(owner_id, "Sneaky", parent_id=foreign_id)


@pytest.mark.asyncio
class TestUpdateFolder:
    """Tests for rename and update."""

    async def test_rename(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        folder = await service.create(test_user.id, "Old")

        renamed = await service.rename(folder.id, test_user.id, " New ")

        assert renamed.name == "New"

    async def test_rename_to_own_name_is_allowed(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        folder = await service.create(test_user.id, "Same")

        renamed = await service.update(folder.id, test_user.id, name="Same", color="#fff")

        assert renamed.color == "#fff"

    async def test_rename_into_collision_rejected(self, db_session: AsyncSession, test_user: User):
        owner_id = test_user.id
        service = FolderService(db_session)
        await service.create(owner_id, "Taken")
        other = await service.create(owner_id, "Other")
        other_id = other.id

        with pytest.raises(BusinessLogicError):
            await service.rename(other_id, owner_id, "Taken")

        other = await _reload(db_session, Folder, other_id)
        assert other.name == "Other"

    async def test_update_without_fields_rejected(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        folder = await service.create(test_user.id, "Nothing")

        with pytest.raises(ValidationError, match="No valid fields to update"):
            await service.update(folder.id, test_user.id)

    async def test_update_other_users_folder_is_not_found(
        self, db_session: AsyncSession, test_user: User, test_user_2: User
    ):
        owner_id, other_id = test_user.id, test_user_2.id
        folder = await FolderService(db_session).create(owner_id, "Mine")
        folder_id = folder.id

        with pytest.raises(NotFoundError):
            await FolderService(db_session).rename(folder_id, other_id, "Theirs")


@pytest.mark.asyncio
class TestMoveFolder:
    """Tests for re-parenting folders."""

    async def test_move_under_new_parent(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        a = await service.create(test_user.id, "A")
        b = await service.create(test_user.id, "B")

        moved = await service.move(b.id, a.id, test_user.id)

        assert moved.parent_id == a.id
        assert await service.depth(b.id) == 1

    async def test_move_to_root(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        a, b = await _chain(service, test_user.id, ["A", "B"])

        moved = await service.move(b, None, test_user.id)

        assert moved.parent_id is None

    async def test_move_under_own_grandchild_rejected(self, db_session: AsyncSession, test_user: User):
        owner_id = test_user.id
        service = FolderService(db_session)
        a, b, c = await _chain(service, owner_id, ["A", "B", "C"])

        with pytest.raises(BusinessLogicError, match="itself or its descendants"):
            await service.move(a, c, owner_id)

        assert (await _reload(db_session, Folder, a)).parent_id is None
        assert (await _reload(db_session, Folder, c)).parent_id == b

    async def test_move_into_itself_rejected(self, db_session: AsyncSession, test_user: User):
        owner_id = test_user.id
        service = FolderService(db_session)
        folder = await service.create(owner_id, "Self")
        folder_id = folder.id

        with pytest.raises(BusinessLogicError):
            await service.move(folder_id, folder_id, owner_id)

        assert (await _reload(db_session, Folder, folder_id)).parent_id is None

    async def test_move_exceeding_depth_rejected(self, db_session: AsyncSession, test_user: User):
        """A subtree two levels deep cannot land below a folder at depth 3."""
        owner_id = test_user.id
        service = FolderService(db_session)
        target_chain = await _chain(service, owner_id, ["T0", "T1", "T2", "T3"])
        subtree = await _chain(service, owner_id, ["X", "Y", "Z"])

        assert await service.max_subtree_depth(subtree[0]) == 2

        with pytest.raises(BusinessLogicError, match="exceed maximum folder depth"):
            await service.move(subtree[0], target_chain[-1], owner_id)

        assert (await _reload(db_session, Folder, subtree[0])).parent_id is None

    async def test_move_up_to_depth_limit_allowed(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        target_chain = await _chain(service, test_user.id, ["T0", "T1", "T2"])
        subtree = await _chain(service, test_user.id, ["X", "Y"])

        await service.move(subtree[0], target_chain[-1], test_user.id)

        assert await service.depth(subtree[-1]) == 4

    async def test_move_into_name_collision_rejected(self, db_session: AsyncSession, test_user: User):
        owner_id = test_user.id
        service = FolderService(db_session)
        a = await service.create(owner_id, "A")
        a_id = a.id
        await service.create(owner_id, "Notes", parent_id=a_id)
        notes = await service.create(owner_id, "Notes")
        notes_id = notes.id

        with pytest.raises(BusinessLogicError, match="destination"):
            await service.move(notes_id, a_id, owner_id)

        assert (await _reload(db_session, Folder, notes_id)).parent_id is None


@pytest.mark.asyncio
class TestDeleteFolder:
    """Tests for cascading delete under both policies."""

    async def _setup(self, db_session: AsyncSession, owner_id):
        """P > F > S with quiz Q1 in F and quiz Q2 in S."""
        folders = FolderService(db_session)
        quizzes = QuizService(db_session)
        p, f, s = await _chain(folders, owner_id, ["P", "F", "S"])
        q1 = await quizzes.create_quiz(owner_id, {"title": "Quiz One", "folder_id": f})
        q2 = await quizzes.create_quiz(owner_id, {"title": "Quiz Two", "folder_id": s})
        return p, f, s, q1.id, q2.id

    async def test_move_quizzes_and_subfolders_to_parent(self, db_session: AsyncSession, test_user: User):
        p, f, s, q1, q2 = await self._setup(db_session, test_user.id)

        result = await FolderService(db_session).delete(f, test_user.id)

        assert result.as_dict() == {
            "folders_deleted": 1,
            "quizzes_moved": 1,
            "quizzes_deleted": 0,
            "subfolders_moved": 1,
        }
        assert (await _reload(db_session, Folder, f)).deleted_at is not None
        assert (await _reload(db_session, Folder, s)).parent_id == p
        assert (await _reload(db_session, Quiz, q1)).folder_id == p
        assert (await _reload(db_session, Quiz, q2)).folder_id == s

    async def test_delete_everything(self, db_session: AsyncSession, test_user: User):
        p, f, s, q1, q2 = await self._setup(db_session, test_user.id)

        result = await FolderService(db_session).delete(
            f, test_user.id, move_quizzes_to_parent=False, move_subfolders_to_parent=False
        )

        assert result.folders_deleted == 2
        assert result.quizzes_deleted == 2
        assert result.quizzes_moved == 0
        for folder_id in (f, s):
            assert (await _reload(db_session, Folder, folder_id)).deleted_at is not None
        for quiz_id in (q1, q2):
            assert (await _reload(db_session, Quiz, quiz_id)).deleted_at is not None
        assert (await _reload(db_session, Folder, p)).deleted_at is None

    async def test_delete_subfolders_but_keep_quizzes(self, db_session: AsyncSession, test_user: User):
        """Quizzes of deleted subfolders bubble up until they reach a live folder."""
        p, f, s, q1, q2 = await self._setup(db_session, test_user.id)

        result = await FolderService(db_session).delete(
            f, test_user.id, move_quizzes_to_parent=True, move_subfolders_to_parent=False
        )

        assert result.folders_deleted == 2
        assert result.quizzes_moved == 2
        for quiz_id in (q1, q2):
            quiz = await _reload(db_session, Quiz, quiz_id)
            assert quiz.folder_id == p
            assert quiz.deleted_at is None

    async def test_move_subfolders_but_delete_quizzes(self, db_session: AsyncSession, test_user: User):
        p, f, s, q1, q2 = await self._setup(db_session, test_user.id)

        result = await FolderService(db_session).delete(
            f, test_user.id, move_quizzes_to_parent=False, move_subfolders_to_parent=True
        )

        assert result.subfolders_moved == 1
        assert result.quizzes_deleted == 1
        assert (await _reload(db_session, Quiz, q1)).deleted_at is not None
        q2_row = await _reload(db_session, Quiz, q2)
        assert q2_row.deleted_at is None
        assert q2_row.folder_id == s

    async def test_nothing_points_at_deleted_folder(self, db_session: AsyncSession, test_user: User):
        p, f, s, q1, q2 = await self._setup(db_session, test_user.id)

        await FolderService(db_session).delete(f, test_user.id)

        live_children = await db_session.execute(
            select(func.count()).select_from(Folder).where(Folder.parent_id == f, Folder.deleted_at.is_(None))
        )
        live_quizzes = await db_session.execute(
            select(func.count()).select_from(Quiz).where(Quiz.folder_id == f, Quiz.deleted_at.is_(None))
        )
        assert live_children.scalar_one() == 0
        assert live_quizzes.scalar_one() == 0

    async def test_root_folder_quizzes_move_to_top_level(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        root = await service.create(test_user.id, "Root")
        quiz = await QuizService(db_session).create_quiz(test_user.id, {"title": "Loose", "folder_id": root.id})

        await service.delete(root.id, test_user.id)

        assert (await _reload(db_session, Quiz, quiz.id)).folder_id is None

    async def test_reparent_name_collision_aborts_delete(self, db_session: AsyncSession, test_user: User):
        owner_id = test_user.id
        service = FolderService(db_session)
        p = await service.create(owner_id, "P")
        p_id = p.id
        await service.create(owner_id, "Shared", parent_id=p_id)
        f = await service.create(owner_id, "F", parent_id=p_id)
        f_id = f.id
        await service.create(owner_id, "Shared", parent_id=f_id)

        with pytest.raises(BusinessLogicError, match="Shared"):
            await service.delete(f_id, owner_id)

        assert (await _reload(db_session, Folder, f_id)).deleted_at is None

    async def test_second_delete_is_not_found_and_logs_once(self, db_session: AsyncSession, test_user: User):
        owner_id = test_user.id
        service = FolderService(db_session)
        folder = await service.create(owner_id, "Once")
        folder_id = folder.id
        await service.delete(folder_id, owner_id)

        with pytest.raises(NotFoundError):
            await service.delete(folder_id, owner_id)

        result = await db_session.execute(
            select(func.count()).select_from(ActivityLog).where(
                ActivityLog.entity_id == folder_id, ActivityLog.action == "folder_deleted"
            )
        )
        assert result.scalar_one() == 1

    async def test_delete_other_users_folder_is_not_found(
        self, db_session: AsyncSession, test_user: User, test_user_2: User
    ):
        owner_id, other_id = test_user.id, test_user_2.id
        folder = await FolderService(db_session).create(owner_id, "Mine")
        folder_id = folder.id

        with pytest.raises(NotFoundError):
            await FolderService(db_session).delete(folder_id, other_id)

        assert (await _reload(db_session, Folder, folder_id)).deleted_at is None


@pytest.mark.asyncio
class TestFolderReads:
    """Tests for path, tree, listing and search."""

    async def test_get_path(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        ids = await _chain(service, test_user.id, ["Midterms", "Unit 1", "Week 2"])

        path = await service.get_path(ids[-1], owner_id=test_user.id)

        assert [item.name for item in path] == ["Midterms", "Unit 1", "Week 2"]
        assert [item.id for item in path] == ids

    async def test_get_path_terminates_on_cycle(self, db_session: AsyncSession, test_user: User):
        owner_id = test_user.id
        service = FolderService(db_session)
        a, b = await _chain(service, owner_id, ["A", "B"])
        # Corrupt the data: A's parent becomes its own child
        await db_session.execute(update(Folder).where(Folder.id == a).values(parent_id=b))
        await db_session.commit()

        with pytest.raises(DataIntegrityError) as exc_info:
            await service.get_path(b)

        partial = exc_info.value.partial
        assert 0 < len(partial) <= MAX_WALK
        assert {item.id for item in partial} == {a, b}

    async def test_walks_are_bounded_on_cycle(self, db_session: AsyncSession, test_user: User):
        service = FolderService(db_session)
        a, b = await _chain(service, test_user.id, ["A", "B"])
        await db_session.execute(update(Folder).where(Folder.id == a).values(parent_id=b))
        await db_session.commit()

        assert await service.depth(a) == MAX_WALK
        assert await service.is_descendant_of(a, uuid4()) is False
        assert await service.max_subtree_depth(a) <= MAX_WALK

    async def test_get_path_of_missing_folder(self, db_session: AsyncSession, test_user: User):
        with pytest.raises(NotFoundError):
            await FolderService(db_session).get_path(uuid4(), owner_id=test_user.id)

    async def test_get_tree_with_counts(self, db_session: AsyncSession, test_user: User):
        folders = FolderService(db_session)
        root, child = await _chain(folders, test_user.id, ["Root", "Child"])
        await folders.create(test_user.id, "Another Root")
        await QuizService(db_session).create_quiz(test_user.id, {"title": "In Root", "folder_id": root})

        tree = await folders.get_tree(test_user.id)

        assert [node.name for node in tree] == ["Another Root", "Root"]
        root_node = tree[1]
        assert root_node.quiz_count == 1
        assert root_node.subfolder_count == 1
        assert [node.id for node in root_node.children] == [child]
        assert root_node.children[0].children == []

    async def test_get_subtree(self, db_session: AsyncSession, test_user: User):
        folders = FolderService(db_session)
        root, child, grandchild = await _chain(folders, test_user.id, ["Root", "Child", "Grandchild"])

        tree = await folders.get_tree(test_user.id, root_id=root)

        assert [node.id for node in tree] == [child]
        assert [node.id for node in tree[0].children] == [grandchild]

    async def test_list_children_excludes_deleted(self, db_session: AsyncSession, test_user: User):
        folders = FolderService(db_session)
        keep = await folders.create(test_user.id, "Keep")
        gone = await folders.create(test_user.id, "Gone")
        await folders.delete(gone.id, test_user.id)

        listed = await folders.list_children(test_user.id)

        assert [f.id for f in listed] == [keep.id]

    async def test_search_matches_name_and_description(self, db_session: AsyncSession, test_user: User):
        folders = FolderService(db_session)
        await folders.create(test_user.id, "Algebra")
        await folders.create(test_user.id, "Misc", description="old algebra quizzes")
        await folders.create(test_user.id, "History")

        found = await folders.search(test_user.id, "ALGEBRA")

        assert sorted(f.name for f in found) == ["Algebra", "Misc"]

    async def test_search_treats_wildcards_literally(self, db_session: AsyncSession, test_user: User):
        folders = FolderService(db_session)
        await folders.create(test_user.id, "100% done")
        await folders.create(test_user.id, "unit_1")
        await folders.create(test_user.id, "History")

        assert [f.name for f in await folders.search(test_user.id, "%")] == ["100% done"]
        assert [f.name for f in await folders.search(test_user.id, "_")] == ["unit_1"]

    async def test_can_access_folder(self, db_session: AsyncSession, test_user: User, test_user_2: User):
        folders = FolderService(db_session)
        folder = await folders.create(test_user.id, "Mine")

        assert await folders.can_access_folder(folder.id, test_user.id) is True
        assert await folders.can_access_folder(folder.id, test_user_2.id) is False
