"""Folder SQLAlchemy model for organizing quizzes into a hierarchy.

Folders form a per-owner tree through a self-referential ``parent_id``.
Depth is never stored; it is recomputed from the parent chain on demand so
moves only ever touch the moved folder's row.
"""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, Uuid

from ..database import Base, utcnow
from .mixins import SoftDeleteMixin

DEFAULT_FOLDER_COLOR = "#3B82F6"


class Folder(SoftDeleteMixin, Base):
    """
    Folder model for organizing quizzes into a tree.

    Nesting is limited to depth 5 (a root-level folder has depth 0). Sibling
    names are unique per (owner_id, parent_id) among live folders; that rule
    is enforced by the folder service because soft-deleted rows keep their
    names.

    Attributes:
        id: Unique identifier (UUID)
        parent_id: FK to parent folder (nullable for root folders)
        owner_id: FK to the owning user
        name: Folder display name (trimmed)
        description: Optional free text
        color: Display hint (hex color)
        created_at: Timestamp when folder was created
        updated_at: Timestamp when folder was last updated
        deleted_at: Soft delete timestamp (null = live)
    """

    __tablename__ = "Folders"
    __allow_unmapped__ = True

    # Primary key
    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    # Self-referential parent
    parent_id = Column(
        Uuid,
        ForeignKey("Folders.id"),
        nullable=True,
        index=True,
    )

    owner_id = Column(
        Uuid,
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Folder details
    name = Column(
        String(255),
        nullable=False,
    )

    description = Column(
        Text,
        nullable=False,
        default="",
    )

    color = Column(
        String(20),
        nullable=False,
        default=DEFAULT_FOLDER_COLOR,
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
        Index("ix_folders_owner_parent", "owner_id", "parent_id"),
    )

    def __repr__(self) -> str:
        """String representation of Folder."""
        return f"<Folder(id={self.id}, name={self.name}, parent_id={self.parent_id})>"
