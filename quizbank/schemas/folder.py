"""Pydantic schemas for Folder requests and responses."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FolderCreate(BaseModel):
    """Schema for creating a new folder."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Folder name",
        examples=["Midterms"],
    )
    parent_id: Optional[UUID] = Field(
        None,
        description="Parent folder ID (null = root level)",
    )
    color: Optional[str] = Field(
        None,
        max_length=20,
        description="Display color (hex)",
        examples=["#3B82F6"],
    )
    description: Optional[str] = Field(
        None,
        max_length=1000,
        description="Folder description",
    )


class FolderUpdate(BaseModel):
    """Schema for updating folder details (rename, recolor)."""

    name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        description="Folder name",
    )
    color: Optional[str] = Field(
        None,
        max_length=20,
        description="Display color (hex)",
    )
    description: Optional[str] = Field(
        None,
        max_length=1000,
        description="Folder description",
    )


class FolderMove(BaseModel):
    """Schema for moving a folder under a new parent."""

    parent_id: Optional[UUID] = Field(
        None,
        description="New parent folder ID (null = move to root level)",
    )


class FolderResponse(BaseModel):
    """Schema for folder response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str = ""
    color: str
    parent_id: Optional[UUID] = None
    owner_id: UUID
    created_at: datetime
    updated_at: datetime
    quiz_count: int = 0
    subfolder_count: int = 0


class FolderTreeNode(BaseModel):
    """Schema for a node in the folder tree response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str = ""
    color: str
    parent_id: Optional[UUID] = None
    quiz_count: int = 0
    subfolder_count: int = 0
    children: list["FolderTreeNode"] = Field(default_factory=list)


class BreadcrumbItem(BaseModel):
    """One step of a root-to-folder breadcrumb."""

    id: UUID
    name: str


class FolderDeleteResponse(BaseModel):
    """Counts describing what a folder delete touched."""

    folders_deleted: int = 0
    quizzes_moved: int = 0
    quizzes_deleted: int = 0
    subfolders_moved: int = 0


# Required for self-referential model
FolderTreeNode.model_rebuild()
