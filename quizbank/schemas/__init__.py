"""Pydantic schemas package for request/response validation."""

from .folder import (
    BreadcrumbItem,
    FolderCreate,
    FolderDeleteResponse,
    FolderMove,
    FolderResponse,
    FolderTreeNode,
    FolderUpdate,
)
from .quiz import (
    BulkOperationRequest,
    BulkOperationResponse,
    CollaboratorResponse,
    QuizCreate,
    QuizDuplicate,
    QuizExportRequest,
    QuizListItem,
    QuizListResponse,
    QuizMove,
    QuizResponse,
    QuizShareRequest,
    QuizShareResponse,
    QuizUpdate,
)
from .user import UserCreate, UserProfile, UserResponse

__all__ = [
    "BreadcrumbItem",
    "BulkOperationRequest",
    "BulkOperationResponse",
    "CollaboratorResponse",
    "FolderCreate",
    "FolderDeleteResponse",
    "FolderMove",
    "FolderResponse",
    "FolderTreeNode",
    "FolderUpdate",
    "QuizCreate",
    "QuizDuplicate",
    "QuizExportRequest",
    "QuizListItem",
    "QuizListResponse",
    "QuizMove",
    "QuizResponse",
    "QuizShareRequest",
    "QuizShareResponse",
    "QuizUpdate",
    "UserCreate",
    "UserProfile",
    "UserResponse",
]
