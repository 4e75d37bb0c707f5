"""Pydantic schemas for Quiz requests and responses.

Question payloads are only loosely typed here; structural rules (option
counts, answer membership, lengths) are checked by ``QuizValidator`` so that
every problem is reported in one error.
"""

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

QuizCategory = Literal["general", "mathematics", "science", "language", "history", "technology", "other"]
QuizStatus = Literal["active", "draft", "archived"]
SharePermission = Literal["view", "edit", "admin"]
BulkAction = Literal["delete", "move", "updateCategory", "updateTags"]


class QuestionIn(BaseModel):
    """A question as submitted by the client."""

    question: str = Field(..., description="Question text")
    question_type: str = Field("multiple_choice", description="Question type")
    options: list[str] = Field(default_factory=list, description="Answer options")
    correct_answer: str = Field(..., description="Expected answer")
    explanation: str = Field("", description="Shown after answering")
    points: int = Field(1, description="Score weight (1-10)")


class QuestionResponse(QuestionIn):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    position: int


class QuizCreate(BaseModel):
    """Schema for creating a quiz."""

    title: str = Field(
        ...,
        max_length=255,
        description="Quiz title, unique among the owner's quizzes",
        examples=["Algebra I"],
    )
    description: str = Field("", max_length=1000)
    category: QuizCategory = "general"
    tags: list[str] = Field(default_factory=list)
    is_public: bool = False
    status: QuizStatus = "draft"
    folder_id: Optional[UUID] = Field(
        None,
        description="Folder to file the quiz in (null = top level)",
    )
    questions: list[QuestionIn] = Field(default_factory=list)


class QuizUpdate(BaseModel):
    """Schema for updating a quiz. Only fields that are set are changed."""

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[QuizCategory] = None
    tags: Optional[list[str]] = None
    is_public: Optional[bool] = None
    status: Optional[QuizStatus] = None
    folder_id: Optional[UUID] = None
    questions: Optional[list[QuestionIn]] = None


class QuizMove(BaseModel):
    folder_id: Optional[UUID] = Field(
        None,
        description="Destination folder (null = top level)",
    )


class QuizDuplicate(BaseModel):
    title: Optional[str] = Field(
        None,
        max_length=255,
        description="Title for the copy (defaults to '<title> (Copy)')",
    )
    folder_id: Optional[UUID] = Field(
        None,
        description="Destination folder for the copy",
    )


class QuizShareRequest(BaseModel):
    """Schema for sharing a quiz with one or more email addresses."""

    emails: list[str] = Field(..., min_length=1, max_length=50)
    permission: SharePermission = "view"
    message: str = Field("", max_length=500)


class ShareRecipientResult(BaseModel):
    email: str
    success: bool
    user_id: Optional[UUID] = None
    share_token: Optional[str] = None
    share_url: Optional[str] = None
    is_new_user: bool = False
    notified: bool = False
    error: Optional[str] = None


class QuizShareResponse(BaseModel):
    results: list[ShareRecipientResult]
    success_count: int
    failure_count: int


class BulkOperationRequest(BaseModel):
    """
    Schema for a bulk quiz operation.

    ``data`` carries the action argument: ``folder_id`` for move,
    ``category`` for updateCategory, ``tags`` for updateTags.
    """

    action: BulkAction
    quiz_ids: list[UUID] = Field(..., min_length=1, max_length=50)
    data: dict[str, Any] = Field(default_factory=dict)


class BulkItemResult(BaseModel):
    quiz_id: UUID
    success: bool
    error: Optional[str] = None


class BulkOperationResponse(BaseModel):
    action: str
    results: list[BulkItemResult]
    success_count: int
    failure_count: int


class QuizExportRequest(BaseModel):
    """Schema for exporting several quizzes into one ZIP archive."""

    quiz_ids: list[UUID] = Field(..., min_length=1, max_length=50)
    format: str = "json"


class QuizListItem(BaseModel):
    """Quiz summary without questions."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    folder_id: Optional[UUID] = None
    title: str
    description: str = ""
    category: str
    tags: list[str] = Field(default_factory=list)
    is_public: bool
    status: str
    question_count: int
    estimated_time: int
    difficulty: str
    created_at: datetime
    updated_at: datetime
    last_accessed_at: Optional[datetime] = None
    permission: Optional[str] = None


class QuizResponse(QuizListItem):
    """Full quiz including its ordered questions."""

    questions: list[QuestionResponse] = Field(default_factory=list)


class QuizListResponse(BaseModel):
    items: list[QuizListItem]
    total: int
    page: int
    limit: int
    has_next: bool
    has_prev: bool


class CollaboratorResponse(BaseModel):
    user_id: UUID
    email: str
    display_name: Optional[str] = None
    permission: str
    status: str
    is_pending: bool = False
    created_at: datetime


class QuizRename(BaseModel):
    title: str = Field(..., max_length=255)


class TitleAvailability(BaseModel):
    title: str
    available: bool
