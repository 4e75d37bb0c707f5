"""Business logic services."""

from .activity_service import ActivityService
from .auth_service import (
    authenticate_user,
    create_access_token,
    create_user,
    get_current_user,
    get_user_by_email,
)
from .email_service import EmailService, email_service
from .export_service import EXPORT_FORMATS, ExportService
from .folder_service import MAX_WALK, FolderDeleteResult, FolderService
from .owner_lock_service import OwnerLockService, get_owner_lock_service, owner_lock_service
from .permission_service import PermissionService, get_permission_service
from .quiz_service import QuizService, get_quiz_service
from .quiz_validator import QuizValidator, ValidationResult, compute_derived_fields
from .redis_service import RedisService, redis_service

__all__ = [
    "ActivityService",
    "EmailService",
    "EXPORT_FORMATS",
    "ExportService",
    "FolderDeleteResult",
    "FolderService",
    "MAX_WALK",
    "OwnerLockService",
    "PermissionService",
    "QuizService",
    "QuizValidator",
    "RedisService",
    "ValidationResult",
    "authenticate_user",
    "compute_derived_fields",
    "create_access_token",
    "create_user",
    "email_service",
    "get_current_user",
    "get_owner_lock_service",
    "get_permission_service",
    "get_quiz_service",
    "get_user_by_email",
    "owner_lock_service",
    "redis_service",
]
