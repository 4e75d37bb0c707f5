"""Domain error taxonomy.

Services raise these; the API layer renders them with their status code and
machine-checkable ``code``. Kinds:

- ValidationError: caller data fails structural or business rules
- NotFoundError: entity missing, soft-deleted, or (folders) not owned by caller
- UnauthorizedError: quiz exists but the caller lacks the required permission
- BusinessLogicError: well-formed request that violates a domain invariant
- DatabaseError: store failure not otherwise classified
- LockTimeoutError: the per-owner mutation lock could not be acquired in time
"""

from typing import Optional


class QuizBankError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(QuizBankError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[list[str]] = None, field: Optional[str] = None):
        super().__init__(message)
        self.errors = errors or []
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        if self.field:
            data["field"] = self.field
        return data


class NotFoundError(QuizBankError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class UnauthorizedError(QuizBankError):
    status_code = 403
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message)


class BusinessLogicError(QuizBankError):
    status_code = 409
    code = "BUSINESS_LOGIC_ERROR"


class DatabaseError(QuizBankError):
    status_code = 500
    code = "DATABASE_ERROR"

    def __init__(self, message: str = "Database operation failed", original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class DataIntegrityError(DatabaseError):
    """Stored data violates a structural invariant (e.g. a folder parent cycle)."""

    code = "DATA_INTEGRITY_ERROR"

    def __init__(self, message: str, partial: Optional[list] = None):
        super().__init__(message)
        self.partial = partial or []


class LockTimeoutError(QuizBankError):
    """Another mutation for the same owner held the owner lock for too long."""

    status_code = 503
    code = "OWNER_BUSY"

    def __init__(self, message: str = "Another change is in progress, please retry"):
        super().__init__(message)
