"""Authentication service with JWT token generation and user management."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db, utcnow
from ..models.collaborator import GRANT_ACTIVE, QuizCollaborator
from ..models.folder import Folder
from ..models.quiz import Quiz
from ..models.user import User
from ..repositories import Repository
from ..schemas.user import UserCreate, UserProfile
from ..utils.security import get_password_hash, has_usable_password, verify_password

logger = logging.getLogger(__name__)

# OAuth2 scheme for token-based authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


class Token(BaseModel):
    """Token response schema."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user_id: UUID


class TokenData(BaseModel):
    """Token payload data schema."""

    user_id: Optional[str] = None
    email: Optional[str] = None


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary of claims to encode in the token
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expiration_minutes)
    )
    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def issue_token(user: User) -> Token:
    """Bearer token for a logged-in user, with the configured lifetime."""
    lifetime = timedelta(minutes=settings.jwt_expiration_minutes)
    access_token = create_access_token({"sub": str(user.id), "email": user.email}, expires_delta=lifetime)
    return Token(access_token=access_token, expires_in=int(lifetime.total_seconds()), user_id=user.id)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a JWT access token.

    Returns:
        TokenData with user information, or None if invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None
    return TokenData(user_id=user_id, email=payload.get("email"))


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """
    Authenticate a user with email and password.

    Pending users (provisioned by a share invitation) cannot log in until
    they register.

    Returns:
        User object if authentication successful, None otherwise
    """
    user = await get_user_by_email(db, email)
    if not user or user.is_pending:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def create_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user.

    Registering with the email of a pending user claims that account, so
    quizzes shared with the address before registration stay accessible.

    Raises:
        HTTPException: If the email is already registered
    """
    email = user_data.email.strip().lower()
    user = await get_user_by_email(db, email)

    if user is not None and not user.is_pending and has_usable_password(user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    password_hash = get_password_hash(user_data.password)
    if user is not None:
        user.password_hash = password_hash
        user.display_name = user_data.display_name or user.display_name
        user.is_pending = False
        user.updated_at = utcnow()
        logger.info(f"Pending user claimed by registration: id={user.id}")
    else:
        user = User(
            email=email,
            password_hash=password_hash,
            display_name=user_data.display_name,
        )
        db.add(user)

    await db.commit()
    await db.refresh(user)
    logger.info(f"User registered: id={user.id}")
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from the JWT token.

    This is a FastAPI dependency that extracts and validates
    the JWT token from the Authorization header.

    Raises:
        HTTPException: If token is invalid or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = decode_access_token(token)
    if token_data is None or token_data.user_id is None:
        raise credentials_exception

    try:
        user_id = UUID(token_data.user_id)
    except ValueError:
        raise credentials_exception

    user = await get_user_by_id(db, user_id)
    if user is None or user.is_pending:
        raise credentials_exception

    return user


async def get_profile(db: AsyncSession, user: User) -> UserProfile:
    """Profile of ``user`` with live quiz and folder totals and active shares received."""
    quizzes = Repository(db, Quiz)
    profile = UserProfile.model_validate(user)
    profile.quiz_count = await quizzes.count(Quiz.owner_id == user.id)
    profile.folder_count = await Repository(db, Folder).count(Folder.owner_id == user.id)
    profile.shared_with_me_count = await quizzes.count(
        Quiz.owner_id != user.id,
        Quiz.id.in_(
            select(QuizCollaborator.quiz_id).where(
                QuizCollaborator.user_id == user.id,
                QuizCollaborator.status == GRANT_ACTIVE,
            )
        ),
    )
    return profile
