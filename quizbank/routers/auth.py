"""Account endpoints: registration, token login and the caller's profile."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.user import UserCreate, UserProfile, UserResponse
from ..services.auth_service import (
    Token,
    authenticate_user,
    create_user,
    get_current_user,
    get_profile,
    issue_token,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Email already registered"}},
)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Create an account.

    An address that already received quiz shares has a pending account;
    registering claims it, so the shared quizzes show up right away.
    """
    return await create_user(db, user_data)


@router.post("/login", response_model=Token, responses={401: {"description": "Invalid credentials"}})
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: AsyncSession = Depends(get_db),
) -> Token:
    """OAuth2 password flow; ``username`` carries the email address."""
    user = await authenticate_user(db, form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return issue_token(user)


@router.get("/me", response_model=UserProfile)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    return await get_profile(db, current_user)
