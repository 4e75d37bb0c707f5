"""API routers package.

This package contains all FastAPI routers for the application.
Each router handles a specific domain of the API.
"""

from .auth import router as auth_router
from .folders import router as folders_router
from .quizzes import router as quizzes_router

__all__ = [
    "auth_router",
    "folders_router",
    "quizzes_router",
]
