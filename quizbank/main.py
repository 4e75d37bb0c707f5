"""FastAPI application entry point."""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError

from . import __version__
from .config import settings
from .database import check_connection
from .errors import BusinessLogicError, LockTimeoutError, QuizBankError
from .repositories.base import CONFLICT_MESSAGE
from .routers import auth_router, folders_router, quizzes_router
from .services.redis_service import redis_service

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""
    # Startup
    logger.info("Checking database connection...")
    if await check_connection():
        logger.info("Database connection ready")
    else:
        logger.warning("Database not reachable at startup, requests will retry")

    logger.info("Connecting to Redis...")
    try:
        await redis_service.connect()
        logger.info("Redis connected, owner locks are distributed")
    except Exception as e:
        if settings.redis_required:
            logger.error(f"Redis connection failed and REDIS_REQUIRED=true: {e}")
            raise RuntimeError(
                f"Redis is required for multi-worker deployment but connection failed: {e}"
            )
        logger.warning(f"Redis connection failed, running in single-worker mode: {e}")

    yield

    # Shutdown
    logger.info("Disconnecting from Redis...")
    await redis_service.disconnect()


app = FastAPI(
    title="QuizBank API",
    description="Quiz library with nested folders, collaborators and sharing",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QuizBankError)
async def domain_error_handler(request: Request, exc: QuizBankError):
    """Render domain errors with their status code and machine-readable code."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url}: {exc.message}")
    headers = {"Retry-After": "1"} if isinstance(exc, LockTimeoutError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """A constraint violation at commit means a concurrent change won the race."""
    logger.warning(f"Integrity error on {request.method} {request.url}: {exc.orig}")
    conflict = BusinessLogicError(CONFLICT_MESSAGE)
    return JSONResponse(status_code=conflict.status_code, content=conflict.to_dict())


# Database pool exhaustion handler - return 503 so clients can retry
@app.exception_handler(SQLAlchemyTimeoutError)
async def db_pool_exhausted_handler(request: Request, exc: SQLAlchemyTimeoutError):
    """Handle database connection pool exhaustion with 503 Service Unavailable."""
    logger.warning(f"Database pool exhausted on {request.method} {request.url}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Service temporarily unavailable. Please retry.",
            "retry_after": 5,
        },
        headers={"Retry-After": "5"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log all unhandled exceptions with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url}: {type(exc).__name__}: {exc}")
    logger.error(f"Traceback:\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(auth_router)
app.include_router(folders_router)
app.include_router(quizzes_router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": "QuizBank API",
        "version": __version__,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    database_ok = await check_connection()
    if not redis_service.is_connected:
        redis_state = "disabled"
    else:
        redis_state = "ok" if await redis_service.ping() else "unavailable"
    return {
        "status": "healthy" if database_ok and redis_state != "unavailable" else "degraded",
        "database": "ok" if database_ok else "unavailable",
        "redis": redis_state,
    }
