"""Main FastAPI application for SignLearn."""
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Depends
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from signlearn.routers import auth, games, progress, quiz, signs
from signlearn.db.init_db import init_db
from signlearn.db.database import get_db
from signlearn.logging_config import setup_logging, get_logger
from signlearn.config import settings
from signlearn.services.sessions import game_sessions, quiz_sessions

# Set up logging on module import
log_level = settings.LOG_LEVEL if settings.LOG_LEVEL else None
setup_logging(log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed the sign catalogue on startup; stop all timers on shutdown."""
    logger.info("Application startup initiated")
    try:
        init_db()
        logger.info("Database initialization completed successfully")
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        raise

    yield

    quiz_sessions.clear()
    game_sessions.clear()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="SignLearn API",
    description="""
    Learn Indian road signs through a catalogue, practice tests and mini-games.

    ## Features

    - **Sign catalogue**: Bilingual names and meanings, search, favorites
    - **Practice tests**: 10 two-choice questions, optionally by category
    - **Games**: Matching, Guess the Sign, Speed Challenge, True or False, Sign Sequence
    - **Progress**: Learned signs, tests, best score, daily streak and badges

    ## Test Flow

    1. **Start**: POST `/api/quiz/start`
    2. **Answer**: POST `/api/quiz/answer`, then the next question appears after 4 seconds
       or on POST `/api/quiz/next`
    3. **Finish**: the last answer, or POST `/api/quiz/finish`, saves the result
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_tags=[
        {"name": "auth", "description": "Accounts, consent and the home screen"},
        {"name": "signs", "description": "Sign catalogue and favorites"},
        {"name": "progress", "description": "Counters, streak and badges"},
        {"name": "quiz", "description": "Practice tests"},
        {"name": "games", "description": "Mini-games"},
        {"name": "health", "description": "Service health and readiness checks"},
    ]
)

# Rate limiting
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

logger.info(f"Rate limiting: {settings.RATE_LIMIT_DEFAULT} per IP (enabled={settings.RATE_LIMIT_ENABLED})")

app.include_router(auth.router)
app.include_router(signs.router)
app.include_router(progress.router)
app.include_router(quiz.router)
app.include_router(games.router)


@app.get("/health", tags=["health"])
async def health_check(db: Session = Depends(get_db)):
    """Health check with database verification.

    Returns:
        200 OK: Service is healthy and database is accessible
        503 Service Unavailable: Database connection failed
    """
    timestamp = datetime.utcnow().isoformat() + "Z"

    try:
        db.execute(text("SELECT 1"))
        logger.debug("Health check passed")
        return {
            "status": "healthy",
            "database": "connected",
            "timestamp": timestamp,
            "environment": settings.ENVIRONMENT
        }
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(e),
                "timestamp": timestamp
            }
        )


@app.get("/readiness", tags=["health"])
async def readiness_check(db: Session = Depends(get_db)):
    """Readiness check for container orchestration.

    Ready once the database answers and the sign catalogue is seeded.
    """
    try:
        db.execute(text("SELECT 1"))
        signs = db.execute(text("SELECT COUNT(*) FROM traffic_signs")).scalar()
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "error": str(e)}
        )
    if not signs:
        return JSONResponse(status_code=503, content={"status": "not ready", "error": "catalogue empty"})
    return {"status": "ready", "signs": signs, "timestamp": datetime.utcnow().isoformat() + "Z"}
