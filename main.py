"""
Main application entry point for the Little Refugees API.

This module initializes the FastAPI application, configures logging and
CORS, initializes the rate limiter with its Redis backend, registers the
error handlers and includes the routers for authentication, users,
shelters, animals and adoption requests.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_limiter import FastAPILimiter
import redis.asyncio as redis
from redis.exceptions import RedisError

from app.database import engine
from app import models
from app.adoptions import router as adoptions_router
from app.animals import router as animals_router
from app.auth import router as auth_router
from app.errors import register_exception_handlers
from app.shelters import router as shelters_router
from app.users import router as users_router
from app.core import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create tables (for development only)
models.Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes the rate limiter with the Redis backend. When Redis is
    unreachable the API keeps serving and rate limits are skipped.
    """
    if settings.RATE_LIMIT_ENABLED:
        redis_client = redis.from_url(
            settings.REDIS_URL, encoding="utf-8", decode_responses=True
        )
        try:
            await FastAPILimiter.init(redis_client)
        except (RedisError, OSError) as exc:
            FastAPILimiter.redis = None
            logger.warning("Redis unavailable, rate limiting disabled: %s", exc)
    yield
    if FastAPILimiter.redis is not None:
        await FastAPILimiter.close()


# Initialize FastAPI application
app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers for application areas
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(shelters_router)
app.include_router(animals_router)
app.include_router(adoptions_router)


@app.get("/")
def root():
    """
    Root endpoint for the API.

    Returns:
        dict: JSON message directing users to the Swagger UI.
    """
    return {"message": f"{settings.APP_NAME}. Visit /docs for Swagger UI"}
