"""Rate limiting dependencies built on fastapi-limiter."""

from fastapi import Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from .core import get_settings


def rate_limit(times: int, seconds: int = 60):
    """
    Build a dependency that limits calls per client.

    The limit is skipped when rate limiting is disabled in settings or when
    the limiter was never initialised (no redis at startup, or in tests).

    Args:
        times (int): Allowed calls per window.
        seconds (int): Window length in seconds.

    Returns:
        Callable: FastAPI dependency.
    """
    limiter = RateLimiter(times=times, seconds=seconds)

    async def dependency(request: Request, response: Response):
        if not get_settings().RATE_LIMIT_ENABLED or FastAPILimiter.redis is None:
            return
        await limiter(request, response)

    return dependency
