"""
FastAPI middleware for request logging and timing.
"""
import time
import logging
from fastapi import Request

logger = logging.getLogger(__name__)

LOGGED_PATHS = ("/login", "/callback", "/logout")


async def log_requests_middleware(request: Request, call_next):
    """Log method, path, status and duration of the authentication endpoints"""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    # path only, the query string carries codes and tokens
    if request.url.path in LOGGED_PATHS:
        logger.info(f"{request.method} {request.url.path} - {response.status_code} - {elapsed:.3f}s")

    return response
