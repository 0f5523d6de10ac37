"""
Endpoint handlers for the authentication server.
"""
from .auth import router as auth_router
from .guards import current_user, require_user, session_tokens
from .health import router as health_router

__all__ = [
    'auth_router',
    'current_user',
    'health_router',
    'require_user',
    'session_tokens',
]
