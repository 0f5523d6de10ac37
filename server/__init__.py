"""
Redirect Auth - HTTP surface for the authorize redirect flow.

Exposes the login, callback, logout and session status endpoints on top of
the redirect_auth controller, plus dependencies guarding application routes.
"""
from .app import CallbackConfig, create_app
from .endpoints import current_user, require_user, session_tokens
from .server import AuthServer
from .sessions import SessionRegistry

__version__ = "1.0.0"

__all__ = [
    'AuthServer',
    'CallbackConfig',
    'SessionRegistry',
    'create_app',
    'current_user',
    'require_user',
    'session_tokens',
]
