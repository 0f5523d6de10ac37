"""
Dependencies that guard application routes behind an authenticated session.

    @app.get("/private")
    async def private(user_id: str = Depends(require_user)):
        ...
"""
import logging
from typing import Optional

from fastapi import HTTPException, Request

from redirect_auth import MemorySessionStore, Tokens

logger = logging.getLogger(__name__)


def _session_store(request: Request) -> Optional[MemorySessionStore]:
    config = request.app.state.callback_config
    return request.app.state.sessions.get(request.cookies.get(config.cookie_name))


def current_user(request: Request) -> Optional[str]:
    """User id of the caller's session, or None"""
    store = _session_store(request)
    if store is None:
        return None
    return request.app.state.controller.state_store(store).get_user_id()


def require_user(request: Request) -> str:
    """Return the session's user id, or redirect to the login page

    Raises:
        HTTPException: 302 to ``redirect_on_unauthenticated`` when the
            session has no user id
    """
    user_id = current_user(request)
    if user_id is None:
        location = request.app.state.callback_config.redirect_on_unauthenticated
        logger.info(f"Unauthenticated request to {request.url.path}, redirecting to {location}")
        raise HTTPException(status_code=302, headers={"Location": location})
    return user_id


def session_tokens(request: Request) -> Optional[Tokens]:
    """Tokens obtained by the session's last successful callback"""
    store = _session_store(request)
    if store is None:
        return None
    return request.app.state.controller.state_store(store).get_tokens()
