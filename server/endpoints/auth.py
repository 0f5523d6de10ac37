"""
Login, callback and logout endpoints.
"""
import inspect
import logging
import uuid
from typing import Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse, Response
from starlette.concurrency import run_in_threadpool

from redirect_auth import AuthenticationResult, CallbackRequest, MemorySessionStore, ProcessorError
from ..logging_utils import log_callback
from ..models import SessionStatus

logger = logging.getLogger(__name__)
router = APIRouter()


def _open_session(request: Request):
    """Return (session_id, store, created) for the caller's session cookie"""
    config = request.app.state.callback_config
    session_id = request.cookies.get(config.cookie_name)
    return request.app.state.sessions.get_or_create(session_id)


def _cookie_attributes(request: Request) -> Dict[str, object]:
    """SameSite/Secure attributes of the session cookie

    The Implicit Grant callback is a cross-site form_post from the provider,
    which browsers only send SameSite=None cookies with.
    """
    if request.app.state.controller.uses_code_grant:
        return {"samesite": "lax", "secure": request.url.scheme == "https"}
    return {"samesite": "none", "secure": True}


def _with_session(request: Request, response: Response, session_id: str, created: bool) -> Response:
    if created:
        config = request.app.state.callback_config
        response.set_cookie(config.cookie_name, session_id, httponly=True, **_cookie_attributes(request))
    return response


def _redirect(request: Request, location: str, session_id: str, created: bool) -> Response:
    return _with_session(request, RedirectResponse(location, status_code=302), session_id, created)


def _callback_url(request: Request) -> str:
    config = request.app.state.callback_config
    if config.callback_url:
        return config.callback_url
    return str(request.url.replace(query="", fragment=""))


def _error_location(request: Request, error: Optional[str]) -> str:
    config = request.app.state.callback_config
    if not error:
        return config.redirect_on_error
    separator = "&" if "?" in config.redirect_on_error else "?"
    return f"{config.redirect_on_error}{separator}{urlencode({'error': error})}"


async def _read_params(request: Request) -> Optional[Dict[str, str]]:
    """Read the callback parameters, or None if the method is not allowed"""
    controller = request.app.state.controller
    config = request.app.state.callback_config

    if request.method == "GET" and controller.uses_code_grant:
        return dict(request.query_params)
    if request.method == "POST" and config.allow_post:
        form = await request.form()
        # file parts of a multipart body are never callback parameters
        return {name: value for name, value in form.items() if isinstance(value, str)}
    return None


async def _run_success_hook(request: Request, result: AuthenticationResult) -> Optional[Response]:
    hook = request.app.state.on_success
    if hook is None:
        return None
    if inspect.iscoroutinefunction(hook):
        return await hook(request, result)
    return await run_in_threadpool(hook, request, result)


@router.get("/login")
async def login(request: Request):
    """Start the login by redirecting to the provider's authorize URL"""
    controller = request.app.state.controller
    config = request.app.state.callback_config
    session_id, store, created = _open_session(request)

    redirect_uri = config.callback_url or str(request.url_for("callback"))
    authorize_url = controller.build_authorize_url(store, redirect_uri)
    logger.debug(f"Redirecting to authorize URL with redirect_uri {redirect_uri}")
    return _redirect(request, authorize_url, session_id, created)


@router.api_route("/callback", methods=["GET", "POST"], name="callback")
async def callback(request: Request):
    """Handle the provider's authorize redirect"""
    controller = request.app.state.controller
    config = request.app.state.callback_config
    request_id = str(uuid.uuid4())[:8]
    session_id, store, created = _open_session(request)

    params = await _read_params(request)
    if params is None:
        logger.warning(f"[{request_id}] Request with method {request.method} not allowed.")
        return _redirect(request, _error_location(request, "method_not_allowed"), session_id, created)

    log_callback(request_id, request.method, params)
    callback_request = CallbackRequest(params=params, url=_callback_url(request), method=request.method)

    try:
        result = await run_in_threadpool(controller.handle, callback_request, store)
    except ProcessorError as e:
        logger.warning(f"[{request_id}] Authentication failed at {e.stage}: {e}")
        return _redirect(request, _error_location(request, e.code), session_id, created)

    controller.state_store(store).set_tokens(result.tokens)
    logger.info(f"[{request_id}] Authenticated user {result.user_id} via {result.grant}")

    response = await _run_success_hook(request, result)
    if response is not None:
        return _with_session(request, response, session_id, created)
    return _redirect(request, config.redirect_on_success, session_id, created)


@router.get("/logout")
async def logout(request: Request):
    """Forget the caller's session"""
    controller = request.app.state.controller
    config = request.app.state.callback_config
    session_id = request.cookies.get(config.cookie_name)
    store = request.app.state.sessions.get(session_id)
    if store is not None:
        controller.state_store(store).clear()
        request.app.state.sessions.discard(session_id)

    response = RedirectResponse("/", status_code=302)
    response.delete_cookie(config.cookie_name, httponly=True, **_cookie_attributes(request))
    return response


@router.get("/", response_model=SessionStatus)
async def session_status(request: Request, error: Optional[str] = None):
    """Report whether the caller's session is authenticated"""
    controller = request.app.state.controller
    config = request.app.state.callback_config
    store: Optional[MemorySessionStore] = request.app.state.sessions.get(
        request.cookies.get(config.cookie_name)
    )

    user_id = controller.state_store(store).get_user_id() if store is not None else None
    return SessionStatus(authenticated=user_id is not None, user_id=user_id, error=error)
