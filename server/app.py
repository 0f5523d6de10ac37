"""
FastAPI application initialization and configuration.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import FastAPI

import settings
from config import get_config_loader
from redirect_auth import AuthenticationController, ConfigurationError
from .middleware import log_requests_middleware
from .endpoints import auth_router, health_router
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)

# (request, AuthenticationResult) -> Optional[Response], sync or async
SuccessHook = Callable[..., Any]


@dataclass
class CallbackConfig:
    """How the callback endpoint accepts requests and where it redirects"""
    allow_post: bool = False
    redirect_on_success: str = "/"
    redirect_on_error: str = "/"
    redirect_on_unauthenticated: str = "/login"
    callback_url: str = ""
    cookie_name: str = "redirect_auth_session"

    @classmethod
    def from_settings(cls) -> "CallbackConfig":
        return cls(
            allow_post=settings.ALLOW_POST,
            redirect_on_success=settings.REDIRECT_ON_SUCCESS,
            redirect_on_error=settings.REDIRECT_ON_ERROR,
            redirect_on_unauthenticated=settings.REDIRECT_ON_UNAUTHENTICATED,
            callback_url=settings.CALLBACK_URL,
            cookie_name=settings.SESSION_COOKIE_NAME,
        )


def _lifespan(controller: AuthenticationController):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down, closing provider client")
        controller.close()

    return lifespan


def create_app(
    controller: Optional[AuthenticationController] = None,
    callback_config: Optional[CallbackConfig] = None,
    sessions: Optional[SessionRegistry] = None,
    on_success: Optional[SuccessHook] = None,
) -> FastAPI:
    """Create the FastAPI application

    Args:
        controller: Controller handling the flow. Built from the
            environment configuration when omitted.
        callback_config: Callback endpoint settings. Read from settings
            when omitted.
        sessions: Session registry. A new one is created when omitted.
        on_success: Called with (request, result) after a successful
            callback. A returned Response replaces the success redirect.

    Returns:
        The configured application

    Raises:
        ConfigurationError: If the configuration is missing or inconsistent
    """
    controller = controller or AuthenticationController.from_config(get_config_loader())
    callback_config = callback_config or CallbackConfig.from_settings()

    if not controller.uses_code_grant and not callback_config.allow_post:
        raise ConfigurationError(
            "Implicit Grant can only be used with a POST method. Enable ALLOW_POST "
            "and make sure the login is requested with 'response_mode=form_post'."
        )

    app = FastAPI(title="Redirect Auth", version="1.0.0", lifespan=_lifespan(controller))
    app.state.controller = controller
    app.state.callback_config = callback_config
    app.state.sessions = sessions or SessionRegistry(max_entries=settings.SESSION_MAX_ENTRIES)
    app.state.on_success = on_success

    # Add middleware
    app.middleware("http")(log_requests_middleware)

    # Register routers
    app.include_router(health_router)
    app.include_router(auth_router)

    logger.debug("FastAPI application initialized with all routers and middleware")
    return app
