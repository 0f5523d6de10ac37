"""
AuthServer class for CLI control of the FastAPI application.
"""
import logging
from typing import Optional

import uvicorn

from settings import PORT, LOG_LEVEL, BIND_ADDRESS
from redirect_auth import AuthenticationController
from .app import create_app
from .logging_utils import setup_debug_logging

logger = logging.getLogger(__name__)


class AuthServer:
    """Authentication server wrapper for CLI control"""

    def __init__(
        self,
        controller: Optional[AuthenticationController] = None,
        debug: bool = False,
        bind_address: Optional[str] = None,
        port: Optional[int] = None,
    ):
        self.server = None
        self.config = None
        self.debug = debug
        self.bind_address = bind_address or BIND_ADDRESS
        self.port = port or PORT

        # Configure debug logging if enabled
        self.log_file = setup_debug_logging() if debug else None

        # Configuration errors surface here, before the server starts
        self.app = create_app(controller)

    def run(self):
        """Run the server (blocking)"""
        logger.info(f"Starting Redirect Auth on http://{self.bind_address}:{self.port}")
        logger.info("Available endpoints: /login, /callback, /logout, /, /health")
        self.config = uvicorn.Config(
            self.app,
            host=self.bind_address,
            port=self.port,
            log_level="debug" if self.debug else LOG_LEVEL,
            access_log=False  # query strings carry codes and tokens
        )
        self.server = uvicorn.Server(self.config)
        self.server.run()

    def stop(self):
        """Stop the server"""
        if self.server:
            self.server.should_exit = True
