"""Authorize redirect handling for OAuth2/OIDC logins

Validates the provider's redirect against the session state, resolves the
user id through the Authorization Code Grant or the Implicit Grant, and
stores it in the session.
"""

from .api_client import APIClientHelper, IdentityProviderClient
from .authorization import AuthorizeUrlBuilder
from .controller import AuthenticationController
from .errors import (
    CodeExchangeError,
    ConfigurationError,
    IdentityResolutionError,
    ImplicitGrantNotAllowedError,
    InvalidRequestError,
    ProcessorError,
    ProviderError,
    RedirectAuthError,
)
from .models import AuthenticationResult, CallbackRequest, ProcessorState, Tokens, UserInfo
from .processor import RequestProcessor
from .storage import (
    MemorySessionStore,
    SessionKeys,
    SessionStore,
    StateStore,
    secure_random_string,
)
from .verification import (
    HMACVerification,
    NoVerification,
    RSAVerification,
    TokenVerifier,
    VerificationStrategy,
    read_public_key,
)

__all__ = [
    # Controller
    "AuthenticationController",
    "RequestProcessor",
    "ProcessorState",
    "AuthorizeUrlBuilder",
    # Provider
    "IdentityProviderClient",
    "APIClientHelper",
    # Models
    "Tokens",
    "CallbackRequest",
    "AuthenticationResult",
    "UserInfo",
    # Session
    "SessionStore",
    "MemorySessionStore",
    "SessionKeys",
    "StateStore",
    "secure_random_string",
    # Verification
    "VerificationStrategy",
    "NoVerification",
    "HMACVerification",
    "RSAVerification",
    "TokenVerifier",
    "read_public_key",
    # Errors
    "RedirectAuthError",
    "ConfigurationError",
    "ProviderError",
    "ProcessorError",
    "InvalidRequestError",
    "ImplicitGrantNotAllowedError",
    "CodeExchangeError",
    "IdentityResolutionError",
]
