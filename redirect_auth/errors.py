"""Error types raised while configuring or processing an authorize redirect"""

from typing import Optional


class RedirectAuthError(Exception):
    """Base class for every error raised by this package"""


class ConfigurationError(RedirectAuthError, ValueError):
    """A required setting is missing or the key material is unusable.

    Raised while building verifiers, clients and controllers. It is never
    raised while a callback request is being processed.
    """


class ProviderError(RedirectAuthError):
    """The identity provider rejected a request or could not be reached

    Attributes:
        status_code: HTTP status returned by the provider, if any
        error: Provider error code (e.g. ``invalid_grant``)
        description: Human readable description sent by the provider
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
        description: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.description = description


class ProcessorError(RedirectAuthError):
    """The callback request could not be turned into an authenticated user

    Attributes:
        code: Stable error code, safe to show in redirect URLs
        stage: Processing stage the request failed in, set by the processor
    """

    INVALID_REQUEST = "invalid_request"
    IMPLICIT_GRANT_NOT_ALLOWED = "implicit_grant_not_allowed"
    API_ERROR = "api_error"
    IDENTITY_UNAVAILABLE = "identity_unavailable"

    code = "unknown_error"
    message = "An error occurred while processing the request"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.stage = None

    def is_api_error(self) -> bool:
        return self.code == self.API_ERROR


class InvalidRequestError(ProcessorError):
    """The callback carried an ``error`` parameter or an invalid state

    Attributes:
        error: The ``error`` parameter sent back by the provider, if any
        description: The ``error_description`` parameter, if any
    """

    code = ProcessorError.INVALID_REQUEST
    message = "Invalid state or error"

    def __init__(self, error: Optional[str] = None, description: Optional[str] = None):
        super().__init__()
        self.error = error
        self.description = description


class ImplicitGrantNotAllowedError(ProcessorError):
    """A code-grant controller received a callback without an authorization code"""

    code = ProcessorError.IMPLICIT_GRANT_NOT_ALLOWED
    message = "Implicit Grant not allowed."


class CodeExchangeError(ProcessorError):
    """The provider failed while exchanging the code or fetching the user info"""

    code = ProcessorError.API_ERROR
    message = "Couldn't exchange the code for tokens"


class IdentityResolutionError(ProcessorError):
    """No subject could be derived from the tokens"""

    code = ProcessorError.IDENTITY_UNAVAILABLE
    message = "Couldn't obtain the User Id."
