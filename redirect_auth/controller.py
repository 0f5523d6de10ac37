"""Entry point used by applications to run the authorize redirect flow"""

import logging
from typing import Any, List, Optional, Union

import httpx
from cryptography.hazmat.primitives.asymmetric import rsa

from .api_client import DEFAULT_TIMEOUT, APIClientHelper, IdentityProviderClient
from .authorization import DEFAULT_SCOPE, AuthorizeUrlBuilder, split_response_type
from .errors import ConfigurationError
from .models import AuthenticationResult, CallbackRequest
from .processor import RequestProcessor
from .storage import SessionKeys, StateStore
from .verification import (
    HMACVerification,
    NoVerification,
    RSAVerification,
    TokenVerifier,
    VerificationStrategy,
)

logger = logging.getLogger(__name__)

FORM_POST = "form_post"


def _require(name: str, value: Optional[str]) -> str:
    if not value:
        raise ConfigurationError(f"{name} needs to be defined")
    return value


def strategy_from_config(config) -> VerificationStrategy:
    """Select RS256 when AUTH_PUBLIC_KEY_PATH is set, HS256 otherwise

    Raises:
        ConfigurationError: If the key file or the client secret is unusable
    """
    public_key_path = config.get_path("AUTH_PUBLIC_KEY_PATH")
    if public_key_path:
        logger.info(f"Loading RS256 public key from {public_key_path}")
        return RSAVerification.from_file(public_key_path)
    return HMACVerification(config.get_required("AUTH_CLIENT_SECRET"))


class AuthenticationController:
    """Builds authorize URLs and handles the redirect that comes back

    Use ``for_hs256`` or ``for_rs256`` to create an instance. The response
    type decides the grant: ``code`` selects the Authorization Code Grant,
    ``token``/``id_token`` the Implicit Grant with local ID token checks.
    """

    def __init__(
        self,
        processor: RequestProcessor,
        url_builder: AuthorizeUrlBuilder,
        session_keys: Optional[SessionKeys] = None,
    ):
        self.processor = processor
        self.url_builder = url_builder
        self.session_keys = session_keys or SessionKeys()

    @classmethod
    def for_hs256(
        cls,
        domain: str,
        client_id: str,
        client_secret: str,
        response_type: str,
        **options: Any,
    ) -> "AuthenticationController":
        """Create a controller verifying implicit ID tokens with HS256

        Args:
            domain: The provider domain
            client_id: The client id
            client_secret: The client secret, also used as HMAC key
            response_type: Must contain either 'code' or 'token'
            **options: See ``for_strategy``

        Raises:
            ConfigurationError: If a required value is missing
        """
        _require("client_secret", client_secret)
        return cls.for_strategy(
            domain, client_id, client_secret, response_type,
            HMACVerification(client_secret), **options
        )

    @classmethod
    def for_rs256(
        cls,
        domain: str,
        client_id: str,
        client_secret: str,
        response_type: str,
        public_key: Union[bytes, rsa.RSAPublicKey],
        **options: Any,
    ) -> "AuthenticationController":
        """Create a controller verifying implicit ID tokens with RS256

        Args:
            public_key: RSA public key, or the PEM/DER bytes of a key or
                X.509 certificate

        Raises:
            ConfigurationError: If a required value is missing or the key is invalid
        """
        if public_key is None:
            raise ConfigurationError("public_key needs to be defined")
        if isinstance(public_key, (bytes, bytearray)):
            strategy = RSAVerification.from_bytes(bytes(public_key))
        else:
            strategy = RSAVerification(public_key)
        return cls.for_strategy(domain, client_id, client_secret, response_type, strategy, **options)

    @classmethod
    def for_strategy(
        cls,
        domain: str,
        client_id: str,
        client_secret: Optional[str],
        response_type: str,
        strategy: VerificationStrategy,
        scope: str = DEFAULT_SCOPE,
        audience: Optional[str] = None,
        session_keys: Optional[SessionKeys] = None,
        timeout: float = DEFAULT_TIMEOUT,
        leeway: int = 0,
        http_client: Optional[httpx.Client] = None,
        client: Optional[IdentityProviderClient] = None,
    ) -> "AuthenticationController":
        """Create a controller for the grant selected by the response type

        Args:
            domain: The provider domain
            client_id: The client id
            client_secret: The client secret used for the code exchange
            response_type: Must contain either 'code' or 'token'
            strategy: How implicit ID tokens are verified
            scope: Scope requested on the authorize URL
            audience: Optional API audience requested on the authorize URL
            session_keys: Session attribute names
            timeout: Timeout of the provider requests, in seconds
            leeway: Clock skew tolerated when checking token expiry
            http_client: httpx client used by the default provider client
            client: Provider client to use instead of the default one

        Raises:
            ConfigurationError: If a required value is missing or invalid
        """
        _require("domain", domain)
        _require("client_id", client_id)
        _require("response_type", response_type)

        types = split_response_type(response_type)
        response_type = " ".join(types)
        if not {"code", "token", "id_token"}.intersection(types):
            raise ConfigurationError("Response Type must contain either 'code' or 'token'.")

        if client is None:
            client = IdentityProviderClient(
                domain, client_id, client_secret, timeout=timeout, http_client=http_client
            )
        helper = APIClientHelper(client)

        if "code" in types:
            logger.debug(f"Using the Authorization Code Grant for response type '{response_type}'")
            processor = RequestProcessor(helper, response_type)
            response_mode = None
        else:
            if isinstance(strategy, NoVerification):
                raise ConfigurationError("The Implicit Grant requires an HS256 or RS256 verification strategy")
            logger.debug(
                f"Using the Implicit Grant with {strategy.algorithm} for response type '{response_type}'"
            )
            verifier = TokenVerifier(strategy, client_id, domain, leeway=leeway)
            processor = RequestProcessor(helper, response_type, verifier)
            response_mode = FORM_POST

        url_builder = AuthorizeUrlBuilder(
            domain,
            client_id,
            response_type,
            scope=scope,
            response_mode=response_mode,
            audience=audience,
        )
        return cls(processor, url_builder, session_keys)

    @classmethod
    def from_config(cls, config, **options: Any) -> "AuthenticationController":
        """Create a controller from a ConfigLoader

        Reads AUTH_DOMAIN, AUTH_CLIENT_ID, AUTH_CLIENT_SECRET and
        AUTH_RESPONSE_TYPE (required), AUTH_PUBLIC_KEY_PATH (selects RS256),
        AUTH_SCOPE, AUTH_AUDIENCE, REQUEST_TIMEOUT and the session key names.

        Raises:
            ConfigurationError: If a required value is missing or invalid
        """
        domain = config.get_required("AUTH_DOMAIN")
        client_id = config.get_required("AUTH_CLIENT_ID")
        client_secret = config.get_required("AUTH_CLIENT_SECRET")
        response_type = config.get_required("AUTH_RESPONSE_TYPE")
        strategy = strategy_from_config(config)

        options.setdefault("scope", config.get("AUTH_SCOPE", DEFAULT_SCOPE))
        options.setdefault("audience", config.get_optional("AUTH_AUDIENCE"))
        options.setdefault("timeout", config.get("REQUEST_TIMEOUT", DEFAULT_TIMEOUT))
        options.setdefault("session_keys", SessionKeys(
            state=config.get("SESSION_STATE_KEY", SessionKeys.state),
            nonce=config.get("SESSION_NONCE_KEY", SessionKeys.nonce),
            user_id=config.get("SESSION_USER_ID_KEY", SessionKeys.user_id),
            tokens=config.get("SESSION_TOKENS_KEY", SessionKeys.tokens),
        ))

        return cls.for_strategy(domain, client_id, client_secret, response_type, strategy, **options)

    def close(self) -> None:
        """Release the HTTP connections of the provider client"""
        self.processor.client_helper.client.close()

    @property
    def response_types(self) -> List[str]:
        return self.processor.response_types

    @property
    def uses_code_grant(self) -> bool:
        return self.processor.verifier is None

    def state_store(self, session) -> StateStore:
        """Wrap a session store with this controller's session keys"""
        return StateStore(session, self.session_keys)

    def build_authorize_url(
        self,
        session,
        redirect_uri: str,
        state: Optional[str] = None,
        nonce: Optional[str] = None,
    ) -> str:
        """Bind a new state (and nonce) to the session and build the authorize URL

        Args:
            session: The caller's session store
            redirect_uri: URL the provider calls back with the result
            state: State value to use instead of a random one
            nonce: Nonce value to use instead of a random one

        Returns:
            The authorize URL ready to redirect to
        """
        if session is None:
            raise ValueError("session must not be None")
        if not redirect_uri:
            raise ValueError("redirect_uri must not be empty")

        store = self.state_store(session)
        state = state or store.issue()
        store.bind_state(state)

        if self.url_builder.requires_nonce:
            nonce = nonce or store.issue()
            store.bind_nonce(nonce)
        else:
            nonce = None

        return self.url_builder.build(redirect_uri, state, nonce)

    def handle(self, request: CallbackRequest, session) -> AuthenticationResult:
        """Process the authorize redirect request

        Args:
            request: The callback request
            session: The caller's session store

        Returns:
            The user id and tokens; the user id is also stored in the session

        Raises:
            ProcessorError: If the request can't be authenticated
        """
        if request is None:
            raise ValueError("request must not be None")
        return self.processor.process(request, self.state_store(session))
