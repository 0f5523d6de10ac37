"""Authorize redirect processing

Validates the callback, resolves the user identity through the code
exchange or the ID token, and stores the user id in the session.
"""

import logging
import secrets
from typing import List, Optional

from .api_client import APIClientHelper
from .authorization import split_response_type
from .errors import (
    CodeExchangeError,
    IdentityResolutionError,
    ImplicitGrantNotAllowedError,
    InvalidRequestError,
    ProcessorError,
    ProviderError,
)
from .models import AuthenticationResult, CallbackRequest, ProcessorState, Tokens
from .storage import StateStore
from .verification import TokenVerifier

logger = logging.getLogger(__name__)


class RequestProcessor:
    """Turns an authorize redirect into a verified user id and tokens

    A processor built without a verifier only accepts the Authorization Code
    Grant. With a verifier, tokens are taken from the callback parameters
    and the ID token is verified locally.
    """

    def __init__(
        self,
        client_helper: APIClientHelper,
        response_type: str,
        verifier: Optional[TokenVerifier] = None,
    ):
        if client_helper is None:
            raise ValueError("client_helper must not be None")
        if response_type is None:
            raise ValueError("response_type must not be None")
        self.client_helper = client_helper
        self.response_type = response_type
        self.verifier = verifier

    @property
    def response_types(self) -> List[str]:
        return split_response_type(self.response_type)

    def _transition(self, stage: ProcessorState) -> ProcessorState:
        logger.debug(f"Callback processing -> {stage.value}")
        return stage

    def process(self, request: CallbackRequest, store: StateStore) -> AuthenticationResult:
        """Process the authorize redirect

        1. Reject callbacks carrying an ``error`` parameter.
        2. Take the session state and compare it with the request state.
        3. Resolve the user id, either verifying the ID token (Implicit
           Grant) or exchanging the code and fetching the user info.
        4. Store the user id in the session.

        Args:
            request: The callback request
            store: Session-bound state store of the caller

        Returns:
            The user id, the tokens obtained and the grant that resolved them

        Raises:
            ProcessorError: If the request can't be authenticated; its
                ``stage`` tells where processing stopped
        """
        stage = self._transition(ProcessorState.START)
        try:
            stage = self._transition(ProcessorState.VALIDATING)
            self._assert_no_error(request)
            self._assert_valid_state(request, store)

            tokens = self._tokens_from_request(request)
            code = request.get("code") or None

            if code is None and self.verifier is None:
                logger.warning("Callback without authorization code on a code grant controller")
                raise ImplicitGrantNotAllowedError()
            elif self.verifier is not None:
                stage = self._transition(ProcessorState.GRANT_IMPLICIT)
                user_id = self._resolve_implicit(tokens, store)
            else:
                stage = self._transition(ProcessorState.GRANT_CODE)
                tokens, user_id = self._resolve_code(code, request.url, tokens, store)

            if user_id is None:
                raise IdentityResolutionError()
        except ProcessorError as e:
            e.stage = stage
            self._transition(ProcessorState.FAILED)
            raise
        except Exception:
            self._transition(ProcessorState.FAILED)
            raise

        store.set_user_id(user_id)
        self._transition(ProcessorState.RESOLVED)
        logger.info("Authorize redirect processed, user id stored in session")
        return AuthenticationResult(user_id=user_id, tokens=tokens, grant=stage)

    def _assert_no_error(self, request: CallbackRequest) -> None:
        error = request.get("error")
        if error is not None:
            logger.warning(f"Callback contains an error: {error}")
            raise InvalidRequestError(error=error, description=request.get("error_description"))

    def _assert_valid_state(self, request: CallbackRequest, store: StateStore) -> None:
        expected = store.take_state()
        received = request.get("state")
        valid = (
            expected is not None
            and received is not None
            and secrets.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))
        )
        if not valid:
            logger.warning("Callback state does not match the one bound to the session")
            raise InvalidRequestError()

    def _tokens_from_request(self, request: CallbackRequest) -> Tokens:
        try:
            return Tokens.from_params(request.params)
        except ValueError:
            logger.warning("Callback contains an invalid expires_in value")
            raise InvalidRequestError(error="invalid_request", description="expires_in must be an integer")

    def _resolve_implicit(self, tokens: Tokens, store: StateStore) -> Optional[str]:
        if "id_token" not in self.response_types:
            # no ID token requested, the access token is checked against the provider
            if not tokens.access_token:
                return None
            try:
                return self.client_helper.fetch_user_id(tokens.access_token)
            except ProviderError as e:
                logger.warning(f"Couldn't verify the access token: {e}")
                raise CodeExchangeError() from e

        expected_nonce = store.take_nonce()
        if tokens.id_token is None or expected_nonce is None:
            logger.warning("Callback is missing the ID token or the session has no nonce")
            return None
        return self.verifier.verify_nonce(tokens.id_token, expected_nonce)

    def _resolve_code(self, code: str, redirect_uri: str, tokens: Tokens, store: StateStore):
        # hybrid response types bind a nonce that the code grant never reads
        store.take_nonce()
        try:
            latest = self.client_helper.exchange_code_for_tokens(code, redirect_uri)
            tokens = tokens.merge(latest)
            user_id = self.client_helper.fetch_user_id(tokens.access_token)
        except ProviderError as e:
            logger.warning(f"Couldn't exchange the code for tokens: {e}")
            raise CodeExchangeError() from e
        return tokens, user_id
