"""Identity provider calls needed by the callback processor

``IdentityProviderClient`` talks HTTP to the provider's authentication API.
``APIClientHelper`` wraps it with the two operations the processor uses and
turns the responses into ``Tokens`` and user ids.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import ProviderError
from .models import Tokens, UserInfo

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/token"
USERINFO_PATH = "/userinfo"
DEFAULT_TIMEOUT = 30.0


def to_base_url(domain: str) -> str:
    """Build the provider base URL, defaulting to https"""
    url = domain if domain.startswith(("http://", "https://")) else f"https://{domain}"
    return url.rstrip("/")


class IdentityProviderClient:
    """Synchronous client for the provider's authentication API

    Requests are sent once; failures surface immediately as ProviderError.
    """

    def __init__(
        self,
        domain: str,
        client_id: str,
        client_secret: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = to_base_url(domain)
        self.client_id = client_id
        self.client_secret = client_secret
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> "IdentityProviderClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _send(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            response = self.http_client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderError(f"Request to {url} timed out: {e}") from e
        except httpx.RequestError as e:
            raise ProviderError(f"Request to {url} failed: {e}") from e

        logger.debug(f"{method} {url} - {response.status_code}")

        if response.status_code < 200 or response.status_code >= 300:
            raise self._error_from_response(url, response)

        try:
            payload = response.json()
        except json.JSONDecodeError as e:
            raise ProviderError(
                f"Failed to parse the response from {url}: {e}",
                status_code=response.status_code,
            ) from e

        if not isinstance(payload, dict):
            raise ProviderError(
                f"Unexpected response from {url}: expected a JSON object",
                status_code=response.status_code,
            )
        return payload

    @staticmethod
    def _error_from_response(url: str, response: httpx.Response) -> ProviderError:
        error = None
        description = None
        try:
            body = response.json()
        except json.JSONDecodeError:
            body = None

        if isinstance(body, dict):
            error = body.get("error") or body.get("code")
            description = body.get("error_description") or body.get("description")

        message = f"Request to {url} failed with status {response.status_code}"
        if error:
            message = f"{message}: {error}"
        if description:
            message = f"{message} - {description}"
        return ProviderError(
            message,
            status_code=response.status_code,
            error=error,
            description=description or (response.text if body is None else None),
        )

    def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """Perform a code exchange against the token endpoint

        Args:
            code: Authorization code received in the callback
            redirect_uri: The redirect URI used for the authorize request

        Returns:
            The token endpoint response body

        Raises:
            ProviderError: If the request failed
        """
        body = {
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "code": code,
            "redirect_uri": redirect_uri,
        }
        if self.client_secret:
            body["client_secret"] = self.client_secret

        return self._send(
            "POST",
            TOKEN_PATH,
            json=body,
            headers={"Content-Type": "application/json"},
        )

    def user_info(self, access_token: str) -> UserInfo:
        """Fetch the user info associated to an access token

        Raises:
            ProviderError: If the request failed
        """
        payload = self._send(
            "GET",
            USERINFO_PATH,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        return UserInfo(payload)


def _require(name: str, value: Optional[str]) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")


class APIClientHelper:
    """The provider operations used while processing a callback"""

    def __init__(self, client: IdentityProviderClient):
        if client is None:
            raise ValueError("client must not be None")
        self.client = client

    def exchange_code_for_tokens(self, code: str, redirect_uri: str) -> Tokens:
        """Exchange an authorization code for tokens

        Args:
            code: The code received on the callback
            redirect_uri: The redirect URI used on the authorize request

        Returns:
            The tokens returned by the provider

        Raises:
            ProviderError: If the request failed or no access token was returned
        """
        _require("code", code)
        _require("redirect_uri", redirect_uri)

        holder = self.client.exchange_code(code, redirect_uri)
        try:
            tokens = Tokens.from_token_holder(holder)
        except (TypeError, ValueError) as e:
            raise ProviderError(f"Invalid token response: {e}") from e

        if not tokens.access_token:
            raise ProviderError("The token response did not include an access token")

        logger.info("Authorization code exchanged for tokens")
        return tokens

    def fetch_user_id(self, access_token: str) -> Optional[str]:
        """Get the user id associated to an access token

        Returns:
            The ``sub`` value, or None if the user info doesn't include it

        Raises:
            ProviderError: If the request failed
        """
        _require("access_token", access_token)

        info = self.client.user_info(access_token)
        user_id = info.subject
        if user_id is None:
            logger.warning("User info response did not include a subject")
        return user_id
