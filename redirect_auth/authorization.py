"""Authorize URL construction"""

from typing import List, Optional
from urllib.parse import urlencode

from .api_client import to_base_url

AUTHORIZE_PATH = "/authorize"
DEFAULT_SCOPE = "openid"


def split_response_type(response_type: str) -> List[str]:
    """Normalize a response type into its individual values"""
    return response_type.strip().lower().split()


class AuthorizeUrlBuilder:
    """Builds the URL the browser is sent to for logging in"""

    def __init__(
        self,
        domain: str,
        client_id: str,
        response_type: str,
        scope: str = DEFAULT_SCOPE,
        response_mode: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        self.base_url = to_base_url(domain)
        self.client_id = client_id
        self.response_type = " ".join(split_response_type(response_type))
        self.scope = scope or DEFAULT_SCOPE
        self.response_mode = response_mode
        self.audience = audience

    @property
    def requires_nonce(self) -> bool:
        """Whether the provider may return an ID token for this response type"""
        return "id_token" in split_response_type(self.response_type)

    def build(self, redirect_uri: str, state: str, nonce: Optional[str] = None) -> str:
        """Construct the authorize URL

        Args:
            redirect_uri: URL the provider calls back with the result
            state: Value bound to the session for CSRF protection
            nonce: Value embedded in the ID token; only sent when required

        Returns:
            Full authorization URL
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": self.response_type,
            "scope": self.scope,
            "state": state,
        }
        if nonce is not None and self.requires_nonce:
            params["nonce"] = nonce
        if self.response_mode:
            params["response_mode"] = self.response_mode
        if self.audience:
            params["audience"] = self.audience

        return f"{self.base_url}{AUTHORIZE_PATH}?{urlencode(params)}"
