"""Data models for the authorize redirect flow"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional


class ProcessorState(str, Enum):
    """Stages a callback goes through"""
    START = "start"
    VALIDATING = "validating"
    GRANT_CODE = "grant_code"
    GRANT_IMPLICIT = "grant_implicit"
    RESOLVED = "resolved"
    FAILED = "failed"


def _prefer(latest: Any, current: Any) -> Any:
    return latest if latest is not None else current


@dataclass(frozen=True)
class Tokens:
    """Credentials obtained for the authenticated user

    Attributes:
        access_token: Bearer token for the provider's APIs
        id_token: Signed JWT asserting the user's identity
        refresh_token: Token that can be used to obtain new tokens
        type: Token type, usually ``Bearer``
        expires_in: Lifetime of the access token in seconds
    """
    access_token: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    type: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "Tokens":
        """Build the tokens sent directly in the callback parameters

        Only present when the Implicit Grant is used.

        Args:
            params: Query or form parameters of the callback request

        Returns:
            Tokens wrapping whatever token parameters were present

        Raises:
            ValueError: If ``expires_in`` is not an integer
        """
        expires_in = params.get("expires_in")
        return cls(
            access_token=params.get("access_token"),
            id_token=params.get("id_token"),
            refresh_token=params.get("refresh_token"),
            type=params.get("token_type"),
            expires_in=int(expires_in) if expires_in is not None else None,
        )

    @classmethod
    def from_token_holder(cls, data: Mapping[str, Any]) -> "Tokens":
        """Build tokens from a provider ``/oauth/token`` response body"""
        expires_in = data.get("expires_in")
        return cls(
            access_token=data.get("access_token"),
            id_token=data.get("id_token"),
            refresh_token=data.get("refresh_token"),
            type=data.get("token_type"),
            expires_in=int(expires_in) if expires_in is not None else None,
        )

    def merge(self, latest: "Tokens") -> "Tokens":
        """Keep the best version of each token

        Fields of ``latest`` win whenever they are set.

        Args:
            latest: The most recently obtained tokens

        Returns:
            A new Tokens instance
        """
        return Tokens(
            access_token=_prefer(latest.access_token, self.access_token),
            id_token=_prefer(latest.id_token, self.id_token),
            refresh_token=_prefer(latest.refresh_token, self.refresh_token),
            type=_prefer(latest.type, self.type),
            expires_in=_prefer(latest.expires_in, self.expires_in),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for responses or storage"""
        return {
            "access_token": self.access_token,
            "id_token": self.id_token,
            "refresh_token": self.refresh_token,
            "token_type": self.type,
            "expires_in": self.expires_in,
        }


@dataclass(frozen=True)
class CallbackRequest:
    """Inbound authorize redirect

    Attributes:
        params: Query string (GET) or form body (POST) parameters
        url: Request URL without the query string, used as redirect_uri
        method: HTTP method of the request
    """
    params: Mapping[str, str] = field(default_factory=dict)
    url: str = ""
    method: str = "GET"

    def get(self, name: str) -> Optional[str]:
        return self.params.get(name)


class AuthenticationResult(NamedTuple):
    """Outcome of a successfully processed callback

    Attributes:
        user_id: Subject of the authenticated user
        tokens: Tokens received in the callback or from the code exchange
        grant: The grant stage that resolved the identity
    """
    user_id: str
    tokens: Tokens
    grant: Optional[ProcessorState] = None


class UserInfo:
    """Values returned by the provider's ``/userinfo`` endpoint"""

    def __init__(self, values: Mapping[str, Any]):
        self.values = dict(values)

    @property
    def subject(self) -> Optional[str]:
        sub = self.values.get("sub")
        return sub if isinstance(sub, str) else None
