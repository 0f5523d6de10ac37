"""Pytest fixtures for redirect-auth tests."""

import json
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from redirect_auth import (
    APIClientHelper,
    IdentityProviderClient,
    MemorySessionStore,
    StateStore,
)

DOMAIN = "tenant.example.com"
ISSUER = f"https://{DOMAIN}/"
CLIENT_ID = "client-123"
CLIENT_SECRET = "test-client-secret-with-at-least-32-bytes"
REDIRECT_URI = "https://app.example.com/callback"
USER_ID = "auth0|u1"


# ─────────────────────────────────────────────────────────────────────────────
# Keys and tokens
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Generate an RSA key pair once per test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_private_key() -> rsa.RSAPrivateKey:
    """A second key pair whose signatures must be rejected."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def make_id_token(key: Any, algorithm: str = "HS256", **claims: Any) -> str:
    """Mint an ID token with sensible default claims.

    Claims passed as None are removed from the payload.
    """
    now = int(time.time())
    payload: Dict[str, Any] = {
        "iss": ISSUER,
        "aud": CLIENT_ID,
        "sub": USER_ID,
        "iat": now,
        "exp": now + 300,
    }
    payload.update(claims)
    payload = {name: value for name, value in payload.items() if value is not None}
    return jwt.encode(payload, key, algorithm=algorithm)


@pytest.fixture
def mint_token() -> Callable[..., str]:
    """Return the ID token factory."""
    return make_id_token


# ─────────────────────────────────────────────────────────────────────────────
# Fake provider
# ─────────────────────────────────────────────────────────────────────────────


class FakeProvider:
    """httpx transport answering the token and userinfo endpoints."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.token_response = httpx.Response(
            200, json={"access_token": "tokB", "token_type": "Bearer", "expires_in": 86400}
        )
        self.userinfo_response = httpx.Response(200, json={"sub": USER_ID, "name": "User One"})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth/token":
            return self._copy(self.token_response)
        if request.url.path == "/userinfo":
            return self._copy(self.userinfo_response)
        return httpx.Response(404, json={"error": "not_found"})

    @staticmethod
    def _copy(response: httpx.Response) -> httpx.Response:
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def token_request_body(self) -> Optional[Dict[str, Any]]:
        requests = self.requests_to("/oauth/token")
        if not requests:
            return None
        return json.loads(requests[-1].content)


@pytest.fixture
def provider() -> FakeProvider:
    """Create a fake identity provider."""
    return FakeProvider()


@pytest.fixture
def http_client(provider: FakeProvider):
    """httpx client routed to the fake provider."""
    client = httpx.Client(transport=httpx.MockTransport(provider.handler))
    yield client
    client.close()


@pytest.fixture
def api_client(http_client: httpx.Client) -> IdentityProviderClient:
    """Provider client backed by the fake provider."""
    return IdentityProviderClient(DOMAIN, CLIENT_ID, CLIENT_SECRET, http_client=http_client)


@pytest.fixture
def client_helper(api_client: IdentityProviderClient) -> APIClientHelper:
    return APIClientHelper(api_client)


# ─────────────────────────────────────────────────────────────────────────────
# Session
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def session() -> MemorySessionStore:
    """Create a fresh in-memory session."""
    return MemorySessionStore()


@pytest.fixture
def store(session: MemorySessionStore) -> StateStore:
    return StateStore(session)


# ─────────────────────────────────────────────────────────────────────────────
# Environment
# ─────────────────────────────────────────────────────────────────────────────


AUTH_ENV_VARS = (
    "AUTH_DOMAIN",
    "AUTH_CLIENT_ID",
    "AUTH_CLIENT_SECRET",
    "AUTH_RESPONSE_TYPE",
    "AUTH_PUBLIC_KEY_PATH",
    "AUTH_SCOPE",
    "AUTH_AUDIENCE",
    "REQUEST_TIMEOUT",
    "SESSION_STATE_KEY",
    "SESSION_NONCE_KEY",
    "SESSION_USER_ID_KEY",
    "SESSION_TOKENS_KEY",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every auth variable from the environment."""
    for name in AUTH_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def auth_env(clean_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Environment for a code grant client."""
    clean_env.setenv("AUTH_DOMAIN", DOMAIN)
    clean_env.setenv("AUTH_CLIENT_ID", CLIENT_ID)
    clean_env.setenv("AUTH_CLIENT_SECRET", CLIENT_SECRET)
    clean_env.setenv("AUTH_RESPONSE_TYPE", "code")
    return clean_env
