"""Unit tests for the authentication controller."""

from urllib.parse import parse_qs, urlsplit

import pytest
from cryptography.hazmat.primitives import serialization

from conftest import CLIENT_ID, CLIENT_SECRET, DOMAIN, REDIRECT_URI, USER_ID, make_id_token
from config import ConfigLoader
from redirect_auth import (
    AuthenticationController,
    CallbackRequest,
    ConfigurationError,
    HMACVerification,
    MemorySessionStore,
    NoVerification,
    RSAVerification,
    SessionKeys,
)
from redirect_auth.controller import strategy_from_config


def _query(url: str) -> dict:
    return {name: values[0] for name, values in parse_qs(urlsplit(url).query).items()}


@pytest.fixture
def loader(tmp_path) -> ConfigLoader:
    return ConfigLoader(env_path=str(tmp_path / ".env"))


@pytest.fixture
def public_key_path(tmp_path, rsa_private_key):
    path = tmp_path / "public.pem"
    path.write_bytes(rsa_private_key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    ))
    return path


# ─────────────────────────────────────────────────────────────────────────────
# Construction
# ─────────────────────────────────────────────────────────────────────────────


class TestFactories:
    """Tests for the controller factories."""

    def test_code_response_type(self, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "code", http_client=http_client
        )
        assert controller.uses_code_grant
        assert controller.response_types == ["code"]
        assert controller.url_builder.response_mode is None

    @pytest.mark.parametrize("response_type", ["token", "id_token", "id_token token", " Token ID_TOKEN "])
    def test_implicit_response_types(self, response_type, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, response_type, http_client=http_client
        )
        assert not controller.uses_code_grant
        assert controller.processor.verifier.algorithm == "HS256"
        assert controller.url_builder.response_mode == "form_post"

    def test_code_wins_over_token(self, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "code id_token", http_client=http_client
        )
        assert controller.uses_code_grant

    def test_unsupported_response_type(self) -> None:
        with pytest.raises(ConfigurationError, match="Response Type must contain either 'code' or 'token'."):
            AuthenticationController.for_hs256(DOMAIN, CLIENT_ID, CLIENT_SECRET, "password")

    @pytest.mark.parametrize("domain, client_id, client_secret, response_type", [
        ("", CLIENT_ID, CLIENT_SECRET, "code"),
        (DOMAIN, "", CLIENT_SECRET, "code"),
        (DOMAIN, CLIENT_ID, "", "code"),
        (DOMAIN, CLIENT_ID, CLIENT_SECRET, ""),
        (DOMAIN, CLIENT_ID, CLIENT_SECRET, None),
    ])
    def test_missing_values(self, domain, client_id, client_secret, response_type) -> None:
        with pytest.raises(ConfigurationError, match="needs to be defined"):
            AuthenticationController.for_hs256(domain, client_id, client_secret, response_type)

    def test_rs256_from_key_object(self, rsa_private_key, http_client) -> None:
        controller = AuthenticationController.for_rs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "id_token", rsa_private_key.public_key(),
            http_client=http_client,
        )
        assert controller.processor.verifier.algorithm == "RS256"

    def test_rs256_from_pem_bytes(self, public_key_path, http_client) -> None:
        controller = AuthenticationController.for_rs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "id_token", public_key_path.read_bytes(),
            http_client=http_client,
        )
        assert controller.processor.verifier.algorithm == "RS256"

    def test_rs256_invalid_key(self) -> None:
        with pytest.raises(ConfigurationError):
            AuthenticationController.for_rs256(DOMAIN, CLIENT_ID, CLIENT_SECRET, "id_token", b"garbage")

    def test_rs256_missing_key(self) -> None:
        with pytest.raises(ConfigurationError):
            AuthenticationController.for_rs256(DOMAIN, CLIENT_ID, CLIENT_SECRET, "id_token", None)

    def test_implicit_requires_signing_strategy(self) -> None:
        with pytest.raises(ConfigurationError):
            AuthenticationController.for_strategy(
                DOMAIN, CLIENT_ID, CLIENT_SECRET, "token", NoVerification()
            )

    def test_code_grant_accepts_no_verification(self, http_client) -> None:
        controller = AuthenticationController.for_strategy(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "code", NoVerification(), http_client=http_client
        )
        assert controller.uses_code_grant


class TestFromConfig:
    """Tests for AuthenticationController.from_config()."""

    def test_code_grant(self, auth_env, loader, http_client) -> None:
        controller = AuthenticationController.from_config(loader, http_client=http_client)
        assert controller.uses_code_grant
        assert controller.session_keys == SessionKeys()

    @pytest.mark.parametrize("missing", [
        "AUTH_DOMAIN", "AUTH_CLIENT_ID", "AUTH_CLIENT_SECRET", "AUTH_RESPONSE_TYPE",
    ])
    def test_missing_required_value(self, auth_env, loader, missing) -> None:
        auth_env.delenv(missing)
        with pytest.raises(ConfigurationError, match=f"{missing} needs to be defined"):
            AuthenticationController.from_config(loader)

    def test_optional_values(self, auth_env, loader, http_client) -> None:
        auth_env.setenv("AUTH_SCOPE", "openid email")
        auth_env.setenv("AUTH_AUDIENCE", "https://api.example.com")
        auth_env.setenv("SESSION_STATE_KEY", "my.state")

        controller = AuthenticationController.from_config(loader, http_client=http_client)

        assert controller.url_builder.scope == "openid email"
        assert controller.url_builder.audience == "https://api.example.com"
        assert controller.session_keys.state == "my.state"
        assert controller.session_keys.nonce == SessionKeys.nonce

    def test_public_key_selects_rs256(self, auth_env, loader, public_key_path, http_client) -> None:
        auth_env.setenv("AUTH_RESPONSE_TYPE", "id_token")
        auth_env.setenv("AUTH_PUBLIC_KEY_PATH", str(public_key_path))

        controller = AuthenticationController.from_config(loader, http_client=http_client)

        assert controller.processor.verifier.algorithm == "RS256"

    def test_missing_public_key_file(self, auth_env, loader, tmp_path) -> None:
        auth_env.setenv("AUTH_PUBLIC_KEY_PATH", str(tmp_path / "missing.pem"))
        with pytest.raises(ConfigurationError):
            AuthenticationController.from_config(loader)

    def test_strategy_from_config(self, auth_env, loader, public_key_path) -> None:
        assert isinstance(strategy_from_config(loader), HMACVerification)
        auth_env.setenv("AUTH_PUBLIC_KEY_PATH", str(public_key_path))
        assert isinstance(strategy_from_config(loader), RSAVerification)


# ─────────────────────────────────────────────────────────────────────────────
# Flow
# ─────────────────────────────────────────────────────────────────────────────


class TestFlow:
    """Tests for building authorize URLs and handling callbacks."""

    def test_code_flow(self, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "code", http_client=http_client
        )
        session = MemorySessionStore()

        query = _query(controller.build_authorize_url(session, REDIRECT_URI))
        assert "nonce" not in query
        assert session.get(SessionKeys.state) == query["state"]

        result = controller.handle(
            CallbackRequest(params={"state": query["state"], "code": "abc123"}, url=REDIRECT_URI),
            session,
        )
        assert result.user_id == USER_ID
        assert session.get(SessionKeys.user_id) == USER_ID

    def test_implicit_flow(self, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "id_token", http_client=http_client
        )
        session = MemorySessionStore()

        query = _query(controller.build_authorize_url(session, REDIRECT_URI))
        assert query["response_mode"] == "form_post"
        id_token = make_id_token(CLIENT_SECRET, nonce=query["nonce"])

        result = controller.handle(
            CallbackRequest(params={"state": query["state"], "id_token": id_token}, method="POST"),
            session,
        )
        assert result.user_id == USER_ID

    def test_explicit_state_and_nonce(self, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "id_token", http_client=http_client
        )
        session = MemorySessionStore()

        query = _query(controller.build_authorize_url(session, REDIRECT_URI, state="s-1", nonce="n-1"))

        assert query["state"] == "s-1"
        assert query["nonce"] == "n-1"
        assert session.get(SessionKeys.nonce) == "n-1"

    def test_new_login_replaces_state(self, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "code", http_client=http_client
        )
        session = MemorySessionStore()
        controller.build_authorize_url(session, REDIRECT_URI, state="first")
        controller.build_authorize_url(session, REDIRECT_URI, state="second")
        assert session.get(SessionKeys.state) == "second"

    def test_build_authorize_url_arguments(self, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "code", http_client=http_client
        )
        with pytest.raises(ValueError):
            controller.build_authorize_url(None, REDIRECT_URI)
        with pytest.raises(ValueError):
            controller.build_authorize_url(MemorySessionStore(), "")

    def test_close_releases_owned_client(self) -> None:
        controller = AuthenticationController.for_hs256(DOMAIN, CLIENT_ID, CLIENT_SECRET, "code")
        controller.close()
        assert controller.processor.client_helper.client.http_client.is_closed

    def test_close_keeps_injected_client(self, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "code", http_client=http_client
        )
        controller.close()
        assert not http_client.is_closed

    def test_handle_requires_request(self, http_client) -> None:
        controller = AuthenticationController.for_hs256(
            DOMAIN, CLIENT_ID, CLIENT_SECRET, "code", http_client=http_client
        )
        with pytest.raises(ValueError):
            controller.handle(None, MemorySessionStore())
