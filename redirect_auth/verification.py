"""ID token verification for the Implicit Grant

The verification strategy is picked once when the controller is built:
``NoVerification`` for code-grant controllers, ``HMACVerification`` (HS256
with the client secret) or ``RSAVerification`` (RS256 with a public key).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jwt
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

PEM_CERTIFICATE_MARKER = b"-----BEGIN CERTIFICATE-----"
PEM_MARKER = b"-----BEGIN"


@dataclass(frozen=True)
class NoVerification:
    """Tokens are never verified locally; the code exchange is used instead"""
    algorithm = None


@dataclass(frozen=True)
class HMACVerification:
    """HS256 signatures checked with the shared client secret"""
    secret: str
    algorithm = "HS256"

    def __post_init__(self):
        if not self.secret:
            raise ConfigurationError("The client secret is required for HS256 verification")

    @property
    def key(self) -> str:
        return self.secret


@dataclass(frozen=True)
class RSAVerification:
    """RS256 signatures checked with the provider's public key"""
    public_key: rsa.RSAPublicKey
    algorithm = "RS256"

    def __post_init__(self):
        if not isinstance(self.public_key, rsa.RSAPublicKey):
            raise ConfigurationError("RS256 verification requires an RSA public key")

    @property
    def key(self) -> rsa.RSAPublicKey:
        return self.public_key

    @classmethod
    def from_bytes(cls, data: bytes) -> "RSAVerification":
        return cls(read_public_key(data))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "RSAVerification":
        """Load the public key or certificate stored at ``path``

        Raises:
            ConfigurationError: If the file can't be read or parsed
        """
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise ConfigurationError(f"Couldn't read the public key file {path}: {e}") from e
        return cls.from_bytes(data)


VerificationStrategy = Union[NoVerification, HMACVerification, RSAVerification]


def read_public_key(data: bytes) -> rsa.RSAPublicKey:
    """Parse an RSA public key

    Accepts a PEM encoded public key (SubjectPublicKeyInfo or PKCS#1), a PEM
    encoded X.509 certificate, or the DER encoding of either.

    Args:
        data: The key or certificate bytes

    Returns:
        The RSA public key

    Raises:
        ConfigurationError: If the bytes don't hold an RSA public key
    """
    if not data:
        raise ConfigurationError("The public key or certificate is empty")

    try:
        if PEM_CERTIFICATE_MARKER in data:
            key = x509.load_pem_x509_certificate(data).public_key()
        elif data.lstrip().startswith(PEM_MARKER):
            key = serialization.load_pem_public_key(data)
        else:
            try:
                key = serialization.load_der_public_key(data)
            except ValueError:
                key = x509.load_der_x509_certificate(data).public_key()
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"The PublicKey or Certificate for RS256 algorithm was invalid: {e}") from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise ConfigurationError("The PublicKey or Certificate for RS256 algorithm is not an RSA key")
    return key


def to_issuer_url(domain: str) -> str:
    """Build the expected ``iss`` claim for a provider domain

    Args:
        domain: Provider domain, with or without scheme

    Returns:
        The issuer URL, e.g. ``https://tenant.example.com/``
    """
    url = domain if domain.startswith(("http://", "https://")) else f"https://{domain}"
    return url if url.endswith("/") else f"{url}/"


class TokenVerifier:
    """Verifies ID tokens received through the Implicit Grant"""

    def __init__(
        self,
        strategy: VerificationStrategy,
        client_id: str,
        domain: str,
        leeway: int = 0,
    ):
        if isinstance(strategy, NoVerification) or strategy is None:
            raise ConfigurationError("A signing strategy is required to verify tokens")
        if not client_id:
            raise ConfigurationError("client_id needs to be defined")
        if not domain:
            raise ConfigurationError("domain needs to be defined")

        self.strategy = strategy
        self.audience = client_id
        self.issuer = to_issuer_url(domain)
        self.leeway = leeway

    @property
    def algorithm(self) -> str:
        return self.strategy.algorithm

    @staticmethod
    def _subject(claims: Dict[str, Any]) -> Optional[str]:
        sub = claims.get("sub")
        if not isinstance(sub, str) or not sub:
            logger.warning("ID token has no usable subject claim")
            return None
        return sub

    def _decode(self, id_token: str) -> Optional[Dict[str, Any]]:
        try:
            return jwt.decode(
                id_token,
                self.strategy.key,
                algorithms=[self.strategy.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway,
            )
        except jwt.PyJWTError as e:
            logger.warning(f"ID token verification failed: {e}")
            return None

    def get_user_id(self, id_token: str) -> Optional[str]:
        """Verify the token and return its subject

        Args:
            id_token: The signed ID token

        Returns:
            The ``sub`` claim, or None if the token is not valid
        """
        if id_token is None:
            raise ValueError("id_token must not be None")

        claims = self._decode(id_token)
        if claims is None:
            return None
        return self._subject(claims)

    def verify_nonce(self, id_token: str, expected_nonce: str) -> Optional[str]:
        """Verify the token, including its nonce, and return its subject

        Args:
            id_token: The signed ID token
            expected_nonce: The nonce bound to the session when the login started

        Returns:
            The ``sub`` claim, or None if the token or its nonce is not valid
        """
        if id_token is None:
            raise ValueError("id_token must not be None")
        if expected_nonce is None:
            raise ValueError("expected_nonce must not be None")

        claims = self._decode(id_token)
        if claims is None:
            return None

        if claims.get("nonce") != expected_nonce:
            logger.warning("ID token nonce does not match the one bound to the session")
            return None

        return self._subject(claims)
