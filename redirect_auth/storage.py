"""Session-bound storage for the state, nonce, user id and token values

State and nonce values are single use: every read goes through ``take``,
which returns the value and removes it from the session in one step.
"""

import base64
import json
import logging
import secrets
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from .models import Tokens

logger = logging.getLogger(__name__)

# get+remove guard for session stores without an atomic pop, shared across
# every StateStore wrapping the same session
_take_lock = threading.Lock()


def secure_random_string() -> str:
    """Generate a random value usable as a state or nonce

    Returns:
        32 random bytes, base64url encoded without padding (43 chars)
    """
    return base64.urlsafe_b64encode(secrets.token_bytes(32)).decode('utf-8').rstrip('=')


class SessionStore(Protocol):
    """Key/value storage scoped to a single end-user session"""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemorySessionStore:
    """In-memory session store with an atomic ``pop``"""

    def __init__(self):
        self._values: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def pop(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._values


@dataclass(frozen=True)
class SessionKeys:
    """Names of the session attributes used by the flow"""
    state: str = "redirect_auth.state"
    nonce: str = "redirect_auth.nonce"
    user_id: str = "redirect_auth.user_id"
    tokens: str = "redirect_auth.tokens"


DEFAULT_SESSION_KEYS = SessionKeys()


class StateStore:
    """Binds and takes the flow values against a session store"""

    def __init__(self, session: SessionStore, keys: SessionKeys = DEFAULT_SESSION_KEYS):
        self.session = session
        self.keys = keys

    @staticmethod
    def issue() -> str:
        """Generate a new state or nonce value"""
        return secure_random_string()

    def bind(self, key: str, value: str) -> None:
        """Save a value in the session, replacing any previous one"""
        self.session.set(key, value)

    def take(self, key: str) -> Optional[str]:
        """Read a value and remove it from the session

        Uses the session's own ``pop`` when it has one, otherwise a
        process-wide lock around ``get`` and ``remove``.

        Args:
            key: Session attribute name

        Returns:
            The stored value, or None if it was not set
        """
        pop = getattr(self.session, "pop", None)
        if callable(pop):
            return pop(key)

        with _take_lock:
            value = self.session.get(key)
            self.session.remove(key)
        return value

    def bind_state(self, state: str) -> None:
        self.bind(self.keys.state, state)

    def take_state(self) -> Optional[str]:
        return self.take(self.keys.state)

    def bind_nonce(self, nonce: str) -> None:
        self.bind(self.keys.nonce, nonce)

    def take_nonce(self) -> Optional[str]:
        return self.take(self.keys.nonce)

    def set_user_id(self, user_id: str) -> None:
        self.bind(self.keys.user_id, user_id)

    def get_user_id(self) -> Optional[str]:
        return self.session.get(self.keys.user_id)

    def set_tokens(self, tokens: Tokens) -> None:
        """Save the tokens of the authenticated user as JSON"""
        self.bind(self.keys.tokens, json.dumps(tokens.to_dict()))

    def get_tokens(self) -> Optional[Tokens]:
        raw = self.session.get(self.keys.tokens)
        if raw is None:
            return None
        return Tokens.from_token_holder(json.loads(raw))

    def clear(self) -> None:
        """Remove every value owned by the flow from the session"""
        for key in (self.keys.state, self.keys.nonce, self.keys.user_id, self.keys.tokens):
            self.session.remove(key)
        logger.debug("Cleared authentication values from session")
