"""Cookie-keyed session registry

Maps the session cookie value to a MemorySessionStore. The registry keeps
at most ``max_entries`` sessions and evicts the least recently used one.
"""

import threading
from collections import OrderedDict
from typing import Optional, Tuple

from redirect_auth import MemorySessionStore, secure_random_string


class SessionRegistry:
    """Thread-safe, bounded map of session id -> session store"""

    def __init__(self, max_entries: int = 10000):
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._sessions: "OrderedDict[str, MemorySessionStore]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, session_id: Optional[str]) -> Optional[MemorySessionStore]:
        """Look up an existing session

        Args:
            session_id: Value of the session cookie

        Returns:
            The session store, or None if the session is unknown
        """
        if not session_id:
            return None
        with self._lock:
            store = self._sessions.get(session_id)
            if store is not None:
                self._sessions.move_to_end(session_id)
            return store

    def get_or_create(self, session_id: Optional[str]) -> Tuple[str, MemorySessionStore, bool]:
        """Look up a session, creating a new one if needed

        Returns:
            Tuple of (session_id, store, created)
        """
        store = self.get(session_id)
        if store is not None:
            return session_id, store, False

        new_id = secure_random_string()
        store = MemorySessionStore()
        with self._lock:
            self._sessions[new_id] = store
            # Evict oldest entry if registry is full
            while len(self._sessions) > self.max_entries:
                self._sessions.popitem(last=False)
        return new_id, store, True

    def discard(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with self._lock:
            self._sessions.pop(session_id, None)
