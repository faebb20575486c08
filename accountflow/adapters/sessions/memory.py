"""
In-memory session adapter - Implements SessionManager protocol.

Sessions only remember which account is attached; the account itself is
always reloaded from storage so changes are visible immediately.
"""

import logging
import secrets
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class MemorySession:
    """A session held in process memory."""

    id: str
    account_id: str | None = None

    def attach(self, account_id: str) -> None:
        self.account_id = account_id

    def detach(self) -> None:
        self.account_id = None


class InMemorySessionManager:
    """
    Implements SessionManager protocol with a lock-guarded dictionary.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, MemorySession] = {}
        self._lock = threading.Lock()

    def start_session(self) -> MemorySession:
        session = MemorySession(id=secrets.token_urlsafe(24))
        with self._lock:
            self._sessions[session.id] = session
        return session

    def load_session(self, session_id: str) -> MemorySession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def destroy_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def invalidate_all_sessions_for(self, account_id: str) -> None:
        with self._lock:
            sessions = [s for s in self._sessions.values() if s.account_id == account_id]
            for session in sessions:
                session.detach()
        logger.info("Logged account %s out of %d session(s)", account_id, len(sessions))

    def sessions_for(self, account_id: str) -> list[MemorySession]:
        """Sessions the account is currently attached to."""
        with self._lock:
            return [s for s in self._sessions.values() if s.account_id == account_id]
