"""In-memory session registry.

Maps session identifiers to their engine and transport. State is volatile:
sessions do not survive a process restart.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .transport.base import ProtocolEngine
from .transport.session import SessionTransport

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """A registered client session."""

    session_id: str
    engine: ProtocolEngine
    transport: SessionTransport
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, str]:
        return {
            "session_id": self.session_id,
            "state": self.transport.state.value,
            "created_at": self.created_at.isoformat(),
        }


class SessionRegistry:
    """Thread-safe map of live sessions.

    Owned by the application and injected into the HTTP handlers.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def add(self, session: Session) -> None:
        """Register a session.

        Raises:
            ValueError: A session with the same id is already registered.
        """
        with self._lock:
            if session.session_id in self._sessions:
                raise ValueError(f"Session already registered: {session.session_id}")
            self._sessions[session.session_id] = session
        logger.info(f"Session registered: {session.session_id}")

    def get(self, session_id: str) -> Session | None:
        """Look up a session by id."""
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        """Unregister a session, returning it if it existed."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info(f"Session removed: {session_id}")
        return session

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    async def close_all(self) -> None:
        """Remove every session and close its transport."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await session.transport.close()
            sink = session.transport.detach_sink()
            if sink is not None:
                sink.close()
        if sessions:
            logger.info(f"Closed {len(sessions)} session(s)")

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
