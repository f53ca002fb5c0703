"""Registry of live Socket.IO sessions.

One Session per connected socket. Sessions are created on connect and dropped
on disconnect; nothing here is persisted.
"""

from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime
from typing import TYPE_CHECKING
from typing import TypeVar

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Callable

T = TypeVar("T")

SessionId = str


@dataclass(frozen=True, slots=True)
class Session:
    """A connected client.

    Attributes:
        sid: Socket.IO session id of the connection.
        display_name: Name the client last sent messages as, if any.
        connected_at: When the connection was registered.

    """

    sid: SessionId
    display_name: str | None = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


class SessionRegistry:
    """Set of live sessions keyed by sid.

    Thread-safe: the session map is protected by a lock and readers work on
    snapshots, so handlers running concurrently cannot lose a registration.
    """

    def __init__(self) -> None:
        self._sessions: dict[SessionId, Session] = {}
        self._lock = threading.Lock()

    def register(self, connection_id: str, display_name: str | None = None) -> SessionId:
        session = Session(sid=connection_id, display_name=display_name or None)
        with self._lock:
            self._sessions[session.sid] = session
        return session.sid

    def unregister(self, session_id: SessionId) -> Session | None:
        """Drop a session. Unknown ids are ignored."""
        with self._lock:
            return self._sessions.pop(session_id, None)

    def get(self, session_id: SessionId) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def is_registered(self, session_id: SessionId) -> bool:
        with self._lock:
            return session_id in self._sessions

    def set_display_name(self, session_id: SessionId, display_name: str) -> bool:
        """Remember the display name of a live session.

        Returns False if the session is no longer registered.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            self._sessions[session_id] = dataclasses.replace(
                session,
                display_name=display_name,
            )
            return True

    def snapshot(self) -> tuple[Session, ...]:
        """All live sessions in registration order (no lock held on return)."""
        with self._lock:
            return tuple(self._sessions.values())

    def for_each(self, fn: Callable[[Session], T]) -> list[T]:
        """Call ``fn`` on every live session and collect the results."""
        return [fn(session) for session in self.snapshot()]

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)
