"""SessionRegistry - session id to McpSession mapping.

Sessions are created on first contact and leave the registry the moment
they close, whether the close came from an explicit DELETE or from the
session itself.
"""

import logging
import uuid
from typing import Callable, Iterator

from .session import McpSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str], McpSession]


class SessionNotFoundError(KeyError):
    """Lookup against an unknown or closed session id."""

    def __init__(self, session_id: str | None):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


def new_session_id() -> str:
    return str(uuid.uuid4())


class SessionRegistry:
    """Owns every live McpSession, keyed by its assigned id."""

    def __init__(self, factory: SessionFactory, id_factory: Callable[[], str] = new_session_id):
        """Initialize SessionRegistry.

        Args:
            factory: Builds a session for a freshly allocated id
            id_factory: Allocates session ids
        """
        self._factory = factory
        self._id_factory = id_factory
        self._sessions: dict[str, McpSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[McpSession]:
        return iter(list(self._sessions.values()))

    def get_or_create(self, session_id: str | None = None) -> McpSession:
        """Return the session for session_id, creating one if it is unknown.

        A new session always gets a freshly allocated id; an unknown id
        supplied by the client is never adopted.
        """
        if session_id and session_id in self._sessions:
            return self._sessions[session_id]

        new_id = self._id_factory()
        while new_id in self._sessions:
            new_id = self._id_factory()

        session = self._factory(new_id)
        session.on_close = self._on_session_closed
        self._sessions[new_id] = session
        logger.debug(f"Session {new_id} created")
        return session

    def get(self, session_id: str | None) -> McpSession:
        """Return an existing session.

        Raises:
            SessionNotFoundError: If session_id is unknown or closed
        """
        session = self._sessions.get(session_id) if session_id else None
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def remove(self, session_id: str | None) -> bool:
        """Deregister a session and close it.

        Returns:
            True if a session was removed
        """
        session = self._sessions.pop(session_id, None) if session_id else None
        if session is None:
            return False
        await session.close()
        return True

    async def close_all(self) -> None:
        """Close every session (server shutdown)."""
        for session_id in list(self._sessions):
            await self.remove(session_id)

    def _on_session_closed(self, session: McpSession) -> None:
        # Remove by the session's own id, and only if it is still the
        # registered entry for that id
        if self._sessions.get(session.session_id) is session:
            del self._sessions[session.session_id]
