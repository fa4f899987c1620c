"""Registry of live race room sessions.

The single source of truth for "is this race already being handled".
Discovery inserts, sessions remove themselves when they close. All access
happens on one event loop and no method awaits between reading and writing
the mapping, so no lock is needed.
"""

import logging
from typing import TYPE_CHECKING, Optional

from seedbot.utils.errors import DuplicateSessionError

if TYPE_CHECKING:
    from seedbot.bot.session import RoomSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Mapping of race name to its live RoomSession."""

    def __init__(self) -> None:
        self._sessions: dict[str, "RoomSession"] = {}

    def __contains__(self, race_name: object) -> bool:
        return race_name in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, race_name: str) -> Optional["RoomSession"]:
        return self._sessions.get(race_name)

    def race_names(self) -> list[str]:
        return list(self._sessions)

    def sessions(self) -> list["RoomSession"]:
        return list(self._sessions.values())

    def add(self, session: "RoomSession") -> None:
        """Register a session.

        Raises:
            DuplicateSessionError: If the race already has a live session
        """
        if session.race_name in self._sessions:
            raise DuplicateSessionError(session.race_name)
        self._sessions[session.race_name] = session
        logger.debug(f"[REGISTRY] Tracking {session.race_name} ({len(self)} live)")

    def remove(self, race_name: str) -> Optional["RoomSession"]:
        """Forget a race. Removing an absent race is a no-op."""
        session = self._sessions.pop(race_name, None)
        if session is not None:
            logger.debug(f"[REGISTRY] Released {race_name} ({len(self)} live)")
        return session

    def discard(self, session: "RoomSession") -> bool:
        """Remove ``session`` only if it is the one registered for its race.

        Returns:
            True if the session was registered and has been removed
        """
        if self._sessions.get(session.race_name) is not session:
            return False
        self.remove(session.race_name)
        return True

    async def close_all(self) -> int:
        """Close every live session.

        Returns:
            Number of sessions closed
        """
        sessions = self.sessions()
        for session in sessions:
            await session.stop()
        self._sessions.clear()
        return len(sessions)
