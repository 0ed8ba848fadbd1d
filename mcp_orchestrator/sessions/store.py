"""
In-memory session storage.

Maps a session id to its transcript and a per-session lock. Sessions are
created on first use. By default they live for the life of the process; an
optional idle TTL and/or session cap evicts the least recently used ones,
and an evicted session starts over with an empty transcript.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Optional

from ..models import Transcript

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    """A single caller's conversation state."""

    session_id: str
    transcript: Transcript = field(default_factory=Transcript)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_used: float = field(default_factory=time.monotonic)
    # Callers holding or waiting for the lock.
    users: int = 0

    @property
    def in_use(self) -> bool:
        return self.users > 0 or self.lock.locked()


class SessionStore:
    """
    Session id -> transcript mapping with per-session locking.

    Transcripts are returned by reference: appends made by one caller are
    visible to every later lookup of the same id. Callers that mutate a
    transcript should do so inside ``session(session_id)``.
    """

    def __init__(
        self,
        idle_ttl: float = 0.0,
        max_sessions: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            idle_ttl: Evict sessions idle longer than this many seconds (0 disables).
            max_sessions: Keep at most this many sessions (0 disables).
            clock: Monotonic time source.
        """
        self.idle_ttl = idle_ttl
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions: OrderedDict[str, SessionEntry] = OrderedDict()

    def _expired(self, entry: SessionEntry, now: float) -> bool:
        return (
            bool(self.idle_ttl)
            and now - entry.last_used > self.idle_ttl
            and not entry.in_use
        )

    def _entry(self, session_id: str) -> SessionEntry:
        entry = self._sessions.get(session_id)
        if entry is not None and self._expired(entry, self._clock()):
            del self._sessions[session_id]
            logger.info(f"Session {session_id} expired, starting over")
            entry = None
        if entry is None:
            self.evict_expired()
            entry = SessionEntry(session_id=session_id, last_used=self._clock())
            self._sessions[session_id] = entry
            logger.debug(f"Created session {session_id}")
        else:
            entry.last_used = self._clock()
            self._sessions.move_to_end(session_id)
        return entry

    def get_or_create(self, session_id: str) -> Transcript:
        """Return the session's transcript, creating an empty one if absent."""
        return self._entry(session_id).transcript

    def lock(self, session_id: str) -> asyncio.Lock:
        """Return the lock serializing work on this session."""
        return self._entry(session_id).lock

    @asynccontextmanager
    async def session(self, session_id: str) -> AsyncIterator[Transcript]:
        """
        Hold the session's lock and yield its transcript.

        The session counts as in use, and is never evicted, from the moment
        the caller starts waiting for the lock.
        """
        entry = self._entry(session_id)
        entry.users += 1
        try:
            async with entry.lock:
                yield entry.transcript
        finally:
            entry.users -= 1
            entry.last_used = self._clock()

    def get(self, session_id: str) -> Optional[Transcript]:
        """Return the transcript if the session exists, without touching it."""
        entry = self._sessions.get(session_id)
        return entry.transcript if entry else None

    def session_ids(self) -> list[str]:
        """Session ids, least recently used first."""
        return list(self._sessions)

    def evict_expired(self) -> list[str]:
        """
        Apply the eviction policy.

        Sessions in use (lock held or awaited) are never evicted.

        Returns:
            The evicted session ids.
        """
        if not self.idle_ttl and not self.max_sessions:
            return []

        evicted = []
        now = self._clock()
        if self.idle_ttl:
            for session_id, entry in list(self._sessions.items()):
                if self._expired(entry, now):
                    del self._sessions[session_id]
                    evicted.append(session_id)

        if self.max_sessions:
            # Make room for one new session.
            for session_id, entry in list(self._sessions.items()):
                if len(self._sessions) < self.max_sessions:
                    break
                if not entry.in_use:
                    del self._sessions[session_id]
                    evicted.append(session_id)

        if evicted:
            logger.info(f"Evicted {len(evicted)} session(s): {evicted}")
        return evicted

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
