"""Ephemeral playback sessions.

A playback is several sequential track fetches that must all play the same
bird.  The store binds a session id to an item for one sitting (the TTL)
and expires it lazily on access or in a periodic sweep.  A session is a
read-path convenience: it can always be rebuilt from the selection cache.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Awaitable, Callable

from ..errors import SessionExpired
from ..keyed_lock import KeyedLock
from ..models import Clock, Item, Location, Session, utc_now

logger = logging.getLogger(__name__)

# Produces the (item, location) to bind when a session is absent or expired.
BindFactory = Callable[[], Awaitable[tuple[Item, Location | None]]]


def new_session_id(target_id: str) -> str:
    """Fresh session id scoped to a target."""
    return f'{target_id}_{uuid.uuid4().hex[:12]}'


class SessionStore:
    """Session id -> :class:`Session`, atomic per id."""

    def __init__(
        self,
        ttl: datetime.timedelta = datetime.timedelta(minutes=15),
        clock: Clock = utc_now,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._locks: KeyedLock[str] = KeyedLock()

    @property
    def ttl(self) -> datetime.timedelta:
        return self._ttl

    def get(self, session_id: str) -> Session | None:
        """Return the session for *session_id*, None if unknown.

        Raises:
            SessionExpired: the session outlived its TTL; it is removed.
        """
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired(self._clock()):
            del self._sessions[session_id]
            raise SessionExpired(f'session {session_id} expired at {session.expires_at}')
        return session

    def _live(self, session_id: str) -> Session | None:
        try:
            return self.get(session_id)
        except SessionExpired as exc:
            logger.info('[%s] %s; rebinding on next fetch', session_id, exc)
            return None

    def bind(
        self, session_id: str, item: Item, location: Location | None = None
    ) -> Session:
        """Bind *session_id* to *item*, replacing any previous binding."""
        now = self._clock()
        session = Session(
            session_id=session_id,
            item=item,
            location=location,
            created_at=now,
            expires_at=now + self._ttl,
        )
        self._sessions[session_id] = session
        logger.info('[%s] Bound to %s', session_id, item.item_id)
        return session

    def resolve(self, session_id: str) -> Session | None:
        """Return the live session for *session_id*, or None if absent or expired."""
        return self._live(session_id)

    async def resolve_or_bind(
        self, session_id: str, factory: BindFactory
    ) -> tuple[Session, bool]:
        """Return ``(session, created)``, binding through *factory* on a miss.

        Concurrent calls for the same id serialize, so a double request
        cannot produce two divergent bindings.  Errors from *factory*
        propagate and bind nothing.
        """
        session = self._live(session_id)
        if session is not None:
            return session, False
        async with self._locks.hold(session_id):
            session = self._live(session_id)
            if session is not None:
                return session, False
            item, location = await factory()
            return self.bind(session_id, item, location), True

    def invalidate(self, session_id: str) -> bool:
        """Drop *session_id*; returns whether it existed."""
        return self._sessions.pop(session_id, None) is not None

    def sweep(self) -> int:
        """Remove expired sessions that no coroutine is binding."""
        now = self._clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.is_expired(now) and not self._locks.is_busy(session_id)
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info('[sessions] Swept %d expired sessions', len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
