from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, Optional

from models.records import Session, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """In-process session table keyed by opaque cookie tokens.

    Sessions are lost on restart. Expired entries are dropped when they are
    looked up and swept on every ``create``, so abandoned logins do not
    accumulate.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = Lock()

    def create(self, user: UserProfile) -> Session:
        now = self._clock()
        session = Session(
            token=secrets.token_urlsafe(32),
            user=user,
            created_at=now,
            expires_at=now + self.ttl,
        )
        with self._lock:
            self._sweep(now)
            self._sessions[session.token] = session
        return session

    def resolve(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.is_expired(self._clock()):
                del self._sessions[token]
                logger.info("Session expired", extra={"email": session.user.email})
                return None
            return session

    def destroy(self, token: Optional[str]) -> bool:
        if not token:
            return False
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def purge_expired(self) -> int:
        with self._lock:
            return self._sweep(self._clock())

    def _sweep(self, now: datetime) -> int:
        expired = [token for token, session in self._sessions.items() if session.is_expired(now)]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.debug("Purged expired sessions", extra={"row_count": len(expired)})
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
