"""In-memory portal sessions.

Sessions are ephemeral: they live in process memory, are never written to
durable storage and expire after a fixed lifetime with no renewal. Signing in
does NOT verify credentials; it stands in for a real identity provider.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from patient_portal.domains.patients.domain import normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    session_id: str
    email: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "email": self.email,
            "expires_at": self.expires_at.isoformat(),
        }


class SessionManager:
    """
    Holds sessions keyed by session id.

    Passed explicitly to the routing controller and the API dependencies
    instead of living as ambient global state.
    """

    def __init__(
        self,
        ttl_hours: int = 24,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ttl = timedelta(hours=ttl_hours)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._sessions: dict[str, Session] = {}

    def sign_in(self, email: str, password: str) -> Session:
        """
        Open a session for any non-empty email/password pair.

        Raises:
            ValueError: If email or password is empty.
        """
        normalized = normalize_email(email)
        if not normalized or not password:
            raise ValueError("Email and password are required")

        # One live session per email; signing in again replaces it
        now = self._clock()
        stale = [sid for sid, s in self._sessions.items() if s.email == normalized or s.is_expired(now)]
        for sid in stale:
            del self._sessions[sid]

        session = Session(
            session_id=f"session-{uuid4().hex}",
            email=normalized,
            expires_at=now + self._ttl,
        )
        self._sessions[session.session_id] = session
        logger.info(f"Session opened, expires at {session.expires_at.isoformat()}")
        return session

    def sign_out(self, session_id: str | None) -> None:
        if session_id and self._sessions.pop(session_id, None) is not None:
            logger.info("Session closed")

    def get(self, session_id: str | None) -> Session | None:
        """Return the live session, dropping it if it has expired."""
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired(self._clock()):
            del self._sessions[session_id]
            logger.info("Expired session dropped")
            return None
        return session

    def is_current(self, session: Session) -> bool:
        """True while ``session`` has not been signed out, replaced or expired."""
        return self.get(session.session_id) is session
