"""Portal sessions (ephemeral, in memory)."""

from .session import Session, SessionManager

__all__ = ["Session", "SessionManager"]
