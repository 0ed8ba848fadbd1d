"""Per-caller conversation state."""

from .store import SessionEntry, SessionStore

__all__ = ["SessionEntry", "SessionStore"]
