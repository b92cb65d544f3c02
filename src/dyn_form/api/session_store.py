# Global session store for the session API

from dyn_form.session import FormSession

# Key: session_id, Value: live FormSession
sessions: dict[str, FormSession] = {}


def get_session(session_id: str) -> FormSession | None:
    """Get a live session, or None if it does not exist."""
    return sessions.get(session_id)


def set_session(session_id: str, session: FormSession) -> None:
    """Store a session under its id."""
    sessions[session_id] = session


def drop_session(session_id: str) -> bool:
    """Forget a session. Returns False if it did not exist."""
    return sessions.pop(session_id, None) is not None
