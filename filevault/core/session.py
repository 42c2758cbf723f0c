# filevault/core/session.py
"""
Login state kept in the signed session cookie.

Lifecycle::

    ANONYMOUS --establish()--> ACTIVE --invalidate()--> ANONYMOUS
                                  |
                                  +--(older than lifetime)--> EXPIRED --invalidate()--> ANONYMOUS
"""
import enum
import time
from typing import MutableMapping, Optional

from fastapi import Request

from filevault.core.flash import flash

LOGGED_IN_KEY = "loggedIn"
USERNAME_KEY = "username"
ISSUED_AT_KEY = "issuedAt"


class SessionState(str, enum.Enum):
    ANONYMOUS = "anonymous"
    ACTIVE = "active"
    EXPIRED = "expired"


def session_state(
    session: MutableMapping, lifetime_seconds: int, now: Optional[float] = None
) -> SessionState:
    if not session.get(LOGGED_IN_KEY) or not session.get(USERNAME_KEY):
        return SessionState.ANONYMOUS
    now = time.time() if now is None else now
    issued_at = session.get(ISSUED_AT_KEY, 0)
    if now - issued_at > lifetime_seconds:
        return SessionState.EXPIRED
    return SessionState.ACTIVE


def is_authenticated(
    session: MutableMapping, lifetime_seconds: int, now: Optional[float] = None
) -> bool:
    return session_state(session, lifetime_seconds, now) is SessionState.ACTIVE


def establish(session: MutableMapping, username: str, now: Optional[float] = None) -> None:
    session[LOGGED_IN_KEY] = True
    session[USERNAME_KEY] = username
    session[ISSUED_AT_KEY] = time.time() if now is None else now


def invalidate(session: MutableMapping) -> None:
    for key in (LOGGED_IN_KEY, USERNAME_KEY, ISSUED_AT_KEY):
        session.pop(key, None)


# --- helper: get current logged in username from the session ---
def get_current_username(request: Request) -> Optional[str]:
    """Username of an ACTIVE session, else None. Expired sessions are cleared."""
    lifetime = request.app.state.settings.session_lifetime_seconds
    state = session_state(request.session, lifetime)
    if state is SessionState.EXPIRED:
        invalidate(request.session)
        flash(request, "Your session has expired. Please log in again.", "error")
        return None
    if state is SessionState.ANONYMOUS:
        return None
    return request.session[USERNAME_KEY]
