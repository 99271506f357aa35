from fastapi import Depends

from app.db import get_db
from app.services.auth_dependencies import require_user_auth
from app.services.caller_session import CallerSession


def get_current_session(session: CallerSession = Depends(require_user_auth)) -> CallerSession:
    """Session of the authenticated caller, resolved from the bearer token."""
    return session


__all__ = [
    "get_db",
    "get_current_session",
    "require_user_auth",
]
