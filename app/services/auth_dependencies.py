from typing import Any, cast

from fastapi import Header, HTTPException, Request
from jose import JWTError, jwt

from app.config import settings
from app.services.caller_session import CallerSession


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return None


def decode_access_token(token: str) -> dict:
    try:
        return cast(
            dict[Any, Any],
            jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm],
                options={"verify_aud": False},
            ),
        )
    except JWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc


def require_user_auth(
    authorization: str | None = Header(default=None),
    request: Request = None,
) -> CallerSession:
    token = _extract_bearer_token(authorization)
    if not token and request is not None:
        token = request.cookies.get("session_token")
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    session = CallerSession.from_claims(decode_access_token(token))
    if session is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if request is not None:
        request.state.actor_id = str(session.principal_id)
        request.state.actor_type = "user"
    return session
