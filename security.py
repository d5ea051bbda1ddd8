"""
Security helpers: password hashing, reset tokens and the cookie session.

The session cookie is signed by Starlette's SessionMiddleware and holds the
id and email of the signed-in user.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, Request
from pydantic import BaseModel, ValidationError

from errors import Unauthorized
from schemas import User

SESSION_KEY = "user"
RESET_TOKEN_BYTES = 12  # 24 hex characters

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
BCRYPT_MAX_BYTES = 72


class SessionUser(BaseModel):
    id: str
    email: str


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed.encode("utf-8"))


def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_BYTES)


def reset_token_expiry(ttl_hours: int, now: Optional[datetime] = None) -> datetime:
    return (now or datetime.now(timezone.utc)) + timedelta(hours=ttl_hours)


def is_token_expired(expires: datetime, now: Optional[datetime] = None) -> bool:
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return expires <= (now or datetime.now(timezone.utc))


# Session

def login_session(request: Request, user: User) -> None:
    request.session[SESSION_KEY] = {"id": user.id, "email": user.email}


def logout_session(request: Request) -> None:
    request.session.clear()


def current_user(request: Request) -> Optional[SessionUser]:
    """Signed-in user, or None. A malformed session counts as signed out."""
    data = request.session.get(SESSION_KEY)
    if not data:
        return None
    try:
        return SessionUser.model_validate(data)
    except ValidationError:
        return None


def require_user(user: Optional[SessionUser] = Depends(current_user)) -> SessionUser:  # noqa: B008
    if user is None:
        raise Unauthorized()
    return user
