"""
Session lookup for dashboard and mobile callers
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from . import config

# Injected from app.py
_database = None


def set_database(database):
    global _database
    _database = database


@dataclass
class UserIdentity:
    id: str
    email: str
    name: Optional[str] = None
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == config.ADMIN_ROLE


def _request_token(request: Request) -> Optional[str]:
    # Mobile clients send a bearer token, the dashboard a session cookie
    authorization = request.headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return request.cookies.get(config.SESSION_COOKIE_NAME)


def get_authenticated_user(request: Request) -> Optional[UserIdentity]:
    """User behind the request's session, None when unauthenticated"""
    if _database is None:
        return None

    token = _request_token(request)
    if not token:
        return None

    session = _database.get_session(token)
    if not session or not session.get("email"):
        return None

    return UserIdentity(
        id=session["user_id"],
        email=session["email"],
        name=session.get("name"),
        role=session.get("role"),
    )


def require_user(request: Request) -> UserIdentity:
    """FastAPI dependency: any signed-in user"""
    user = get_authenticated_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_admin(request: Request) -> UserIdentity:
    """FastAPI dependency: administrators only"""
    user = require_user(request)
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden - Administrator access required")
    return user
