"""Authentication dependencies for API user scoping."""

from datetime import datetime
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from models.user import User
from services.assignments import current_year
from services.errors import AuthenticationError, AuthorizationError
from services.session_token import session_ttl, validate_session


def get_current_year() -> int:
    """Read the clock once per request; overridable in tests."""
    return current_year(datetime.now())


def read_session_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=int(session_ttl().total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


async def require_authenticated(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the session cookie to a user or fail closed with 401."""
    token = read_session_cookie(request)
    if not token:
        raise AuthenticationError("Not authenticated")

    user = await validate_session(token, db)
    if not user:
        raise AuthenticationError("Session expired", clear_cookie=True)

    request.state.user = user
    return user


async def require_admin(user: User = Depends(require_authenticated)) -> User:
    """Allow only admins; always evaluated after authentication."""
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user
