"""
Authentication router: cookie session login, logout and current user.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import (
    clear_session_cookie,
    read_session_cookie,
    require_authenticated,
    set_session_cookie,
)
from services.credentials import verify_credentials
from services.session_token import issue_session, revoke_session

router = APIRouter()
logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    email: Optional[Any] = None
    password: Optional[Any] = None


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@router.post("/login")
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Verify credentials, start a session and set the session cookie."""
    user = await verify_credentials(_as_text(payload.email), _as_text(payload.password), db)
    session = await issue_session(user.id, db)
    set_session_cookie(response, session.id)
    logger.info("User %s logged in", user.id)
    return {"user": user.to_public_dict()}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """End the current session (if any) and clear the cookie."""
    await revoke_session(read_session_cookie(request), db)
    clear_session_cookie(response)
    return {"success": True}


@router.get("/me")
async def get_current_user(user: User = Depends(require_authenticated)):
    """Get the authenticated user's profile."""
    return {"user": user.to_public_dict()}
