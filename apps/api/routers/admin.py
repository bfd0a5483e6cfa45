"""
Admin router: user account management and assignment control.

Every route requires an authenticated admin session.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_year, require_admin
from services.assignments import MatchView, generate_matches, list_for_year, update_matches
from services.credentials import create_user, delete_user, list_users, reset_credential, update_profile
from services.errors import ValidationError
from services.identity import parse_positive_id
from services.notifications import dispatch_notifications, match_notification, welcome_notification

router = APIRouter(dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


class CreateUserRequest(BaseModel):
    email: Optional[Any] = None
    name: Optional[Any] = None
    is_admin: bool = Field(default=False, alias="isAdmin")
    password: Optional[Any] = None


class UpdateUserRequest(BaseModel):
    name: Optional[Any] = None
    email: Optional[Any] = None


class UpdateMatchesRequest(BaseModel):
    matches: Optional[Any] = None


def _text_or_none(value: Any, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value


def _user_id(raw: str) -> int:
    parsed = parse_positive_id(raw)
    if parsed is None:
        raise ValidationError("Invalid user ID")
    return parsed


def _matches_payload(year: int, matches: List[MatchView]) -> dict:
    return {"year": year, "matches": [match.to_dict() for match in matches]}


@router.get("/users")
async def get_users(db: AsyncSession = Depends(get_db)):
    """List all users ordered by name."""
    users = await list_users(db)
    return {"users": [user.to_public_dict() for user in users]}


@router.post("/users", status_code=201)
async def create_user_account(
    payload: CreateUserRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """Create a user; the plaintext password is returned only in this response."""
    user, password = await create_user(
        _text_or_none(payload.email, "email"),
        _text_or_none(payload.name, "name"),
        db,
        password=_text_or_none(payload.password, "password"),
        is_admin=payload.is_admin,
    )
    background_tasks.add_task(
        dispatch_notifications,
        [welcome_notification(user.email, user.name, password)],
    )
    return {"user": user.to_public_dict(), "password": password}


@router.put("/users/{user_id}")
async def update_user_account(
    user_id: str,
    payload: UpdateUserRequest,
    db: AsyncSession = Depends(get_db),
):
    """Update name and/or email."""
    user = await update_profile(
        _user_id(user_id),
        db,
        name=_text_or_none(payload.name, "name"),
        email=_text_or_none(payload.email, "email"),
    )
    return {"user": user.to_public_dict()}


@router.delete("/users/{user_id}")
async def delete_user_account(
    user_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a user with their sessions, wishlist items and matches."""
    await delete_user(_user_id(user_id), admin.id, db)
    return {"success": True}


@router.put("/users/{user_id}/reset-password")
async def reset_user_password(user_id: str, db: AsyncSession = Depends(get_db)):
    """Issue a new passphrase and sign the user out everywhere."""
    password = await reset_credential(_user_id(user_id), db)
    return {"password": password}


@router.get("/matches")
async def get_matches(
    year: int = Depends(get_current_year),
    db: AsyncSession = Depends(get_db),
):
    """List this year's assignments."""
    return _matches_payload(year, await list_for_year(year, db))


@router.post("/matches/generate")
async def generate_year_matches(
    background_tasks: BackgroundTasks,
    year: int = Depends(get_current_year),
    db: AsyncSession = Depends(get_db),
):
    """Draw new circular assignments and email every giver after responding."""
    matches = await generate_matches(year, db)
    background_tasks.add_task(
        dispatch_notifications,
        [match_notification(m.giver_name, m.giver_email, m.receiver_name) for m in matches],
    )
    return _matches_payload(year, matches)


@router.put("/matches")
async def update_year_matches(
    payload: UpdateMatchesRequest,
    year: int = Depends(get_current_year),
    db: AsyncSession = Depends(get_db),
):
    """Replace this year's assignments with an explicit list (no emails)."""
    matches = await update_matches(year, payload.matches, db)
    return _matches_payload(year, matches)
