"""
Wishlist router: the caller's own items and their recipient's list.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_year, require_authenticated
from services.errors import ValidationError
from services.identity import parse_positive_id
from services.notifications import dispatch_notifications
from services.wishlist import add_item, list_for_recipient, list_own, remove_item

router = APIRouter()
logger = logging.getLogger(__name__)


class AddWishlistItemRequest(BaseModel):
    amazon_url: Optional[Any] = Field(default=None, alias="amazonUrl")


@router.get("")
async def get_my_wishlist(
    user: User = Depends(require_authenticated),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's items, newest first."""
    items = await list_own(user.id, db)
    return [item.to_public_dict() for item in items]


@router.post("", status_code=201)
async def add_wishlist_item(
    payload: AddWishlistItemRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_authenticated),
    year: int = Depends(get_current_year),
    db: AsyncSession = Depends(get_db),
):
    """Add a product link; the caller's Santa is emailed after the response."""
    added = await add_item(user, payload.amazon_url, year, db)
    if added.notification:
        background_tasks.add_task(dispatch_notifications, [added.notification])
    return added.item.to_public_dict()


@router.get("/recipient")
async def get_recipient_wishlist(
    user: User = Depends(require_authenticated),
    year: int = Depends(get_current_year),
    db: AsyncSession = Depends(get_db),
):
    """Return the assigned recipient's name and items."""
    wishlist = await list_for_recipient(user.id, year, db)
    return wishlist.to_dict()


@router.delete("/{item_id}")
async def delete_wishlist_item(
    item_id: str,
    user: User = Depends(require_authenticated),
    db: AsyncSession = Depends(get_db),
):
    """Delete one of the caller's own items."""
    parsed_id = parse_positive_id(item_id)
    if parsed_id is None:
        raise ValidationError("Invalid item ID")
    await remove_item(parsed_id, user.id, db)
    return {"success": True}
