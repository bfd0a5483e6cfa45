"""Wishlist items: validation, enrichment and owner-scoped access."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional
from urllib.parse import urlsplit

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.user import User
from models.wishlist_item import WishlistItem
from services.assignments import find_santa, get_recipient
from services.errors import AuthorizationError, NotFoundError, ValidationError
from services.notifications import Notification, wishlist_update_notification
from services.product_info import fetch_product_info

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddedItem:
    item: WishlistItem
    # Email for the adder's Santa, when one exists this year.
    notification: Optional[Notification] = None


@dataclass(frozen=True)
class RecipientWishlist:
    recipient: User
    items: List[WishlistItem]

    def to_dict(self) -> dict:
        return {
            "recipient": {"name": self.recipient.name},
            "items": [item.to_public_dict() for item in self.items],
        }


def validate_product_url(raw_url: Any) -> str:
    """Return the trimmed URL if it is an https link on an allowed retail host."""
    if not raw_url or not isinstance(raw_url, str):
        raise ValidationError("Amazon URL required")

    url = raw_url.strip()
    try:
        parsed = urlsplit(url)
        hostname = (parsed.hostname or "").lower()
    except ValueError as exc:
        raise ValidationError("Invalid URL format") from exc
    if not parsed.scheme or not hostname:
        raise ValidationError("Invalid URL format")

    allowed_hosts = {host.strip().lower() for host in settings.WISHLIST_ALLOWED_HOSTS}
    if hostname not in allowed_hosts:
        raise ValidationError("Must be an Amazon.com URL")
    if parsed.scheme.lower() != "https":
        raise ValidationError("URL must use HTTPS")
    return url


async def _items_for(user_id: int, db: AsyncSession) -> List[WishlistItem]:
    result = await db.execute(
        select(WishlistItem)
        .where(WishlistItem.user_id == user_id)
        .order_by(WishlistItem.added_at.desc(), WishlistItem.id.desc())
    )
    return list(result.scalars().all())


async def list_own(user_id: int, db: AsyncSession) -> List[WishlistItem]:
    return await _items_for(user_id, db)


async def add_item(user: User, raw_url: Any, year: int, db: AsyncSession) -> AddedItem:
    """Validate, enrich and store a new item for `user`.

    Enrichment failures leave title/image/price empty. The returned
    notification (if any) is for the caller to dispatch after responding.
    """
    url = validate_product_url(raw_url)
    info = await fetch_product_info(url)

    item = WishlistItem(
        user_id=user.id,
        amazon_url=url,
        title=info.title,
        image_url=info.image_url,
        price=info.price,
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)

    notification: Optional[Notification] = None
    try:
        santa = await find_santa(user.id, year, db)
        if santa and santa.email:
            notification = wishlist_update_notification(santa.email, santa.name, user.name, item.title)
        elif santa:
            logger.warning("Skipping wishlist email: Santa %s has no email", santa.id)
    except Exception:
        logger.exception("Could not resolve Santa for user %s", user.id)

    return AddedItem(item=item, notification=notification)


async def list_for_recipient(user_id: int, year: int, db: AsyncSession) -> RecipientWishlist:
    """Wishlist of the caller's assigned recipient; only the giver can see it."""
    recipient = await get_recipient(user_id, year, db)
    return RecipientWishlist(recipient=recipient, items=await _items_for(recipient.id, db))


async def remove_item(item_id: int, user_id: int, db: AsyncSession) -> None:
    result = await db.execute(select(WishlistItem).where(WishlistItem.id == item_id))
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError("Item not found")
    if item.user_id != user_id:
        raise AuthorizationError("Cannot delete another user's item")

    await db.execute(delete(WishlistItem).where(WishlistItem.id == item_id))
    await db.commit()
