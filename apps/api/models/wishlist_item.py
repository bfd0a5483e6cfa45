"""WishlistItem model for enriched retail product links."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WishlistItem(Base):
    """Product link on a user's wishlist; title/image/price are best-effort."""

    __tablename__ = "wishlist_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amazon_url = Column(Text, nullable=False)
    title = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    price = Column(String, nullable=True)
    added_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "amazonUrl": self.amazon_url,
            "title": self.title,
            "imageUrl": self.image_url,
            "price": self.price,
            "addedAt": self.added_at.isoformat() if self.added_at else None,
        }
