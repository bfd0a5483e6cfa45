"""User model."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, false

from database import Base


class User(Base):
    """Exchange participant; admins manage accounts and assignments."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Stored lower-cased; uniqueness is therefore case-insensitive.
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False, server_default=false())
    has_seen_reveal = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_public_dict(self) -> dict:
        """Serialize the user without credential material."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "isAdmin": bool(self.is_admin),
            "hasSeenReveal": bool(self.has_seen_reveal),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def to_identity_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}
