"""Session model for cookie-based authentication."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from database import Base


class Session(Base):
    """Opaque bearer token bound to a user until `expires_at`."""

    __tablename__ = "sessions"

    id = Column(String, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
