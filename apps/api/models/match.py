"""Match model: one giver -> recipient assignment for a year."""

from sqlalchemy import Column, ForeignKey, Index, Integer

from database import Base


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (Index("ix_matches_year_giver", "year", "giver_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    giver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
