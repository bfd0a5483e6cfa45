"""Secret Santa assignment engine.

Assignments are partitioned by year. Callers read the clock once per request
(`current_year`) and pass that year into every function here, so a single
operation never straddles a year boundary.

Generation shuffles all users and pairs each position with the next one,
wrapping around. That yields one directed cycle through everybody: with two or
more users nobody draws themselves and everybody gives and receives exactly
once, without any retry loop.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import aliased

from models.match import Match
from models.user import User
from services.errors import NotFoundError, ValidationError
from services.identity import parse_positive_id

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2
NO_MATCH_MESSAGE = "No match assigned yet"

Pair = Tuple[int, int]


@dataclass(frozen=True)
class MatchView:
    """Assignment row joined with both participants' public identity."""

    id: int
    year: int
    giver_id: int
    giver_name: str
    giver_email: str
    receiver_id: int
    receiver_name: str
    receiver_email: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "giver": {"id": self.giver_id, "name": self.giver_name, "email": self.giver_email},
            "receiver": {"id": self.receiver_id, "name": self.receiver_name, "email": self.receiver_email},
        }


@dataclass(frozen=True)
class RevealResult:
    first_time: bool
    recipient: User

    def to_dict(self) -> Dict[str, Any]:
        return {"firstTime": self.first_time, "recipient": self.recipient.to_identity_dict()}


def current_year(now: Optional[datetime] = None) -> int:
    return (now or datetime.now()).year


def build_circular_pairs(order: Sequence[int]) -> List[Pair]:
    """Pair order[i] -> order[(i + 1) % n] for an already-shuffled order."""
    if len(order) < MIN_PARTICIPANTS:
        raise ValidationError(f"Need at least {MIN_PARTICIPANTS} users to generate matches")
    if len(set(order)) != len(order):
        raise ValueError("Participant order must not contain duplicates")
    size = len(order)
    return [(order[index], order[(index + 1) % size]) for index in range(size)]


def normalize_manual_pairs(raw_matches: Any) -> List[Pair]:
    """Structural check of an admin-supplied replacement list.

    Only shape is verified: self-assignments and repeated givers pass through
    unchanged, matching how manual edits have always been accepted.
    """
    if not isinstance(raw_matches, list) or not raw_matches:
        raise ValidationError("Invalid matches data")

    pairs: List[Pair] = []
    for entry in raw_matches:
        if not isinstance(entry, dict):
            raise ValidationError("Invalid match structure")
        giver_id = parse_positive_id(entry.get("giver_id"))
        receiver_id = parse_positive_id(entry.get("receiver_id"))
        if giver_id is None or receiver_id is None:
            raise ValidationError("Invalid match structure")
        pairs.append((giver_id, receiver_id))
    return pairs


async def _replace_year(year: int, pairs: Sequence[Pair], db: AsyncSession) -> None:
    """Swap the year's rows and reset every reveal flag as one commit.

    Nothing is flushed to a committed state until every statement succeeds, so
    readers see either the old set or the new set, never a mix or an empty year.
    """
    try:
        await db.execute(delete(Match).where(Match.year == year))
        await db.execute(update(User).values(has_seen_reveal=False))
        db.add_all(
            [Match(giver_id=giver_id, receiver_id=receiver_id, year=year) for giver_id, receiver_id in pairs]
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def list_for_year(year: int, db: AsyncSession) -> List[MatchView]:
    """All assignments for the year, ordered by giver display name."""
    giver = aliased(User)
    receiver = aliased(User)
    result = await db.execute(
        select(
            Match.id,
            Match.year,
            giver.id,
            giver.name,
            giver.email,
            receiver.id,
            receiver.name,
            receiver.email,
        )
        .join(giver, Match.giver_id == giver.id)
        .join(receiver, Match.receiver_id == receiver.id)
        .where(Match.year == year)
        .order_by(giver.name, Match.id)
    )
    return [MatchView(*row) for row in result.all()]


async def generate_matches(
    year: int,
    db: AsyncSession,
    *,
    rng: Optional[random.Random] = None,
) -> List[MatchView]:
    """Draw a fresh circular assignment over every user for the year."""
    result = await db.execute(select(User.id).order_by(User.id))
    order = [row[0] for row in result.all()]
    if len(order) < MIN_PARTICIPANTS:
        raise ValidationError(f"Need at least {MIN_PARTICIPANTS} users to generate matches")

    (rng or random.SystemRandom()).shuffle(order)
    pairs = build_circular_pairs(order)
    await _replace_year(year, pairs, db)
    logger.info("Generated %s matches for %s", len(pairs), year)
    return await list_for_year(year, db)


async def update_matches(year: int, raw_matches: Any, db: AsyncSession) -> List[MatchView]:
    """Replace the year's assignments with an admin-supplied list."""
    pairs = normalize_manual_pairs(raw_matches)
    referenced = {user_id for pair in pairs for user_id in pair}
    result = await db.execute(select(User.id).where(User.id.in_(referenced)))
    if len(set(result.scalars().all())) != len(referenced):
        raise ValidationError("Matches reference unknown users")

    await _replace_year(year, pairs, db)
    logger.info("Manually replaced matches for %s (%s rows)", year, len(pairs))
    return await list_for_year(year, db)


async def find_giver_match(user_id: int, year: int, db: AsyncSession) -> Optional[Match]:
    result = await db.execute(
        select(Match).where(Match.giver_id == user_id, Match.year == year).order_by(Match.id).limit(1)
    )
    return result.scalar_one_or_none()


async def find_santa(user_id: int, year: int, db: AsyncSession) -> Optional[User]:
    """Return the user giving to `user_id` this year, if any."""
    result = await db.execute(
        select(User)
        .join(Match, Match.giver_id == User.id)
        .where(Match.receiver_id == user_id, Match.year == year)
        .order_by(Match.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_recipient(user_id: int, year: int, db: AsyncSession) -> User:
    """Resolve the caller's recipient for the year or raise NotFoundError."""
    match = await find_giver_match(user_id, year, db)
    if not match:
        raise NotFoundError(NO_MATCH_MESSAGE)
    result = await db.execute(select(User).where(User.id == match.receiver_id))
    recipient = result.scalar_one_or_none()
    if not recipient:
        raise NotFoundError(NO_MATCH_MESSAGE)
    return recipient


async def get_match_for(user_id: int, year: int, db: AsyncSession) -> RevealResult:
    """Return the caller's recipient and whether this is the first reveal.

    The first successful read marks the reveal as seen. The flag flips through
    a conditional UPDATE, so of two concurrent first reads only one reports
    `first_time=True`.
    """
    recipient = await get_recipient(user_id, year, db)

    flipped = await db.execute(
        update(User)
        .where(User.id == user_id, User.has_seen_reveal.is_(False))
        .values(has_seen_reveal=True)
    )
    await db.commit()
    return RevealResult(first_time=bool(flipped.rowcount), recipient=recipient)
