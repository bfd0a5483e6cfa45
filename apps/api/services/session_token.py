"""Opaque session token helpers for cookie-authenticated users.

A session is `Active` while its row exists and `expires_at` is in the future,
`Expired` once that instant passes (the row may linger until the sweep), and
`Purged` when the row is deleted by logout, credential reset, user deletion or
the periodic sweep. Validation never depends on the sweep having run.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import async_session_maker
from models.session import Session
from models.user import User

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def session_ttl() -> timedelta:
    return timedelta(days=max(int(settings.SESSION_TTL_DAYS), 1))


async def issue_session(user_id: int, db: AsyncSession, *, now: Optional[datetime] = None) -> Session:
    """Create a session row for the user and return it (token is `Session.id`)."""
    issued_at = now or _now()
    row = Session(
        id=secrets.token_urlsafe(32),
        user_id=user_id,
        expires_at=issued_at + session_ttl(),
    )
    db.add(row)
    await db.commit()
    return row


async def validate_session(
    token: Optional[str],
    db: AsyncSession,
    *,
    now: Optional[datetime] = None,
) -> Optional[User]:
    """Resolve the user owning a live session, or None when unauthenticated."""
    token = (token or "").strip()
    if not token:
        return None

    result = await db.execute(
        select(Session).where(
            Session.id == token,
            Session.expires_at > (now or _now()),
        )
    )
    session_row = result.scalar_one_or_none()
    if not session_row:
        return None

    user_result = await db.execute(select(User).where(User.id == session_row.user_id))
    user = user_result.scalar_one_or_none()
    if not user:
        # Owner vanished without the cascade; drop the orphan.
        await db.execute(delete(Session).where(Session.id == token))
        await db.commit()
        return None
    return user


async def revoke_session(token: Optional[str], db: AsyncSession) -> None:
    """Delete a single session; unknown tokens are ignored."""
    token = (token or "").strip()
    if not token:
        return
    await db.execute(delete(Session).where(Session.id == token))
    await db.commit()


async def revoke_user_sessions(user_id: int, db: AsyncSession, *, commit: bool = True) -> int:
    """Delete every session owned by the user."""
    result = await db.execute(delete(Session).where(Session.user_id == user_id))
    if commit:
        await db.commit()
    return int(result.rowcount or 0)


async def sweep_expired_sessions(db: AsyncSession, *, now: Optional[datetime] = None) -> int:
    """Delete all sessions whose expiry is at or before now."""
    result = await db.execute(delete(Session).where(Session.expires_at <= (now or _now())))
    await db.commit()
    return int(result.rowcount or 0)


async def run_session_sweep() -> int:
    """Sweep using a standalone session; failures are logged, never raised."""
    try:
        async with async_session_maker() as db:
            removed = await sweep_expired_sessions(db)
    except Exception:
        logger.exception("Expired session sweep failed")
        return 0
    if removed:
        logger.info("Cleaned up %s expired sessions", removed)
    return removed
