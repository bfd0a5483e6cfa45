"""User accounts: credential checks and admin account management."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.match import Match
from models.session import Session
from models.user import User
from models.wishlist_item import WishlistItem
from services.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from services.identity import is_valid_email, normalize_email, normalize_name
from services.passwords import generate_password, hash_password, verify_password
from services.session_token import revoke_user_sessions

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
# bcrypt only considers the first 72 bytes of input.
MAX_PASSWORD_BYTES = 72


async def _find_by_email(email: str, db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def _email_taken_by_other(email: str, user_id: int, db: AsyncSession) -> bool:
    result = await db.execute(select(User.id).where(User.email == email, User.id != user_id))
    return result.scalar_one_or_none() is not None


async def get_user(user_id: int, db: AsyncSession) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


async def _commit_unique_email(db: AsyncSession) -> None:
    # The unique index is the final arbiter when two writers pass the lookup together.
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Email already exists") from exc


def _validated_password(password: str) -> str:
    if not password:
        raise ValidationError("Password cannot be empty")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


async def verify_credentials(email: Optional[str], password: Optional[str], db: AsyncSession) -> User:
    """Return the user for a valid email/password pair.

    Unknown email, malformed email and wrong password all fail identically so
    callers cannot probe which accounts exist.
    """
    if not email or not password:
        raise ValidationError("Email and password required")

    normalized = normalize_email(email)
    if not is_valid_email(normalized):
        raise AuthenticationError(INVALID_CREDENTIALS)

    user = await _find_by_email(normalized, db)
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError(INVALID_CREDENTIALS)
    return user


async def list_users(db: AsyncSession) -> List[User]:
    result = await db.execute(select(User).order_by(User.name, User.id))
    return list(result.scalars().all())


async def create_user(
    email: Optional[str],
    name: Optional[str],
    db: AsyncSession,
    *,
    password: Optional[str] = None,
    is_admin: bool = False,
) -> Tuple[User, str]:
    """Create a user and return it with the plaintext password.

    The plaintext is handed back exactly once for out-of-band delivery; only
    its hash is stored.
    """
    if not email or not name:
        raise ValidationError("Email and name required")

    normalized_email = normalize_email(email)
    normalized_name = normalize_name(name)
    if not is_valid_email(normalized_email):
        raise ValidationError("Invalid email format")
    if not normalized_name:
        raise ValidationError("Name cannot be empty")

    if await _find_by_email(normalized_email, db):
        raise ConflictError("Email already exists")

    plaintext = _validated_password(password) if password else generate_password()
    user = User(
        email=normalized_email,
        name=normalized_name,
        password_hash=hash_password(plaintext),
        is_admin=bool(is_admin),
        has_seen_reveal=False,
    )
    db.add(user)
    await _commit_unique_email(db)
    await db.refresh(user)
    logger.info("Created user %s (admin=%s)", user.id, user.is_admin)
    return user, plaintext


async def reset_credential(user_id: int, db: AsyncSession) -> str:
    """Replace the user's password with a fresh passphrase and end their sessions.

    Reveal state is deliberately left untouched.
    """
    user = await get_user(user_id, db)
    plaintext = generate_password()
    user.password_hash = hash_password(plaintext)
    await revoke_user_sessions(user.id, db, commit=False)
    await db.commit()
    logger.info("Reset credential for user %s", user.id)
    return plaintext


async def update_profile(
    user_id: int,
    db: AsyncSession,
    *,
    name: Optional[str] = None,
    email: Optional[str] = None,
) -> User:
    """Apply a partial name/email update; omitted fields are left unchanged."""
    user = await get_user(user_id, db)

    if not name and not email:
        raise ValidationError("At least one field (name or email) is required")

    normalized_name = normalize_name(name) if name is not None else None
    normalized_email = normalize_email(email) if email else None

    if name is not None and not normalized_name:
        raise ValidationError("Name cannot be empty")
    if normalized_email is not None and not is_valid_email(normalized_email):
        raise ValidationError("Invalid email format")

    if normalized_email and normalized_email != (user.email or "").lower():
        if await _email_taken_by_other(normalized_email, user.id, db):
            raise ConflictError("Email already exists")

    if normalized_name:
        user.name = normalized_name
    if normalized_email:
        user.email = normalized_email
    await _commit_unique_email(db)
    await db.refresh(user)
    return user


async def delete_user(user_id: int, acting_user_id: int, db: AsyncSession) -> None:
    """Delete a user and everything referencing them in one transaction."""
    if user_id == acting_user_id:
        raise ValidationError("Cannot delete your own account")

    await get_user(user_id, db)

    try:
        await db.execute(delete(WishlistItem).where(WishlistItem.user_id == user_id))
        await db.execute(
            delete(Match).where(or_(Match.giver_id == user_id, Match.receiver_id == user_id))
        )
        await db.execute(delete(Session).where(Session.user_id == user_id))
        await db.execute(delete(User).where(User.id == user_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Deleted user %s and dependent rows", user_id)
