import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from http.cookies import SimpleCookie
from typing import List, Optional
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base, get_db
from main import app
from models.user import User
from routers.auth_scope import get_current_year
from services.notifications import Notification
from services.passwords import hash_password
from services.session_token import issue_session


TEST_YEAR = 2025
DEFAULT_PASSWORD = "Sleigh5#Bells#Ring"


class NotificationRecorder:
    """Stands in for dispatch_notifications and keeps every batch."""

    def __init__(self) -> None:
        self.batches: List[List[Notification]] = []

    async def __call__(self, notifications) -> int:
        batch = list(notifications)
        self.batches.append(batch)
        return len(batch)

    @property
    def sent(self) -> List[Notification]:
        return [notification for batch in self.batches for notification in batch]


def session_cookie(token: str) -> dict:
    return {"Cookie": f"session_id={token}"}


def set_cookie_value(response, name: str = "session_id") -> Optional[str]:
    """Return the cookie value set by a response, or None when it was cleared/absent."""
    for header in response.headers.get_list("set-cookie"):
        parsed = SimpleCookie()
        parsed.load(header)
        if name in parsed:
            return parsed[name].value or None
    return None


async def seed_user(
    session_maker,
    email: str,
    name: str,
    *,
    password: str = DEFAULT_PASSWORD,
    is_admin: bool = False,
    has_seen_reveal: bool = False,
) -> int:
    async with session_maker() as session:
        user = User(
            email=email.lower(),
            name=name,
            password_hash=hash_password(password),
            is_admin=is_admin,
            has_seen_reveal=has_seen_reveal,
        )
        session.add(user)
        await session.commit()
        return user.id


async def login_as(session_maker, user_id: int) -> dict:
    async with session_maker() as session:
        row = await issue_session(user_id, session)
        return session_cookie(row.id)


@pytest.fixture(autouse=True)
def fast_password_hashing():
    """bcrypt at its minimum cost keeps the suite quick."""
    with patch("services.passwords.settings.BCRYPT_ROUNDS", 4):
        yield


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "santa.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def santa_client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    recorder = NotificationRecorder()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_year] = lambda: TEST_YEAR
    with (
        patch("routers.admin.dispatch_notifications", recorder),
        patch("routers.wishlist.dispatch_notifications", recorder),
    ):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client, session_maker, recorder

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_current_year, None)
