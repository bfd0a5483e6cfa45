import asyncio
import getpass
import sys
import os

# Add parent dir to path to find the app modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import engine, Base, async_session_maker
import models  # noqa: F401
from services.credentials import create_user
from services.errors import SantaError


async def create_admin_async(email: str, name: str, password: str) -> int:
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async with async_session_maker() as db:
            user, _ = await create_user(email, name, db, password=password, is_admin=True)
    except SantaError as exc:
        print(f"\n❌ Error: {exc.message}")
        return 1
    finally:
        await engine.dispose()

    print("\n✅ Admin user created successfully!")
    print(f"  ID: {user.id}")
    print(f"  Email: {user.email}")
    print(f"  Name: {user.name}")
    print("\nYou can now login with these credentials.\n")
    return 0


def main() -> int:
    print("=== Create Admin User ===\n")
    email = input("Email: ").strip()
    name = input("Name: ").strip()
    password = getpass.getpass("Password: ")

    if not email or not name or not password:
        print("\n❌ Error: All fields are required")
        return 1

    return asyncio.run(create_admin_async(email, name, password))


if __name__ == "__main__":
    sys.exit(main())
