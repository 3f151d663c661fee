"""
Script to create the default admin user.

Run this once after the database schema exists. Does nothing when a user
with the configured admin username or email is already present.
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import settings
from app.crud.user import user as user_crud
from app.database import async_session, engine
from app.schemas.user import UserCreate


async def seed_admin() -> bool:
    """Create the admin account if missing. Returns True when one was created."""
    print("=" * 80)
    print(f"{settings.PROJECT_NAME} - Admin Seed")
    print("=" * 80)

    async with async_session() as db:
        existing = await user_crud.find_conflict(
            db,
            username=settings.FIRST_ADMIN_USERNAME,
            email=settings.FIRST_ADMIN_EMAIL,
        )
        if existing:
            print(
                f"\nA user already holds the admin username or email "
                f"(id={existing.id}, username={existing.username}, email={existing.email}). Nothing to do."
            )
            return False

        print("\nAdmin user not found, creating one...")
        admin = await user_crud.create(
            db,
            obj_in=UserCreate(
                username=settings.FIRST_ADMIN_USERNAME,
                email=settings.FIRST_ADMIN_EMAIL,
                password=settings.FIRST_ADMIN_PASSWORD,
                is_active=True,
                is_admin=True,
            ),
        )

    print(f"\nDefault admin user created: id={admin.id}, username={admin.username}, email={admin.email}")
    if settings.FIRST_ADMIN_PASSWORD == "admin":
        print("\nWARNING: the admin password is the default. Change it after signing in.")
    print("=" * 80 + "\n")
    return True


async def main():
    try:
        await seed_admin()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
