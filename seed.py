"""Seed script — populates the database with sample users for testing."""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from leadflow_otp.database.engine import async_session_factory, init_db
from leadflow_otp.models.user import User

SAMPLE_USERS = [
    User(name="Alice Johnson", email="alice@example.com", two_factor_enabled=True),
    User(name="Bob Smith", email="bob@example.com"),
    User(name="Carol Davis", email="carol@example.com", two_factor_enabled=True),
]


async def seed() -> None:
    """Insert sample users into the database."""
    await init_db()
    async with async_session_factory() as session:
        session: AsyncSession
        for user in SAMPLE_USERS:
            session.add(user)
        await session.commit()
    print(f"✅ Seeded {len(SAMPLE_USERS)} users into the database.")


if __name__ == "__main__":
    asyncio.run(seed())
