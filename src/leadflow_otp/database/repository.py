"""User repository — resolves OTP subjects from the user table."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadflow_otp.models.user import User, normalize_email


class UserRepository:
    """Encapsulates all database queries related to users."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_email(self, email: str) -> User | None:
        """Look up an active user by email, ignoring case.

        Stored emails are already normalised by :class:`User`, so the
        submitted address is normalised the same way before matching.
        """
        stmt = select(User).where(
            User.email == normalize_email(email), User.is_active.is_(True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> User | None:
        stmt = select(User).where(User.id == user_id, User.is_active.is_(True))
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
