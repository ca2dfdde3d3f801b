from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.exceptions import DuplicateResource
from app.models.user import User
from app.utils.auth import get_password_hash
from app.utils.logger import setup_logger

logger = setup_logger("db_handlers.user")


class UserDBHandler(BaseDBHandler[User]):
    def __init__(self):
        super().__init__(User)

    @check_local_db
    async def get_user_by_email(
        self, email: str, *, db: AsyncSession = None
    ) -> User | None:
        """Get a user by email, case-insensitively."""
        try:
            stmt = select(User).filter(User.email == email.strip().lower())
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user by email '{email}': {e}")
            raise

    @check_local_db
    async def find_conflicting_user(
        self, username: str, email: str, *, db: AsyncSession = None
    ) -> User | None:
        """Return any user already holding this username or email."""
        stmt = select(User).filter(
            or_(
                func.lower(User.username) == username.lower(),
                User.email == email.strip().lower(),
            )
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def register_user(
        self, username: str, email: str, password: str, *, db: AsyncSession = None
    ) -> User:
        """Create a user with a bcrypt-hashed password; duplicates are rejected."""
        if await self.find_conflicting_user(username, email, db=db):
            raise DuplicateResource("User already exists")
        try:
            return await self.create(
                {
                    "username": username,
                    "email": email.strip().lower(),
                    "hashed_password": get_password_hash(password),
                },
                db=db,
            )
        except IntegrityError as e:
            # Lost a race with a concurrent registration
            raise DuplicateResource("User already exists") from e
