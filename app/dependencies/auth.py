"""
Authentication dependencies for FastAPI route protection.
"""


from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.db_handlers import UserDBHandler
from app.exceptions import Unauthenticated
from app.models import User
from app.utils.auth import extract_user_id_from_token

# HTTP Bearer token extraction; a missing header is reported as Unauthenticated below
security = HTTPBearer(auto_error=False)


async def get_user_from_token(token: str | None, db: AsyncSession) -> User | None:
    """Resolve a bearer token to its user, or None when the token is unusable."""
    if not token:
        return None
    user_id = extract_user_id_from_token(token)
    if user_id is None:
        return None
    return await UserDBHandler().get(user_id, db=db)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_app_db),
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.
    """
    if credentials is None:
        raise Unauthenticated("Not authorized, no token")

    user = await get_user_from_token(credentials.credentials, db)
    if user is None:
        raise Unauthenticated("Not authorized, token failed")

    return user
