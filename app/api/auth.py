# Authentication API routes for user registration, login, and profile management

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.db_handlers import UserDBHandler
from app.dependencies.auth import get_current_user
from app.exceptions import Unauthenticated
from app.models import User
from app.schemas import AuthResponse, UserInfo, UserLogin, UserRegister
from app.utils.auth import create_user_token, verify_password
from app.utils.logger import setup_logger

logger = setup_logger("api.auth")

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def register_user(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_app_db),
):
    """Register a new user and return a token for immediate use."""
    # Password is hashed with bcrypt before storage
    user = await UserDBHandler().register_user(
        user_data.username, user_data.email, user_data.password, db=db
    )
    logger.info(f"Registered user {user.username} ({user.id})")

    return AuthResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        token=create_user_token(user.id),
    )


@router.post("/login", response_model=AuthResponse)
async def login_user(
    user_data: UserLogin,
    db: AsyncSession = Depends(get_app_db),
):
    """Authenticate user and return JWT token for API access."""
    user = await UserDBHandler().get_user_by_email(user_data.email, db=db)

    if not user or not verify_password(user_data.password, user.hashed_password):
        raise Unauthenticated("Invalid email or password")

    return AuthResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        token=create_user_token(user.id),
    )


@router.get("/me", response_model=UserInfo)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """Retrieve current authenticated user's profile information."""
    return UserInfo(
        id=current_user.id,
        username=current_user.username,
        email=current_user.email,
        avatar=current_user.avatar,
        created_at=current_user.created_at,
    )
