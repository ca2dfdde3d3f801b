from app.dependencies.auth import get_current_user, get_user_from_token
from app.dependencies.realtime import get_broadcaster, get_publisher

__all__ = [
    "get_current_user",
    "get_user_from_token",
    "get_broadcaster",
    "get_publisher",
]
