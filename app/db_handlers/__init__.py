from app.db_handlers.base import BaseDBHandler, check_local_db
from app.db_handlers.comment import CommentDBHandler
from app.db_handlers.notification import NotificationDBHandler
from app.db_handlers.project import ProjectDBHandler
from app.db_handlers.task import TaskDBHandler
from app.db_handlers.user import UserDBHandler

__all__ = [
    "BaseDBHandler",
    "check_local_db",
    "UserDBHandler",
    "ProjectDBHandler",
    "TaskDBHandler",
    "CommentDBHandler",
    "NotificationDBHandler",
]
