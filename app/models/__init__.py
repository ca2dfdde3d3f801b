"""
Database models for the kanban board.

Architecture: User → Project (embedded columns) → Task → Comment, plus
Notifications addressed to users.
"""

from app.models.comment import Comment
from app.models.notification import EntityKind, Notification, NotificationType
from app.models.project import Project, project_members
from app.models.task import Task, TaskPriority, task_assignees
from app.models.user import User

__all__ = [
    # Core board models
    "User",
    "Project",
    "Task",
    "Comment",
    "Notification",
    # Association tables
    "project_members",
    "task_assignees",
    # Enumerations
    "TaskPriority",
    "NotificationType",
    "EntityKind",
]
