"""
Access control for projects, tasks and comments.

Capability checks are plain ``(user, resource) -> bool`` functions shared by
every REST endpoint and the realtime join handler. The ``resolve_*`` helpers
look an id up first and check permission second, so a missing resource is
always reported as NotFound before any AccessDenied.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers import CommentDBHandler, ProjectDBHandler, TaskDBHandler
from app.exceptions import AccessDenied, NotFound
from app.models import Comment, Project, Task, User
from app.utils.logger import setup_logger

logger = setup_logger("access")


def is_project_creator(user: User, project: Project) -> bool:
    return project.created_by_id == user.id


def can_access_project(user: User, project: Project) -> bool:
    """Creator or member. The creator keeps access even if absent from members."""
    return is_project_creator(user, project) or any(
        member.id == user.id for member in project.members
    )


def can_manage_project(user: User, project: Project) -> bool:
    """Title, description and columns are editable by the creator only."""
    return is_project_creator(user, project)


def can_invite_to_project(user: User, project: Project) -> bool:
    return can_access_project(user, project)


def can_access_task(user: User, project: Project) -> bool:
    return can_access_project(user, project)


def can_edit_comment(user: User, comment: Comment) -> bool:
    return comment.author_id == user.id


def can_delete_comment(user: User, comment: Comment, project: Project) -> bool:
    """Authors delete their own comments; the project creator moderates all."""
    return can_edit_comment(user, comment) or is_project_creator(user, project)


def ensure(allowed: bool, message: str = "Access denied", **context: Any) -> None:
    if not allowed:
        logger.warning(f"Access denied: {message} {context or ''}".rstrip())
        raise AccessDenied(message)


async def resolve_project(
    user: User, project_id: Any, *, db: AsyncSession, manage: bool = False
) -> Project:
    project = await ProjectDBHandler().get(project_id, db=db)
    if project is None:
        raise NotFound("Project not found")
    if manage:
        ensure(
            can_manage_project(user, project),
            "Only the creator can update the project",
            user=str(user.id),
            project=str(project.id),
        )
    else:
        ensure(
            can_access_project(user, project),
            user=str(user.id),
            project=str(project.id),
        )
    return project


async def resolve_task(
    user: User, task_id: Any, *, db: AsyncSession
) -> tuple[Task, Project]:
    task = await TaskDBHandler().get(task_id, db=db)
    if task is None:
        raise NotFound("Task not found")
    project = await ProjectDBHandler().get(task.project_id, db=db)
    if project is None:
        raise NotFound("Project not found")
    ensure(can_access_task(user, project), user=str(user.id), task=str(task.id))
    return task, project


async def resolve_comment(
    user: User, comment_id: Any, *, db: AsyncSession
) -> tuple[Comment, Task, Project]:
    """Resolve a comment with its task and project. Permission is left to the caller."""
    comment = await CommentDBHandler().get(comment_id, db=db)
    if comment is None:
        raise NotFound("Comment not found")
    task = await TaskDBHandler().get(comment.task_id, db=db)
    if task is None:
        raise NotFound("Comment not found")
    project = await ProjectDBHandler().get(task.project_id, db=db)
    if project is None:
        raise NotFound("Comment not found")
    return comment, task, project
