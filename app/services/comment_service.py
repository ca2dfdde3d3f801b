"""Comment operations on tasks."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers import CommentDBHandler
from app.models import Comment, User
from app.schemas import (
    CommentCreate,
    CommentOut,
    CommentUpdate,
    EventKind,
    TaskOut,
    dump,
)
from app.services.access import (
    can_access_project,
    can_delete_comment,
    can_edit_comment,
    ensure,
    resolve_comment,
    resolve_task,
)
from app.services.board_sync import BoardCoordinator
from app.services.broadcast import EventPublisher
from app.services.notification_service import NotificationService
from app.utils.logger import setup_logger

logger = setup_logger("comment_service")


class CommentService:
    def __init__(self, publisher: EventPublisher | None = None):
        self.publisher = publisher
        self.comments = CommentDBHandler()
        self.coordinator = BoardCoordinator()
        self.notifier = NotificationService(publisher)

    async def add_comment(
        self,
        user: User,
        task_id: uuid.UUID,
        data: CommentCreate,
        *,
        db: AsyncSession,
    ) -> TaskOut:
        """Add a comment and return the task it belongs to, comments populated."""
        task, project = await resolve_task(user, task_id, db=db)

        async with self.coordinator.transaction(
            project, db=db, publisher=self.publisher, refresh=[task]
        ) as tx:
            comment = Comment(
                id=uuid.uuid4(),
                content=data.content,
                author_id=user.id,
                task_id=task.id,
            )
            comment.author = user
            db.add(comment)
            self.coordinator.attach_comment(task, comment)
            tx.emit(
                EventKind.COMMENT_ADDED,
                lambda: {
                    "taskId": str(task.id),
                    "comment": dump(CommentOut.from_comment(comment)),
                },
            )

        logger.info(f"Comment {comment.id} added to task {task.id} by {user.username}")
        await self.notifier.comment_added(comment, task, project, user, db=db)
        comments = await self.comments.get_comments_for_task(task.id, db=db)
        return TaskOut.from_task(task, comments)

    async def list_for_task(
        self, user: User, task_id: uuid.UUID, *, db: AsyncSession
    ) -> list[CommentOut]:
        task, _ = await resolve_task(user, task_id, db=db)
        comments = await self.comments.get_comments_for_task(task.id, db=db)
        return [CommentOut.from_comment(comment) for comment in comments]

    async def get_comment(
        self, user: User, comment_id: uuid.UUID, *, db: AsyncSession
    ) -> CommentOut:
        comment, _, project = await resolve_comment(user, comment_id, db=db)
        ensure(
            can_access_project(user, project),
            user=str(user.id),
            comment=str(comment.id),
        )
        return CommentOut.from_comment(comment)

    async def update_comment(
        self,
        user: User,
        comment_id: uuid.UUID,
        data: CommentUpdate,
        *,
        db: AsyncSession,
    ) -> CommentOut:
        comment, task, project = await resolve_comment(user, comment_id, db=db)
        ensure(
            can_edit_comment(user, comment),
            "Only the author can edit this comment",
            user=str(user.id),
            comment=str(comment.id),
        )

        async with self.coordinator.transaction(
            project, db=db, publisher=self.publisher, refresh=[comment]
        ) as tx:
            comment.content = data.content
            tx.emit(
                EventKind.COMMENT_UPDATED,
                lambda: {
                    "commentId": str(comment.id),
                    "comment": dump(CommentOut.from_comment(comment)),
                    "taskId": str(task.id),
                },
            )
        return CommentOut.from_comment(comment)

    async def delete_comment(
        self, user: User, comment_id: uuid.UUID, *, db: AsyncSession
    ) -> None:
        comment, task, project = await resolve_comment(user, comment_id, db=db)
        ensure(
            can_delete_comment(user, comment, project),
            "Only the author or the project creator can delete this comment",
            user=str(user.id),
            comment=str(comment.id),
        )
        deleted_id, parent_id = str(comment.id), str(task.id)

        async with self.coordinator.transaction(
            project, db=db, publisher=self.publisher, refresh=[task, comment]
        ) as tx:
            self.coordinator.detach_comment(task, comment.id)
            await db.delete(comment)
            tx.emit(
                EventKind.COMMENT_DELETED,
                lambda: {"commentId": deleted_id, "taskId": parent_id},
            )
        logger.info(f"Comment {deleted_id} deleted from task {parent_id} by {user.username}")
