from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.comment import Comment
from app.utils.logger import setup_logger

logger = setup_logger("comment_db_handler")


class CommentDBHandler(BaseDBHandler[Comment]):
    def __init__(self):
        super().__init__(Comment)

    @check_local_db
    async def get_comments_for_task(
        self, task_id: uuid.UUID, *, newest_first: bool = True, db: AsyncSession = None
    ) -> list[Comment]:
        order = Comment.created_at.desc() if newest_first else Comment.created_at
        stmt = select(Comment).where(Comment.task_id == task_id).order_by(order)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @check_local_db
    async def delete_comments_for_task(
        self, task_id: uuid.UUID, *, db: AsyncSession = None
    ) -> int:
        """Delete every comment referencing the task. Does not commit."""
        result = await db.execute(delete(Comment).where(Comment.task_id == task_id))
        return result.rowcount or 0

    @check_local_db
    async def get_comments_for_tasks(
        self, task_ids: Iterable[uuid.UUID], *, db: AsyncSession = None
    ) -> list[Comment]:
        """Comments of several tasks at once, oldest first."""
        task_ids = list(task_ids)
        if not task_ids:
            return []
        stmt = (
            select(Comment)
            .where(Comment.task_id.in_(task_ids))
            .order_by(Comment.created_at)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
