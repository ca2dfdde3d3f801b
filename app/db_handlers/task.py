from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.task import Task
from app.utils.logger import setup_logger

logger = setup_logger("task_db_handler")


class TaskDBHandler(BaseDBHandler[Task]):
    def __init__(self):
        super().__init__(Task)

    @check_local_db
    async def get_tasks_for_project(
        self, project_id: uuid.UUID, *, db: AsyncSession = None
    ) -> list[Task]:
        """All tasks of a project in creation order."""
        stmt = (
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.created_at, Task.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
