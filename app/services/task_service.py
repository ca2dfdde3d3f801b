"""
Task operations. Every write goes through ``BoardCoordinator`` so the
project's column lists always mirror the tasks' own columns.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers import (
    CommentDBHandler,
    ProjectDBHandler,
    TaskDBHandler,
    UserDBHandler,
)
from app.exceptions import InvalidReference, ValidationFailure
from app.models import Comment, Project, Task, User
from app.schemas import EventKind, TaskAssign, TaskCreate, TaskOut, TaskUpdate, dump
from app.services.access import can_access_project, ensure, resolve_project, resolve_task
from app.services.board_sync import BoardCoordinator
from app.services.broadcast import EventPublisher
from app.services.notification_service import NotificationService
from app.utils.logger import setup_logger

logger = setup_logger("task_service")

# Plain fields copied onto the task as sent
SIMPLE_FIELDS = ("title", "description", "due_date", "labels", "completed")


class TaskService:
    def __init__(self, publisher: EventPublisher | None = None):
        self.publisher = publisher
        self.projects = ProjectDBHandler()
        self.tasks = TaskDBHandler()
        self.comments = CommentDBHandler()
        self.users = UserDBHandler()
        self.coordinator = BoardCoordinator()
        self.notifier = NotificationService(publisher)

    async def task_out(self, task: Task, *, db: AsyncSession) -> TaskOut:
        comments = await self.comments.get_comments_for_task(task.id, db=db)
        return TaskOut.from_task(task, comments)

    async def _resolve_assignees(
        self, project: Project, user_ids: Sequence[uuid.UUID], *, db: AsyncSession
    ) -> list[User]:
        """Assignees must exist and have access to the task's project."""
        found = await self.users.get_many_by_ids(user_ids, db=db)
        assignees = []
        for user_id in dict.fromkeys(user_ids):
            user = found.get(user_id)
            if user is None:
                raise InvalidReference(f"User {user_id} not found")
            if not can_access_project(user, project):
                raise ValidationFailure(
                    f"User {user.username} is not a member of this project"
                )
            assignees.append(user)
        return assignees

    def _emit_updated(self, tx, task: Task, comments: Sequence[Comment]) -> None:
        tx.emit(
            EventKind.TASK_UPDATED,
            lambda: {
                "taskId": str(task.id),
                "task": dump(TaskOut.from_task(task, comments)),
            },
        )

    async def list_for_project(
        self, user: User, project_id: uuid.UUID, *, db: AsyncSession
    ) -> list[TaskOut]:
        project = await resolve_project(user, project_id, db=db)
        tasks = await self.tasks.get_tasks_for_project(project.id, db=db)
        comments = await self.comments.get_comments_for_tasks(
            [task.id for task in tasks], db=db
        )
        by_task: dict[uuid.UUID, list[Comment]] = {}
        for comment in comments:
            by_task.setdefault(comment.task_id, []).append(comment)
        return [TaskOut.from_task(task, by_task.get(task.id, ())) for task in tasks]

    async def get_task(
        self, user: User, task_id: uuid.UUID, *, db: AsyncSession
    ) -> TaskOut:
        task, _ = await resolve_task(user, task_id, db=db)
        return await self.task_out(task, db=db)

    async def create_task(
        self, user: User, data: TaskCreate, *, db: AsyncSession
    ) -> TaskOut:
        project = await self.projects.get(data.project_id, db=db)
        if project is None:
            raise InvalidReference("Project not found")
        ensure(
            can_access_project(user, project),
            user=str(user.id),
            project=str(project.id),
        )
        assignees = await self._resolve_assignees(project, data.assignees, db=db)

        async with self.coordinator.transaction(
            project, db=db, publisher=self.publisher
        ) as tx:
            task = Task(
                id=uuid.uuid4(),
                title=data.title,
                description=data.description,
                project_id=project.id,
                column=data.column or tx.project.column_titles[0],
                due_date=data.due_date,
                priority=data.priority.value,
                labels=data.labels,
                completed=False,
                comment_ids=[],
                created_by_id=user.id,
            )
            self.coordinator.link_new_task(tx, task)
            task.creator = user
            task.assignees = assignees
            db.add(task)
            tx.emit(EventKind.TASK_CREATED, lambda: {"task": dump(TaskOut.from_task(task))})

        logger.info(
            f"Task {task.id} '{task.title}' created in '{task.column}' of project {project.id}"
        )
        await self.notifier.task_assignment(task, assignees, user, db=db)
        return TaskOut.from_task(task)

    async def update_task(
        self,
        user: User,
        task_id: uuid.UUID,
        data: TaskUpdate,
        *,
        db: AsyncSession,
    ) -> TaskOut:
        task, project = await resolve_task(user, task_id, db=db)
        changes = data.changes()
        new_assignees: list[User] = []

        async with self.coordinator.transaction(
            project, db=db, publisher=self.publisher, refresh=[task]
        ) as tx:
            if "assignees" in changes:
                assignees = await self._resolve_assignees(
                    tx.project, changes["assignees"], db=db
                )
                current = {assignee.id for assignee in task.assignees}
                new_assignees = [a for a in assignees if a.id not in current]
                task.assignees = assignees
            if "column" in changes:
                self.coordinator.move_task(tx, task, changes["column"])
            if "priority" in changes:
                task.priority = changes["priority"].value
            for name in SIMPLE_FIELDS:
                if name in changes:
                    setattr(task, name, changes[name])

            comments = await self.comments.get_comments_for_task(task.id, db=db)
            self._emit_updated(tx, task, comments)

        await self.notifier.task_assignment(task, new_assignees, user, db=db)
        return TaskOut.from_task(task, comments)

    async def assign_task(
        self,
        user: User,
        task_id: uuid.UUID,
        data: TaskAssign,
        *,
        db: AsyncSession,
    ) -> TaskOut:
        task, project = await resolve_task(user, task_id, db=db)
        new_assignees: list[User] = []

        async with self.coordinator.transaction(
            project, db=db, publisher=self.publisher, refresh=[task]
        ) as tx:
            (assignee,) = await self._resolve_assignees(
                tx.project, [data.user_id], db=db
            )
            if all(existing.id != assignee.id for existing in task.assignees):
                task.assignees = [*task.assignees, assignee]
                new_assignees.append(assignee)
            comments = await self.comments.get_comments_for_task(task.id, db=db)
            self._emit_updated(tx, task, comments)

        await self.notifier.task_assignment(task, new_assignees, user, db=db)
        return TaskOut.from_task(task, comments)

    async def delete_task(
        self, user: User, task_id: uuid.UUID, *, db: AsyncSession
    ) -> None:
        task, project = await resolve_task(user, task_id, db=db)
        deleted_id = str(task.id)

        async with self.coordinator.transaction(
            project, db=db, publisher=self.publisher, refresh=[task]
        ) as tx:
            await self.coordinator.delete_task(tx, task, db=db)
            tx.emit(EventKind.TASK_DELETED, lambda: {"taskId": deleted_id})
