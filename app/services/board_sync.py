"""
Board consistency coordinator.

A task's ``column`` field is the source of truth for where it lives; every
project column carries a task-id list that mirrors it. This module is the
only place allowed to change either side, so the two cannot drift apart:

    create  → append the id to the target column
    move    → remove the id from every column, append it to the new one
    delete  → remove the id from every column, cascade its comments
    comment → append/remove the id on the task's comment list

Mutations run inside ``BoardCoordinator.transaction``: a per-project lock
serializes writers in this process, the project row is re-read under the
lock, the commit happens before any event is published, and events leave in
commit order. A write that loses a race with another process trips the
project's version counter and surfaces as ConcurrentModification.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
import weakref
from collections.abc import Callable, Iterable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.db_handlers import CommentDBHandler, TaskDBHandler
from app.exceptions import ConcurrentModification, NotFound, ValidationFailure
from app.models import Comment, Project, Task
from app.schemas import BoardEvent, ColumnUpdate, EventKind
from app.services.broadcast import EventPublisher
from app.utils.logger import setup_logger

logger = setup_logger("board_sync")

_project_locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = (
    weakref.WeakValueDictionary()
)


def project_lock(project_id: uuid.UUID) -> asyncio.Lock:
    lock = _project_locks.get(project_id)
    if lock is None:
        lock = asyncio.Lock()
        _project_locks[project_id] = lock
    return lock


def find_column(columns: Sequence[dict[str, Any]], title: str) -> dict[str, Any] | None:
    """Exact title match."""
    for column in columns:
        if column["title"] == title:
            return column
    return None


def columns_holding(columns: Sequence[dict[str, Any]], task_id: str) -> list[str]:
    return [column["title"] for column in columns if task_id in column["tasks"]]


@dataclass
class BoardTransaction:
    """Handle given to code running inside ``BoardCoordinator.transaction``."""

    project: Project
    _events: list[Callable[[], BoardEvent]] = field(default_factory=list)

    def emit(self, kind: EventKind, build_data: Callable[[], dict[str, Any]]) -> None:
        """Queue an event; ``build_data`` runs after the commit so it sees final state."""
        project_id = self.project.id
        self._events.append(
            lambda: BoardEvent(type=kind, project_id=project_id, data=build_data())
        )


class BoardCoordinator:
    """Keeps column task lists, task columns and comment lists consistent."""

    @asynccontextmanager
    async def transaction(
        self,
        project: Project,
        *,
        db: AsyncSession,
        publisher: EventPublisher | None = None,
        refresh: Iterable[Any] = (),
    ):
        project_id = project.id
        async with project_lock(project_id):
            try:
                await db.refresh(project)
                for obj in refresh:
                    await db.refresh(obj)
            except InvalidRequestError as e:
                raise NotFound("Resource no longer exists") from e

            tx = BoardTransaction(project)
            try:
                yield tx
                await db.commit()
            except StaleDataError as e:
                await db.rollback()
                logger.warning(f"Concurrent modification of project {project_id}: {e}")
                raise ConcurrentModification() from e
            except BaseException:
                await db.rollback()
                raise

            if publisher is not None:
                for build in tx._events:
                    event = build()
                    await publisher.publish(event.topic, event.to_message())

    # --- Column bookkeeping ---

    def _require_column(self, project: Project, title: str) -> None:
        if find_column(project.columns, title) is None:
            logger.warning(
                f"Rejected column '{title}' for project {project.id}; "
                f"existing columns: {project.column_titles}"
            )
            raise ValidationFailure(f"Column '{title}' does not exist in this project")

    def link_new_task(self, tx: BoardTransaction, task: Task) -> None:
        """Place a freshly created task at the end of its column."""
        project = tx.project
        self._require_column(project, task.column)
        task_id = str(task.id)
        columns = copy.deepcopy(project.columns)
        column = find_column(columns, task.column)
        if task_id not in column["tasks"]:
            column["tasks"].append(task_id)
        project.columns = columns

    def move_task(self, tx: BoardTransaction, task: Task, new_column: str) -> bool:
        """Move a task to ``new_column``. Returns False when it is already there."""
        project = tx.project
        if new_column == task.column:
            return False
        self._require_column(project, new_column)
        task_id = str(task.id)
        columns = copy.deepcopy(project.columns)
        for column in columns:
            if task_id in column["tasks"]:
                column["tasks"] = [tid for tid in column["tasks"] if tid != task_id]
        find_column(columns, new_column)["tasks"].append(task_id)
        project.columns = columns
        logger.info(
            f"Task {task.id} moved '{task.column}' -> '{new_column}' in project {project.id}"
        )
        task.column = new_column
        return True

    def unlink_task(self, tx: BoardTransaction, task: Task) -> list[str]:
        """Remove a task from every column listing it, whatever its recorded column."""
        project = tx.project
        task_id = str(task.id)
        columns = copy.deepcopy(project.columns)
        holders = columns_holding(columns, task_id)
        if holders != [task.column]:
            logger.warning(
                f"Task {task.id} recorded in '{task.column}' but listed in {holders}"
            )
        for column in columns:
            column["tasks"] = [tid for tid in column["tasks"] if tid != task_id]
        project.columns = columns
        return holders

    async def delete_task(
        self, tx: BoardTransaction, task: Task, *, db: AsyncSession
    ) -> int:
        """Unlink the task, delete its comments and the task itself. Returns comments removed."""
        self.unlink_task(tx, task)
        removed = await CommentDBHandler().delete_comments_for_task(task.id, db=db)
        await db.delete(task)
        logger.info(f"Task {task.id} deleted with {removed} comment(s)")
        return removed

    def restructure_columns(
        self,
        tx: BoardTransaction,
        tasks: Sequence[Task],
        updates: Sequence[ColumnUpdate],
    ) -> None:
        """Replace the column set while keeping every task in its column.

        Columns may be renamed only by dropping and re-adding them empty; a
        column that still holds tasks cannot be dropped. Requested task orders
        apply to tasks that live in that column; others keep their place.
        """
        project = tx.project
        titles = [update.title for update in updates]
        if not titles:
            raise ValidationFailure("A project needs at least one column")
        if len(set(titles)) != len(titles):
            raise ValidationFailure("Column titles must be unique")

        occupied = {task.column for task in tasks}
        dropped = sorted(occupied - set(titles))
        if dropped:
            raise ValidationFailure(
                f"Cannot remove column(s) that still hold tasks: {', '.join(dropped)}"
            )

        current = {column["title"]: column["tasks"] for column in project.columns}
        members_by_column: dict[str, set[str]] = {title: set() for title in titles}
        for task in tasks:
            members_by_column[task.column].add(str(task.id))

        columns = []
        for update in updates:
            members = members_by_column[update.title]
            ordered: list[str] = []
            requested = [str(tid) for tid in update.tasks or []]
            for task_id in [*requested, *current.get(update.title, [])]:
                if task_id in members and task_id not in ordered:
                    ordered.append(task_id)
            # Tasks missing from the old list (drift) go last
            ordered.extend(sorted(members - set(ordered)))
            columns.append({"title": update.title, "tasks": ordered})
        project.columns = columns

    def compute_index(
        self, project: Project, tasks: Sequence[Task]
    ) -> list[dict[str, Any]]:
        """Column lists derived from task columns, keeping existing order where possible.

        Tasks naming a column that no longer exists are moved to the first column.
        """
        titles = project.column_titles
        fallback = titles[0]
        by_column: dict[str, list[Task]] = {title: [] for title in titles}
        for task in tasks:
            if task.column not in by_column:
                logger.warning(
                    f"Task {task.id} names missing column '{task.column}', moving to '{fallback}'"
                )
                task.column = fallback
            by_column[task.column].append(task)

        columns = []
        for column in project.columns:
            members = {str(task.id) for task in by_column[column["title"]]}
            ordered = [tid for tid in column["tasks"] if tid in members]
            ordered = list(dict.fromkeys(ordered))
            ordered.extend(
                str(task.id)
                for task in by_column[column["title"]]
                if str(task.id) not in ordered
            )
            columns.append({"title": column["title"], "tasks": ordered})
        return columns

    async def rebuild_index(self, project: Project, *, db: AsyncSession) -> bool:
        """Recompute a project's column lists from its tasks. Returns True if anything changed."""
        async with self.transaction(project, db=db) as tx:
            tasks = await TaskDBHandler().get_tasks_for_project(tx.project.id, db=db)
            rebuilt = self.compute_index(tx.project, tasks)
            if rebuilt == tx.project.columns:
                return False
            logger.info(f"Rebuilt column index of project {tx.project.id}")
            tx.project.columns = rebuilt
        return True

    # --- Comment bookkeeping ---

    def attach_comment(self, task: Task, comment: Comment) -> None:
        comment_id = str(comment.id)
        if comment_id not in (task.comment_ids or []):
            task.comment_ids = [*(task.comment_ids or []), comment_id]

    def detach_comment(self, task: Task, comment_id: uuid.UUID) -> None:
        task.comment_ids = [
            cid for cid in task.comment_ids or [] if cid != str(comment_id)
        ]
