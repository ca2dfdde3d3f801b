"""
Task model: a unit of work on a project's board.

``column`` is the single source of truth for where a task lives; the owning
project's column task lists mirror it. ``comment_ids`` keeps the task's
comments in the order they were added.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.models.base import Base, JSONDocument, TimestampMixin, UUIDMixin


class TaskPriority(enum.StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


task_assignees = Table(
    "task_assignees",
    Base.metadata,
    Column(
        "task_id",
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Task(Base, UUIDMixin, TimestampMixin):
    """Card on a project board, placed in exactly one column."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_project_id", "project_id"),
        Index("ix_tasks_project_column", "project_id", "column"),
    )

    title = Column(String(200), nullable=False)

    description = Column(Text, nullable=False, default="")

    project_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning project, immutable",
    )

    column = Column(
        String(100),
        nullable=False,
        comment="Title of the project column holding this task",
    )

    due_date = Column(DateTime(timezone=True), nullable=True)

    priority = Column(
        String(10),
        nullable=False,
        default=TaskPriority.MEDIUM.value,
        comment="Low / Medium / High",
    )

    labels = Column(JSONDocument, nullable=False, default=list)

    completed = Column(Boolean, nullable=False, default=False)

    comment_ids = Column(
        JSONDocument,
        nullable=False,
        default=list,
        comment="Ids of this task's comments, in insertion order",
    )

    created_by_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Creating user, immutable",
    )

    creator = relationship("User", lazy="selectin")

    assignees = relationship(
        "User",
        secondary=task_assignees,
        lazy="selectin",
        order_by="User.username",
    )

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', column='{self.column}')>"
