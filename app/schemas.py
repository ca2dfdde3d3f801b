import enum
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from app.models import Comment, Notification, Project, Task, TaskPriority


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case field names."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


def _required_text(value: str, field_name: str) -> str:
    value = value.strip() if isinstance(value, str) else value
    if not value:
        raise ValueError(f"{field_name} is required")
    return value


# ===== Authentication =====


class UserRegister(CamelModel):
    username: str = Field(
        ..., min_length=3, max_length=50, description="Username for the new account"
    )
    email: str = Field(..., max_length=255, description="Email for the new account")
    password: str = Field(
        ..., min_length=6, max_length=100, description="Password for the new account"
    )

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return _required_text(v, "Username")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("A valid email address is required")
        return v


class UserLogin(CamelModel):
    email: str = Field(..., description="Email used at registration")
    password: str = Field(..., description="Password for login")


class AuthResponse(CamelModel):
    id: UUID
    username: str
    email: str
    token: str = Field(..., description="Bearer token for API and realtime access")


class UserPublic(CamelModel):
    id: UUID
    username: str
    email: str
    avatar: str | None = None


class UserInfo(UserPublic):
    created_at: datetime


class MessageResponse(CamelModel):
    message: str = Field(..., description="Response message")


# ===== Comments =====


class CommentCreate(CamelModel):
    content: str

    @field_validator("content")
    @classmethod
    def require_content(cls, v: str) -> str:
        return _required_text(v, "Content")


class CommentUpdate(CommentCreate):
    model_config = ConfigDict(extra="ignore")


class CommentOut(CamelModel):
    id: UUID
    content: str
    author: UserPublic
    task_id: UUID
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentOut":
        return cls(
            id=comment.id,
            content=comment.content,
            author=UserPublic.model_validate(comment.author),
            task_id=comment.task_id,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


# ===== Tasks =====


class TaskCreate(CamelModel):
    title: str
    description: str = ""
    project_id: UUID
    column: str | None = Field(
        default=None,
        validation_alias=AliasChoices("column", "status"),
        description="Target column title; defaults to the project's first column",
    )
    assignees: list[UUID] = Field(
        default_factory=list,
        validation_alias=AliasChoices("assignees", "assignedTo"),
    )
    due_date: datetime | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    labels: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def require_title(cls, v: str) -> str:
        return _required_text(v, "Title")

    @field_validator("labels")
    @classmethod
    def clean_labels(cls, v: list[str]) -> list[str]:
        return [label.strip() for label in v if label and label.strip()]


class TaskUpdate(CamelModel):
    """Partial task update. Only fields present in the request body are applied."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    description: str | None = None
    column: str | None = Field(
        default=None, validation_alias=AliasChoices("column", "status")
    )
    assignees: list[UUID] | None = Field(
        default=None, validation_alias=AliasChoices("assignees", "assignedTo")
    )
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    labels: list[str] | None = None
    completed: bool | None = None

    @field_validator("title")
    @classmethod
    def require_title(cls, v: str | None) -> str | None:
        return None if v is None else _required_text(v, "Title")

    @field_validator("labels")
    @classmethod
    def clean_labels(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return [label.strip() for label in v if label and label.strip()]

    def changes(self) -> dict[str, Any]:
        """Recognised fields the client actually sent, by snake_case name.

        ``dueDate: null`` clears the due date; other explicit nulls are ignored.
        """
        changed = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name != "due_date":
                continue
            changed[name] = value
        return changed


class TaskAssign(CamelModel):
    user_id: UUID


class TaskOut(CamelModel):
    id: UUID
    title: str
    description: str
    project_id: UUID
    column: str
    assignees: list[UserPublic]
    due_date: datetime | None
    priority: TaskPriority
    labels: list[str]
    completed: bool
    created_by: UserPublic
    comments: list[CommentOut]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task, comments: Iterable[Comment] = ()) -> "TaskOut":
        """Serialize a task; ``comments`` are emitted in the task's own comment order."""
        by_id = {str(comment.id): comment for comment in comments}
        ordered = [by_id[cid] for cid in task.comment_ids or [] if cid in by_id]
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            project_id=task.project_id,
            column=task.column,
            assignees=[UserPublic.model_validate(user) for user in task.assignees],
            due_date=task.due_date,
            priority=TaskPriority(task.priority),
            labels=list(task.labels or []),
            completed=task.completed,
            created_by=UserPublic.model_validate(task.creator),
            comments=[CommentOut.from_comment(comment) for comment in ordered],
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


# ===== Projects =====


class ProjectCreate(CamelModel):
    title: str = Field(
        ..., max_length=200, validation_alias=AliasChoices("title", "name")
    )
    description: str = ""
    members: list[UUID] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def require_title(cls, v: str) -> str:
        return _required_text(v, "Title")


class ColumnUpdate(CamelModel):
    title: str = Field(..., validation_alias=AliasChoices("title", "name"))
    tasks: list[UUID] | None = Field(
        default=None, description="Desired task order within the column"
    )

    @field_validator("title")
    @classmethod
    def require_title(cls, v: str) -> str:
        return _required_text(v, "Column title")


class ProjectUpdate(CamelModel):
    model_config = ConfigDict(extra="ignore")

    title: str | None = Field(
        default=None, max_length=200, validation_alias=AliasChoices("title", "name")
    )
    description: str | None = None
    columns: list[ColumnUpdate] | None = None

    @field_validator("title")
    @classmethod
    def require_title(cls, v: str | None) -> str | None:
        return None if v is None else _required_text(v, "Title")


class MemberAdd(CamelModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ColumnSummary(CamelModel):
    title: str
    tasks: list[UUID]


class ColumnDetail(CamelModel):
    title: str
    tasks: list[TaskOut]


class ProjectSummary(CamelModel):
    id: UUID
    title: str
    description: str
    created_by: UserPublic
    members: list[UserPublic]
    columns: list[ColumnSummary]
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def _common(cls, project: Project) -> dict[str, Any]:
        return {
            "id": project.id,
            "title": project.title,
            "description": project.description,
            "created_by": UserPublic.model_validate(project.creator),
            "members": [UserPublic.model_validate(m) for m in project.members],
            "version": project.version,
            "created_at": project.created_at,
            "updated_at": project.updated_at,
        }

    @classmethod
    def from_project(cls, project: Project) -> "ProjectSummary":
        return cls(
            **cls._common(project),
            columns=[
                ColumnSummary(title=column["title"], tasks=column["tasks"])
                for column in project.columns
            ],
        )


class ProjectDetail(ProjectSummary):
    """Project with columns populated down to tasks, assignees and comment authors."""

    columns: list[ColumnDetail]

    @classmethod
    def from_board(
        cls,
        project: Project,
        tasks: Iterable[Task],
        comments: Iterable[Comment] = (),
    ) -> "ProjectDetail":
        by_task: dict[uuid.UUID, list[Comment]] = {}
        for comment in comments:
            by_task.setdefault(comment.task_id, []).append(comment)
        task_out = {
            str(task.id): TaskOut.from_task(task, by_task.get(task.id, ()))
            for task in tasks
        }
        return cls(
            **cls._common(project),
            columns=[
                ColumnDetail(
                    title=column["title"],
                    tasks=[task_out[tid] for tid in column["tasks"] if tid in task_out],
                )
                for column in project.columns
            ],
        )


# ===== Notifications =====


class ProjectRef(CamelModel):
    kind: Literal["project"] = "project"
    id: UUID


class TaskRef(CamelModel):
    kind: Literal["task"] = "task"
    id: UUID


class CommentRef(CamelModel):
    kind: Literal["comment"] = "comment"
    id: UUID


RelatedEntity = Annotated[
    ProjectRef | TaskRef | CommentRef, Field(discriminator="kind")
]


class NotificationOut(CamelModel):
    id: UUID
    message: str
    type: str
    related_entity: RelatedEntity
    read: bool
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationOut":
        return cls(
            id=notification.id,
            message=notification.message,
            type=notification.type,
            related_entity={
                "kind": notification.entity_kind,
                "id": notification.entity_id,
            },
            read=notification.read,
            created_at=notification.created_at,
        )


# ===== Realtime =====


class EventKind(enum.StrEnum):
    PROJECT_UPDATED = "project-updated"
    TASK_CREATED = "task-created"
    TASK_UPDATED = "task-updated"
    TASK_DELETED = "task-deleted"
    COMMENT_ADDED = "comment-added"
    COMMENT_UPDATED = "comment-updated"
    COMMENT_DELETED = "comment-deleted"


class BoardEvent(CamelModel):
    """One message on a project topic."""

    type: EventKind
    project_id: UUID
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def topic(self) -> str:
        return str(self.project_id)

    def to_message(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def dump(model: BaseModel) -> dict[str, Any]:
    """JSON-ready camelCase dict of a response model, for event payloads."""
    return model.model_dump(mode="json", by_alias=True)
