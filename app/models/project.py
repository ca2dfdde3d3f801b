"""
Project model: a workspace with members and an ordered list of columns.

Columns are embedded in the project row as a JSON document list, each entry
shaped ``{"title": str, "tasks": [task-id, ...]}``. The task lists are a
derived index over ``Task.column``; only ``app.services.board_sync`` writes
them.

Architecture:
    User ─< project_members >─ Project ─< Task ─< Comment
"""

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Table, Text, Uuid
from sqlalchemy.orm import relationship

from app.models.base import Base, JSONDocument, TimestampMixin, UUIDMixin

project_members = Table(
    "project_members",
    Base.metadata,
    Column(
        "project_id",
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Project(Base, UUIDMixin, TimestampMixin):
    """
    Kanban project owned by its creator.

    The creator always has access, whether or not they appear in ``members``.
    ``version`` is SQLAlchemy's optimistic-concurrency counter: an UPDATE
    issued against a stale version fails instead of overwriting the columns.
    """

    __tablename__ = "projects"
    __table_args__ = (Index("ix_projects_created_by_id", "created_by_id"),)

    title = Column(String(200), nullable=False, comment="Trimmed project title")

    description = Column(Text, nullable=False, default="", comment="Free text")

    created_by_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning user, immutable after creation",
    )

    columns = Column(
        JSONDocument,
        nullable=False,
        default=list,
        comment="Ordered columns: [{title, tasks: [task ids]}]",
    )

    version = Column(Integer, nullable=False, comment="Optimistic lock counter")

    creator = relationship("User", lazy="selectin")

    members = relationship(
        "User",
        secondary=project_members,
        lazy="selectin",
        order_by="User.username",
        doc="Invited users; the creator is implicit and never listed here",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def column_titles(self) -> list[str]:
        return [column["title"] for column in self.columns or []]

    def __repr__(self):
        return f"<Project(id={self.id}, title='{self.title}')>"
