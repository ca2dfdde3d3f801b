"""
Comment model: an authored note attached to a task.
"""

from sqlalchemy import Column, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, UUIDMixin


class Comment(Base, UUIDMixin, TimestampMixin):
    """Text note on a task. Author and task are fixed at creation."""

    __tablename__ = "comments"
    __table_args__ = (Index("ix_comments_task_id", "task_id"),)

    content = Column(Text, nullable=False)

    author_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    task_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )

    author = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<Comment(id={self.id}, task_id={self.task_id})>"
