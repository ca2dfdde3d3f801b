"""
Notification model: a message for one user, produced as a side effect of
project and task mutations.

The related entity is stored as a (kind, id) pair whose kind is restricted to
the known entity kinds; ``app.schemas.RelatedEntity`` exposes it as a tagged
variant.
"""

import enum

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Uuid

from app.models.base import Base, TimestampMixin, UUIDMixin


class NotificationType(enum.StrEnum):
    TASK_ASSIGNMENT = "Task Assignment"
    MENTION = "Mention"
    COMMENT = "Comment"
    PROJECT_INVITATION = "Project Invitation"


class EntityKind(enum.StrEnum):
    PROJECT = "project"
    TASK = "task"
    COMMENT = "comment"


class Notification(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_read", "recipient_id", "read"),
    )

    recipient_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    message = Column(String(500), nullable=False)

    type = Column(String(30), nullable=False, comment="NotificationType value")

    entity_kind = Column(String(20), nullable=False, comment="EntityKind value")

    entity_id = Column(Uuid(as_uuid=True), nullable=False)

    read = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Notification(id={self.id}, type='{self.type}', read={self.read})>"
