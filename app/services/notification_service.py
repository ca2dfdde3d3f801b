"""
Notification side effects of board mutations.

Notifications are best effort: they are written after the mutation that
caused them has committed, and a failure here is logged without failing the
request. Each stored notification is also pushed to the recipient's personal
topic so connected clients see it immediately.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers import NotificationDBHandler
from app.exceptions import AccessDenied, NotFound
from app.models import (
    Comment,
    EntityKind,
    Notification,
    NotificationType,
    Project,
    Task,
    User,
)
from app.schemas import NotificationOut, dump
from app.services.broadcast import EventPublisher, user_topic
from app.utils.logger import setup_logger

logger = setup_logger("notification_service")

MENTION_PATTERN = re.compile(r"(?<![\w@])@([A-Za-z0-9_][A-Za-z0-9_.-]*)")


def extract_mentions(content: str) -> list[str]:
    """Usernames mentioned as ``@name``, in order of first appearance."""
    names = (match.rstrip(".-") for match in MENTION_PATTERN.findall(content or ""))
    return list(dict.fromkeys(name for name in names if name))


def project_participants(project: Project) -> list[User]:
    return [project.creator, *project.members]


class NotificationService:
    def __init__(self, publisher: EventPublisher | None = None):
        self.publisher = publisher
        self.notifications = NotificationDBHandler()

    async def _notify(
        self,
        recipient_ids: Iterable[uuid.UUID],
        message: str,
        notification_type: NotificationType,
        entity_kind: EntityKind,
        entity_id: uuid.UUID,
        *,
        db: AsyncSession,
    ) -> list[Notification]:
        recipients = list(dict.fromkeys(recipient_ids))
        if not recipients:
            return []
        try:
            created = await self.notifications.create_for_recipients(
                recipients,
                message,
                notification_type,
                entity_kind,
                entity_id,
                db=db,
            )
        except Exception as e:
            logger.error(
                f"Failed to store '{notification_type}' notifications for "
                f"{entity_kind} {entity_id}: {e}",
                exc_info=False,
            )
            return []

        logger.info(
            f"Stored {len(created)} '{notification_type}' notification(s) for "
            f"{entity_kind} {entity_id}"
        )
        if self.publisher is not None:
            for notification in created:
                try:
                    await self.publisher.publish(
                        user_topic(notification.recipient_id),
                        {
                            "type": "notification",
                            "data": dump(NotificationOut.from_notification(notification)),
                        },
                    )
                except Exception as e:
                    logger.error(
                        f"Error publishing notification {notification.id}: {e}",
                        exc_info=False,
                    )
        return created

    async def project_invitation(
        self,
        project: Project,
        invitees: Iterable[User],
        inviter: User,
        *,
        db: AsyncSession,
    ) -> list[Notification]:
        return await self._notify(
            (user.id for user in invitees if user.id != inviter.id),
            f"{inviter.username} added you to project '{project.title}'",
            NotificationType.PROJECT_INVITATION,
            EntityKind.PROJECT,
            project.id,
            db=db,
        )

    async def task_assignment(
        self,
        task: Task,
        assignees: Iterable[User],
        actor: User,
        *,
        db: AsyncSession,
    ) -> list[Notification]:
        return await self._notify(
            (user.id for user in assignees if user.id != actor.id),
            f"{actor.username} assigned you to task '{task.title}'",
            NotificationType.TASK_ASSIGNMENT,
            EntityKind.TASK,
            task.id,
            db=db,
        )

    async def comment_added(
        self,
        comment: Comment,
        task: Task,
        project: Project,
        author: User,
        *,
        db: AsyncSession,
    ) -> list[Notification]:
        """Mention notifications for ``@username``s, Comment notifications for the
        task's creator and assignees. A mentioned user gets only the Mention."""
        participants = {user.username.lower(): user for user in project_participants(project)}
        mentioned = [
            participants[name.lower()]
            for name in extract_mentions(comment.content)
            if name.lower() in participants
        ]
        mentioned_ids = {user.id for user in mentioned if user.id != author.id}

        created = await self._notify(
            mentioned_ids,
            f"{author.username} mentioned you on task '{task.title}'",
            NotificationType.MENTION,
            EntityKind.COMMENT,
            comment.id,
            db=db,
        )

        watchers = [task.created_by_id, *(user.id for user in task.assignees)]
        created += await self._notify(
            (
                user_id
                for user_id in watchers
                if user_id != author.id and user_id not in mentioned_ids
            ),
            f"{author.username} commented on task '{task.title}'",
            NotificationType.COMMENT,
            EntityKind.COMMENT,
            comment.id,
            db=db,
        )
        return created

    async def list_for_user(
        self, user: User, *, unread_only: bool = False, db: AsyncSession
    ) -> list[Notification]:
        return await self.notifications.get_for_user(
            user.id, unread_only=unread_only, db=db
        )

    async def mark_read(
        self, user: User, notification_id: uuid.UUID, *, db: AsyncSession
    ) -> Notification:
        notification = await self.notifications.get(notification_id, db=db)
        if notification is None:
            raise NotFound("Notification not found")
        if notification.recipient_id != user.id:
            raise AccessDenied()
        if not notification.read:
            notification = await self.notifications.update(
                notification, {"read": True}, db=db
            )
        return notification

    async def mark_all_read(self, user: User, *, db: AsyncSession) -> int:
        return await self.notifications.mark_all_read(user.id, db=db)
