"""
Project operations: listing, creation, populated detail views, updates
(including column restructuring) and membership.
"""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db_handlers import (
    CommentDBHandler,
    ProjectDBHandler,
    TaskDBHandler,
    UserDBHandler,
)
from app.exceptions import DuplicateResource, InvalidReference, NotFound
from app.models import Project, User
from app.schemas import (
    EventKind,
    MemberAdd,
    ProjectCreate,
    ProjectDetail,
    ProjectSummary,
    ProjectUpdate,
    dump,
)
from app.services.access import (
    can_access_project,
    can_invite_to_project,
    ensure,
    resolve_project,
)
from app.services.board_sync import BoardCoordinator
from app.services.broadcast import EventPublisher
from app.services.notification_service import NotificationService
from app.utils.logger import setup_logger

logger = setup_logger("project_service")


class ProjectService:
    def __init__(self, publisher: EventPublisher | None = None):
        self.publisher = publisher
        self.projects = ProjectDBHandler()
        self.tasks = TaskDBHandler()
        self.comments = CommentDBHandler()
        self.users = UserDBHandler()
        self.coordinator = BoardCoordinator()
        self.notifier = NotificationService(publisher)

    async def board_detail(self, project: Project, *, db: AsyncSession) -> ProjectDetail:
        """Populate columns down to tasks, assignees, comments and their authors."""
        tasks = await self.tasks.get_tasks_for_project(project.id, db=db)
        comments = await self.comments.get_comments_for_tasks(
            [task.id for task in tasks], db=db
        )
        return ProjectDetail.from_board(project, tasks, comments)

    async def list_projects(
        self, user: User, *, db: AsyncSession
    ) -> list[ProjectSummary]:
        projects = await self.projects.get_projects_for_user(user.id, db=db)
        return [ProjectSummary.from_project(project) for project in projects]

    async def _resolve_users(
        self, user_ids: list[uuid.UUID], *, db: AsyncSession
    ) -> list[User]:
        found = await self.users.get_many_by_ids(user_ids, db=db)
        missing = [str(user_id) for user_id in user_ids if user_id not in found]
        if missing:
            raise InvalidReference(f"User(s) not found: {', '.join(missing)}")
        return [found[user_id] for user_id in dict.fromkeys(user_ids)]

    async def create_project(
        self, user: User, data: ProjectCreate, *, db: AsyncSession
    ) -> ProjectDetail:
        members = await self._resolve_users(data.members, db=db)
        project = await self.projects.create_project(
            data.title,
            data.description,
            user,
            members,
            settings.default_columns,
            db=db,
        )
        await self.notifier.project_invitation(project, project.members, user, db=db)
        return await self.board_detail(project, db=db)

    async def get_project(
        self, user: User, project_id: uuid.UUID, *, db: AsyncSession
    ) -> ProjectDetail:
        project = await resolve_project(user, project_id, db=db)
        return await self.board_detail(project, db=db)

    async def update_project(
        self,
        user: User,
        project_id: uuid.UUID,
        data: ProjectUpdate,
        *,
        db: AsyncSession,
    ) -> ProjectDetail:
        project = await resolve_project(user, project_id, db=db, manage=True)

        async with self.coordinator.transaction(
            project, db=db, publisher=self.publisher
        ) as tx:
            if data.title is not None:
                tx.project.title = data.title
            if data.description is not None:
                tx.project.description = data.description
            if data.columns is not None:
                tasks = await self.tasks.get_tasks_for_project(tx.project.id, db=db)
                self.coordinator.restructure_columns(tx, tasks, data.columns)
            tx.emit(
                EventKind.PROJECT_UPDATED,
                lambda: {"project": dump(ProjectSummary.from_project(project))},
            )

        logger.info(f"Project {project.id} updated by {user.username}")
        return await self.board_detail(project, db=db)

    async def add_member(
        self,
        user: User,
        project_id: uuid.UUID,
        data: MemberAdd,
        *,
        db: AsyncSession,
    ) -> ProjectDetail:
        project = await self.projects.get(project_id, db=db)
        if project is None:
            raise NotFound("Project not found")
        ensure(
            can_invite_to_project(user, project),
            user=str(user.id),
            project=str(project.id),
        )

        invitee = await self.users.get_user_by_email(data.email, db=db)
        if invitee is None:
            raise NotFound("User not found")

        async with self.coordinator.transaction(
            project, db=db, publisher=self.publisher
        ) as tx:
            if can_access_project(invitee, tx.project):
                raise DuplicateResource("User is already a member of this project")
            tx.project.members = [*tx.project.members, invitee]
            tx.emit(
                EventKind.PROJECT_UPDATED,
                lambda: {"project": dump(ProjectSummary.from_project(project))},
            )

        logger.info(
            f"User {invitee.username} added to project {project.id} by {user.username}"
        )
        await self.notifier.project_invitation(project, [invitee], user, db=db)
        return await self.board_detail(project, db=db)
