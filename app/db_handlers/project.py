from __future__ import annotations

import uuid

from sqlalchemy import exists, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models import Project, User, project_members
from app.utils.logger import setup_logger

logger = setup_logger("project_db_handler")


class ProjectDBHandler(BaseDBHandler[Project]):
    def __init__(self):
        super().__init__(Project)

    @check_local_db
    async def create_project(
        self,
        title: str,
        description: str,
        creator: User,
        members: list[User],
        column_titles: list[str],
        *,
        db: AsyncSession = None,
    ) -> Project:
        """Create a project with empty columns; the creator is never listed as a member."""
        project = Project(
            title=title,
            description=description,
            created_by_id=creator.id,
            columns=[{"title": title_, "tasks": []} for title_ in column_titles],
        )
        project.creator = creator
        project.members = [member for member in members if member.id != creator.id]
        try:
            db.add(project)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error creating project '{title}': {e}", exc_info=True)
            raise
        logger.info(f"Project {project.id} '{title}' created by {creator.username}")
        return project

    @check_local_db
    async def get_projects_for_user(
        self, user_id: uuid.UUID, *, db: AsyncSession = None
    ) -> list[Project]:
        """Projects the user created or is a member of, newest first."""
        is_member = exists().where(
            project_members.c.project_id == Project.id,
            project_members.c.user_id == user_id,
        )
        stmt = (
            select(Project)
            .where(or_(Project.created_by_id == user_id, is_member))
            .order_by(Project.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @check_local_db
    async def get_all_projects(self, *, db: AsyncSession = None) -> list[Project]:
        result = await db.execute(select(Project).order_by(Project.created_at))
        return list(result.scalars().all())

