"""
Project API Routes - project listing, creation, populated board views,
updates (creator only) and membership.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.dependencies.auth import get_current_user
from app.dependencies.realtime import get_publisher
from app.models import User
from app.schemas import (
    MemberAdd,
    ProjectCreate,
    ProjectDetail,
    ProjectSummary,
    ProjectUpdate,
)
from app.services.broadcast import EventPublisher
from app.services.project_service import ProjectService

router = APIRouter(prefix="/api/projects", tags=["Projects"])


def get_project_service(
    publisher: EventPublisher = Depends(get_publisher),
) -> ProjectService:
    return ProjectService(publisher)


@router.get("", response_model=list[ProjectSummary])
async def list_projects(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: ProjectService = Depends(get_project_service),
):
    """Projects the current user created or is a member of."""
    return await service.list_projects(current_user, db=db)


@router.post("", response_model=ProjectDetail, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: ProjectService = Depends(get_project_service),
):
    """Create a project with the default column skeleton."""
    return await service.create_project(current_user, project_data, db=db)


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: ProjectService = Depends(get_project_service),
):
    return await service.get_project(current_user, project_id, db=db)


@router.put("/{project_id}", response_model=ProjectDetail)
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: ProjectService = Depends(get_project_service),
):
    """Update title, description or columns. Only the creator may do this."""
    return await service.update_project(current_user, project_id, project_data, db=db)


@router.post("/{project_id}/members", response_model=ProjectDetail)
async def add_project_member(
    project_id: str,
    member_data: MemberAdd,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: ProjectService = Depends(get_project_service),
):
    """Invite a registered user, looked up by email."""
    return await service.add_member(current_user, project_id, member_data, db=db)
