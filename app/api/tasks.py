"""
Task API Routes - task CRUD, assignment and comment creation.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.dependencies.auth import get_current_user
from app.dependencies.realtime import get_publisher
from app.models import User
from app.schemas import (
    CommentCreate,
    MessageResponse,
    TaskAssign,
    TaskCreate,
    TaskOut,
    TaskUpdate,
)
from app.services.broadcast import EventPublisher
from app.services.comment_service import CommentService
from app.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


def get_task_service(publisher: EventPublisher = Depends(get_publisher)) -> TaskService:
    return TaskService(publisher)


def get_comment_service(
    publisher: EventPublisher = Depends(get_publisher),
) -> CommentService:
    return CommentService(publisher)


@router.get("/project/{project_id}", response_model=list[TaskOut])
async def list_project_tasks(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: TaskService = Depends(get_task_service),
):
    return await service.list_for_project(current_user, project_id, db=db)


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: TaskService = Depends(get_task_service),
):
    return await service.get_task(current_user, task_id, db=db)


@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: TaskService = Depends(get_task_service),
):
    """Create a task and place it at the end of its column."""
    return await service.create_task(current_user, task_data, db=db)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: TaskService = Depends(get_task_service),
):
    """Partial update; a changed ``column`` (or ``status``) moves the task."""
    return await service.update_task(current_user, task_id, task_data, db=db)


@router.put("/{task_id}/assign", response_model=TaskOut)
async def assign_task(
    task_id: str,
    assign_data: TaskAssign,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: TaskService = Depends(get_task_service),
):
    return await service.assign_task(current_user, task_id, assign_data, db=db)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: TaskService = Depends(get_task_service),
):
    """Delete a task together with its comments."""
    await service.delete_task(current_user, task_id, db=db)
    return MessageResponse(message="Task removed")


@router.post(
    "/{task_id}/comments", response_model=TaskOut, status_code=status.HTTP_201_CREATED
)
async def add_task_comment(
    task_id: str,
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: CommentService = Depends(get_comment_service),
):
    """Add a comment; responds with the task and all of its comments."""
    return await service.add_comment(current_user, task_id, comment_data, db=db)
