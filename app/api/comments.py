"""
Comment API Routes - reading, editing and deleting task comments.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_app_db
from app.dependencies.auth import get_current_user
from app.dependencies.realtime import get_publisher
from app.models import User
from app.schemas import CommentOut, CommentUpdate, MessageResponse
from app.services.broadcast import EventPublisher
from app.services.comment_service import CommentService

router = APIRouter(prefix="/api/comments", tags=["Comments"])


def get_comment_service(
    publisher: EventPublisher = Depends(get_publisher),
) -> CommentService:
    return CommentService(publisher)


@router.get("/task/{task_id}", response_model=list[CommentOut])
async def list_task_comments(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: CommentService = Depends(get_comment_service),
):
    """Comments of a task, newest first."""
    return await service.list_for_task(current_user, task_id, db=db)


@router.get("/{comment_id}", response_model=CommentOut)
async def get_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: CommentService = Depends(get_comment_service),
):
    return await service.get_comment(current_user, comment_id, db=db)


@router.put("/{comment_id}", response_model=CommentOut)
async def update_comment(
    comment_id: str,
    comment_data: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: CommentService = Depends(get_comment_service),
):
    """Edit a comment. Only its author may do this."""
    return await service.update_comment(current_user, comment_id, comment_data, db=db)


@router.delete("/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    service: CommentService = Depends(get_comment_service),
):
    """Delete a comment as its author or as the project creator."""
    await service.delete_comment(current_user, comment_id, db=db)
    return MessageResponse(message="Comment removed")
