"""
HTTP API Routes - service-level endpoints shared by every client.
"""

from fastapi import APIRouter

router = APIRouter(prefix="/api")


@router.get("/")
async def read_root():
    """API health check endpoint."""
    return {"message": "Kanban Board API is running!"}
