"""
WebSocket API Routes - realtime board updates.

One connection per client at ``/api/ws?token=<jwt>``. After authenticating,
the socket is subscribed to its user's personal topic and may join any number
of project topics it has access to. Everything sent to the client, replies
included, goes through the connection's subscription queue, so the client
sees messages in the order they were produced.
"""

import asyncio
import contextlib
import json
from datetime import UTC, datetime

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from app.db import AppAsyncSessionLocal
from app.db_handlers import ProjectDBHandler
from app.dependencies.auth import get_user_from_token
from app.models import User
from app.services.access import can_access_project
from app.services.broadcast import ProjectBroadcaster, Subscription, user_topic
from app.utils.logger import setup_logger

logger = setup_logger("api.ws")

router = APIRouter(prefix="/api")

WS_UNAUTHORIZED = 4401


def _now() -> str:
    return datetime.now(UTC).isoformat()


async def _join_project(
    broadcaster: ProjectBroadcaster,
    subscription: Subscription,
    user: User,
    project_id: str | None,
) -> dict:
    """Subscribe to a project topic when the user may see the project."""
    async with AppAsyncSessionLocal() as db:
        project = await ProjectDBHandler().get(project_id, db=db)
        if project is None:
            return {"type": "error", "message": "Not found", "projectId": project_id}
        if not can_access_project(user, project):
            logger.warning(
                f"[WS {subscription.name}] {user.username} denied join of project {project_id}"
            )
            return {"type": "error", "message": "Access denied", "projectId": project_id}
        topic = str(project.id)

    broadcaster.subscribe(topic, subscription)
    logger.info(f"[WS {subscription.name}] {user.username} joined project {topic}")
    return {"type": "joined", "projectId": topic}


@router.websocket("/ws")
async def websocket_board_updates(
    websocket: WebSocket,
    token: str | None = Query(None),
):
    """
    WebSocket endpoint for project and notification events.

    Client messages: ``join-project``, ``leave-project`` (both with
    ``projectId``) and ``ping``. Unauthenticated sockets are closed with code
    4401.
    """
    await websocket.accept()

    async with AppAsyncSessionLocal() as db:
        user = await get_user_from_token(token, db)
    if user is None:
        logger.warning("WebSocket rejected: missing or invalid token")
        await websocket.close(code=WS_UNAUTHORIZED, reason="Not authorized")
        return

    broadcaster: ProjectBroadcaster = websocket.app.state.broadcaster
    subscription = broadcaster.subscription(websocket.send_json)
    sender = asyncio.create_task(subscription.run())
    broadcaster.subscribe(user_topic(user.id), subscription)
    subscription.offer({"type": "connected", "userId": str(user.id)})
    logger.info(f"[WS {subscription.name}] Connected as {user.username}")

    try:
        while not subscription.closed:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                subscription.offer({"type": "error", "message": "Invalid JSON"})
                continue
            if not isinstance(message, dict):
                subscription.offer({"type": "error", "message": "Invalid message"})
                continue

            message_type = message.get("type")
            project_id = message.get("projectId")

            if message_type == "ping":
                subscription.offer({"type": "pong", "timestamp": _now()})
            elif message_type == "join-project":
                reply = await _join_project(broadcaster, subscription, user, project_id)
                subscription.offer(reply)
            elif message_type == "leave-project":
                broadcaster.unsubscribe(str(project_id), subscription)
                subscription.offer({"type": "left", "projectId": project_id})
            else:
                subscription.offer(
                    {"type": "error", "message": f"Unknown message type: {message_type}"}
                )
    except WebSocketDisconnect:
        logger.info(f"[WS {subscription.name}] {user.username} disconnected")
    finally:
        broadcaster.unsubscribe_all(subscription)
        subscription.close()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
