"""
Realtime publisher dependency.

Request handlers receive the broadcaster as an ``EventPublisher`` capability
instead of reaching for a module-level socket handle.
"""

from fastapi import Request

from app.services.broadcast import EventPublisher, ProjectBroadcaster


def get_broadcaster(request: Request) -> ProjectBroadcaster:
    return request.app.state.broadcaster


def get_publisher(request: Request) -> EventPublisher:
    return get_broadcaster(request)
