#!/usr/bin/env python3

"""
Main application entry point for the Kanban Board API.

Architecture: FastAPI application with database, domain error handlers, and WebSocket support.
Key Features: Lifecycle management, database health checks, error handling, CORS configuration.
"""

import asyncio
import sys

# Add this block to switch asyncio event loop policy on Windows
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

import errno
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.auth import router as auth_router
from app.api.comments import router as comments_router
from app.api.http import router as http_router
from app.api.notifications import router as notifications_router
from app.api.projects import router as projects_router
from app.api.tasks import router as tasks_router
from app.api.ws import router as ws_router
from app.config import settings
from app.db import check_db_connection, close_db, init_db
from app.exceptions import KanbanError, ServerFault, Unauthenticated
from app.services.broadcast import ProjectBroadcaster
from app.utils.logger import setup_logger

logger = setup_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Database setup and the realtime broadcaster live as long as the application.
    """
    logger.info("Application startup...")
    try:
        logger.info("Initializing database...")
        await init_db()
        logger.info("Database initialization complete.")

        logger.info("Checking database connectivity...")
        if await check_db_connection():
            logger.info("Database connectivity confirmed.")
        else:
            logger.critical("Database connectivity check failed.")
            raise SystemExit("Database connection failed.")

    except Exception as e:
        logger.critical(f"Startup error: {e}")
        raise SystemExit(f"Startup failed: {e}") from e

    app.state.broadcaster = ProjectBroadcaster(settings.broadcast_queue_size)
    logger.info("Kanban Board API startup successful.")

    yield

    logger.info("Kanban Board API shutdown...")
    app.state.broadcaster.close()
    await close_db()
    logger.info("Shutdown complete.")


def _error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"message": message}, headers=headers
    )


def create_app():
    app = FastAPI(title="Kanban Board API", lifespan=lifespan)

    @app.exception_handler(KanbanError)
    async def kanban_exception_handler(request: Request, exc: KanbanError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        headers = (
            {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        )
        return _error_response(exc.status_code, exc.message, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ())[1:])
            message = first.get("msg", "Invalid request")
            if location:
                message = f"{location}: {message}"
        else:
            message = "Invalid request"
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(OSError)
    async def oserror_exception_handler(request: Request, exc: OSError):
        logger.error(
            f"OSError caught: {exc}, errno: {exc.errno}, winerror: {getattr(exc, 'winerror', None)}"
        )
        is_timeout_or_refused = False
        if hasattr(exc, "winerror") and exc.winerror == 121:
            is_timeout_or_refused = True
        elif exc.errno in [errno.ETIMEDOUT, errno.ECONNREFUSED]:
            is_timeout_or_refused = True

        if is_timeout_or_refused:
            logger.error(
                f"Returning 503 due to DB connection issue: {settings.db_unavailable_hint}"
            )
            return _error_response(
                status.HTTP_503_SERVICE_UNAVAILABLE, settings.db_unavailable_hint
            )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
        return _error_response(ServerFault.status_code, ServerFault.default_message)

    app.include_router(ws_router)
    app.include_router(http_router)
    app.include_router(auth_router)
    app.include_router(projects_router)
    app.include_router(tasks_router)
    app.include_router(comments_router)
    app.include_router(notifications_router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    return app


app = create_app()


def main():
    """
    Start the FastAPI application with uvicorn.
    """
    port = int(settings.server_port)
    host = settings.server_host

    logger.info(f"Starting Kanban Board API server on {host}:{port}")
    if settings.server_workers > 1:
        logger.warning("Realtime topics are per process; clients on different workers miss each other's events.")

    try:
        uvicorn.run(app, host=host, port=port, workers=settings.server_workers)
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
