import argparse
import asyncio
from collections.abc import AsyncGenerator

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app import models  # noqa: F401
from app.config import settings
from app.models.base import Base
from app.utils.logger import setup_logger

logger = setup_logger("db")

# --- Application DB ---
if not settings.app_database_url:
    raise ValueError(
        "KANBAN_DATABASE_URL environment variable not set for Application DB"
    )

if settings.app_database_url.startswith("postgresql://"):
    settings.app_database_url = settings.app_database_url.replace(
        "postgresql://", "postgresql+asyncpg://", 1
    )
elif not settings.app_database_url.startswith(
    ("postgresql+asyncpg://", "sqlite+aiosqlite://")
):
    raise ValueError(
        f"Unsupported settings.app_database_url prefix: {settings.app_database_url}"
    )

logger.debug(f"Application DB URL: {settings.app_database_url}")

if settings.is_sqlite:
    # Connections are opened per session so no pooled connection outlives its event loop
    app_engine = create_async_engine(
        settings.app_database_url, poolclass=NullPool, echo=False
    )
else:
    app_engine = create_async_engine(
        settings.app_database_url,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=60,
        pool_recycle=300,
        echo=False,
        connect_args={"timeout": 30},
    )

AppAsyncSessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=app_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def _apply_search_path(conn_or_session) -> None:
    if settings.db_schema and not settings.is_sqlite:
        await conn_or_session.execute(
            text(f"SET search_path TO {settings.db_schema}, public")
        )


# --- Dependency for FastAPI (Application DB) ---
async def get_app_db() -> AsyncGenerator[AsyncSession, None]:
    async with AppAsyncSessionLocal() as session:
        await _apply_search_path(session)
        yield session


# --- Function to create tables (for Application DB) ---
async def init_db():
    if not Base.metadata.tables:
        logger.warning("Base.metadata.tables is EMPTY! No tables will be created.")
    else:
        logger.debug(
            f"Tables registered in Base.metadata: {list(Base.metadata.tables.keys())}"
        )

    async with app_engine.begin() as conn:
        if settings.db_schema and not settings.is_sqlite:
            await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {settings.db_schema}"))
        await _apply_search_path(conn)
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database schema initialized.")


async def close_db():
    """Closes database connections."""
    logger.info("Closing database connections.")
    await app_engine.dispose()
    logger.info("Database connections closed.")


async def list_tables() -> list[str]:
    """Lists all tables visible to the application engine."""
    async with app_engine.connect() as conn:
        await _apply_search_path(conn)
        table_names = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).get_table_names()
        )

    if table_names:
        logger.info(f"Tables in Application DB: {table_names}")
    else:
        logger.info("No tables found in Application DB.")
    return table_names


# --- Function to reset database (for Application DB) ---
async def reset_db():
    logger.warning(
        "Resetting the Application database. THIS IS A DESTRUCTIVE OPERATION."
    )
    async with app_engine.begin() as conn:
        await _apply_search_path(conn)
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("All application tables dropped.")

    await init_db()
    logger.info("Application database has been reset and re-initialized.")


async def repair_board_indexes() -> int:
    """Rebuild every project's column task lists from the tasks' own columns."""
    from app.db_handlers import ProjectDBHandler
    from app.services.board_sync import BoardCoordinator

    coordinator = BoardCoordinator()
    repaired = 0
    async with AppAsyncSessionLocal() as db:
        await _apply_search_path(db)
        for project in await ProjectDBHandler().get_all_projects(db=db):
            if await coordinator.rebuild_index(project, db=db):
                repaired += 1
    logger.info(f"Board index repair finished: {repaired} project(s) changed.")
    return repaired


async def check_db_connection(engine_to_check=None, db_name="Application DB"):
    """Performs a simple query to check actual DB connectivity."""
    if engine_to_check is None:
        engine_to_check = app_engine

    session_maker = async_sessionmaker(
        bind=engine_to_check,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        try:
            result = await session.execute(text("SELECT 1"))
            if result.scalar_one() == 1:
                logger.info(
                    f"Successfully connected to {db_name} and executed a test query."
                )
                return True
            raise RuntimeError(f"Test query to {db_name} returned an unexpected result.")
        except Exception as e:
            logger.error(
                f"Failed to execute test query on {db_name}: {e}", exc_info=True
            )
            raise RuntimeError(
                f"Database connectivity check failed for {db_name}."
            ) from e


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Application Database Initialization Utility"
    )
    parser.add_argument(
        "action",
        choices=["init", "reset", "list-tables", "repair"],
        help="'init' to create missing tables, "
        "'reset' to drop and recreate all tables, "
        "'list-tables' to show existing tables, "
        "'repair' to rebuild every project's column task lists from task columns.",
    )
    args = parser.parse_args()

    if args.action == "init":
        asyncio.run(init_db())
    elif args.action == "reset":
        confirm = input(
            "WARNING: This will delete all data in the Application DB. Are you sure? (yes/no): "
        )
        if confirm.lower() == "yes":
            asyncio.run(reset_db())
        else:
            logger.info("Application Database reset cancelled by user.")
    elif args.action == "list-tables":
        asyncio.run(list_tables())
    elif args.action == "repair":
        asyncio.run(repair_board_indexes())
    logger.info("Application Database utility script finished.")
