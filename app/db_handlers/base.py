from __future__ import annotations

import asyncio
import uuid
from collections.abc import Iterable
from functools import wraps
from typing import Any, Generic, TypeVar

from asyncpg.exceptions import ConnectionDoesNotExistError
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import AppAsyncSessionLocal
from app.models.base import Base
from app.utils.logger import setup_logger

logger = setup_logger("db_handlers")


ModelType = TypeVar("ModelType", bound=Base)


def check_local_db(func):
    """Database session decorator with transaction management and retry logic."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        # A caller that passes 'db' owns the session and its transaction.
        if kwargs.get("db"):
            return await func(*args, **kwargs)

        # Outermost call: open a session, commit on success, retry lost connections.
        last_exception = None
        for attempt in range(3):
            async with AppAsyncSessionLocal() as db:
                kwargs["db"] = db
                try:
                    result = await func(*args, **kwargs)
                    await db.commit()
                    return result
                except DBAPIError as e:
                    await db.rollback()
                    if isinstance(e.orig, ConnectionDoesNotExistError):
                        last_exception = e
                        logger.warning(
                            f"Connection error in {func.__name__} (attempt {attempt + 1}/3): {e}. Retrying..."
                        )
                        await asyncio.sleep(1 + attempt)
                        continue
                    logger.error(
                        f"DBAPIError in {func.__name__} (attempt {attempt + 1}/3): {e}",
                        exc_info=True,
                    )
                    raise
                except Exception:
                    await db.rollback()
                    raise

        logger.error(
            f"All retries failed for {func.__name__}. Last error: {last_exception}"
        )
        raise last_exception

    return wrapper


def as_uuid(value: Any) -> uuid.UUID | None:
    """Coerce a path/body identifier to a UUID, or None when it is not one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


class BaseDBHandler(Generic[ModelType]):
    """Generic handler for database operations with basic CRUD methods."""

    def __init__(self, model: type[ModelType]):
        self.model = model

    @check_local_db
    async def create(
        self, obj_dict: dict[str, Any], *, db: AsyncSession = None
    ) -> ModelType:
        """Create a new record in the database."""

        db_obj = self.model(**obj_dict)
        try:
            db.add(db_obj)
            await db.commit()
            return db_obj
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"IntegrityError creating {self.model.__name__}: {e}")
            # Re-raise so calling code can map it to a duplicate error
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error creating {self.model.__name__}: {e}", exc_info=True)
            raise

    @check_local_db
    async def get(self, id: Any, *, db: AsyncSession = None) -> ModelType | None:
        """Get a single record by its primary key; malformed ids resolve to None."""
        key = as_uuid(id)
        if key is None:
            return None
        stmt = select(self.model).where(self.model.id == key)
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def get_many_by_ids(
        self, ids: Iterable[Any], *, db: AsyncSession = None
    ) -> dict[uuid.UUID, ModelType]:
        """Batch get records by primary key, keyed by id. Unknown ids are absent."""
        keys = {key for key in (as_uuid(i) for i in ids) if key is not None}
        if not keys:
            return {}
        stmt = select(self.model).where(self.model.id.in_(keys))
        result = await db.execute(stmt)
        return {obj.id: obj for obj in result.scalars().all()}

    @check_local_db
    async def update(
        self,
        db_obj: ModelType,
        update_data: dict[str, Any],
        *,
        db: AsyncSession = None,
    ) -> ModelType:
        """Update an existing record; keys that are not model attributes are ignored."""

        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        try:
            db.add(db_obj)
            await db.commit()
            return db_obj
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Error updating {self.model.__name__} with id {db_obj.id}: {e}",
                exc_info=True,
            )
            raise
