"""
Base configurations and mixins for database models.

This module provides the foundation for all database models of the kanban
board: the declarative base, timestamp and UUID primary key mixins, and the
JSON column type used for the embedded (document-style) lists.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base


def utcnow() -> datetime:
    return datetime.now(UTC)


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


# Create the base class for all models
Base = declarative_base()


class TimestampMixin:
    """
    Mixin class that adds automatic timestamp management to models.

    Timestamps are produced on the application side so that ordering by
    ``created_at`` keeps sub-second precision on every backend.
    """

    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when the record was created",
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when the record was last updated",
    )


class UUIDMixin:
    """
    Mixin class that adds a UUID4 primary key to models.

    Uses the native UUID type on PostgreSQL and a CHAR(32) elsewhere.
    """

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
        comment="Primary key using UUID4 format",
    )


__all__ = ["Base", "TimestampMixin", "UUIDMixin", "JSONDocument", "utcnow"]
