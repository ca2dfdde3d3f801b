"""
User model for authentication, project membership and authorship.

Users are immutable identities once created: username and email are unique
and the password is stored only as a bcrypt hash.
"""

from sqlalchemy import Column, Index, String

from app.models.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """Registered account that can own projects, work on tasks and comment."""

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_username", "username", unique=True),
        Index("ix_users_email", "email", unique=True),
    )

    username = Column(
        String(50),
        nullable=False,
        comment="Unique display name",
    )

    email = Column(
        String(255),
        nullable=False,
        comment="Unique, lowercased email address used for login and invitations",
    )

    hashed_password = Column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password for secure authentication",
    )

    avatar = Column(
        String(500),
        nullable=True,
        comment="Optional avatar URL",
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
