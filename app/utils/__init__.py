"""
Common utilities package for the kanban board application.

- auth: bcrypt password hashing and JWT issuing/verification
- logger: shared logging setup

Only the logger is re-exported here; ``app.config`` depends on it, and the
auth helpers depend on ``app.config``.
"""

from app.utils.logger import setup_logger

__all__ = ["setup_logger"]
