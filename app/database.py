"""
Declarative base shared by the ORM models and Alembic.
"""

from app.core.database_manager import Base

__all__ = ["Base"]
