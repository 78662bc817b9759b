"""SQLAlchemy Declarative Base — shared base class for all ORM models.

Invariants:
    - All models inherit from Base
    - Base.registry is the source the relation table is built from
    - AsyncAttrs: collections can be awaited (record.awaitable_attrs.<relation>)
      when they were expired by a rollback
"""

from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all linkable ORM models."""
    pass
