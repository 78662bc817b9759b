"""Animal ORM — child of Farm.animals; links back through Animal.farms."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from resource_links.db.base import Base
from resource_links.models.farm import farm_animals


class Animal(Base):
    """Animal entity. All fields optional: a bare key is a valid record."""
    __tablename__ = "animals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    species: Mapped[str | None] = mapped_column(String(100), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    farms: Mapped[list["Farm"]] = relationship(
        "Farm", secondary=farm_animals, back_populates="animals",
        lazy="selectin", order_by="Farm.id",
    )
