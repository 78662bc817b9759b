"""Farm ORM — parent of the animals (many-to-many) and caretakers (one-to-many) relations.

Invariants:
    - farm_animals has a composite primary key: one row per (farm, animal) link
    - A second insert of the same pair is an integrity conflict, never a second row
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from resource_links.db.base import Base


farm_animals = Table(
    "farm_animals",
    Base.metadata,
    Column(
        "farm_id", Integer,
        ForeignKey("farms.id", ondelete="CASCADE"), primary_key=True,
    ),
    Column(
        "animal_id", Integer,
        ForeignKey("animals.id", ondelete="CASCADE"), primary_key=True,
    ),
)


class Farm(Base):
    """Farm entity."""
    __tablename__ = "farms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    animals: Mapped[list["Animal"]] = relationship(
        "Animal", secondary=farm_animals, back_populates="farms",
        lazy="selectin", order_by="Animal.id",
    )
    caretakers: Mapped[list["Caretaker"]] = relationship(
        "Caretaker", back_populates="farm",
        lazy="selectin", order_by="Caretaker.id",
    )
