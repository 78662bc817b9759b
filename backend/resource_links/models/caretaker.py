"""Caretaker ORM — child of Farm.caretakers (one-to-many, FK on this side).

Invariants:
    - farm_id nullable: a caretaker exists before it is linked to a farm
    - Linking a caretaker already attached to another farm moves it
"""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from resource_links.db.base import Base


class Caretaker(Base):
    """Caretaker entity."""
    __tablename__ = "caretakers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    farm_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("farms.id", ondelete="SET NULL"), nullable=True,
    )

    farm: Mapped["Farm | None"] = relationship(
        "Farm", back_populates="caretakers", lazy="selectin",
    )
