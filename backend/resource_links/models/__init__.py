"""ORM Models — SQLAlchemy declarative models exposed as linkable resources.

Invariants:
    - All models inherit from Base (db/base.py)
    - Model identity is the lowercase class name ("farm", "animal", "caretaker")
    - Every collection relationship declares back_populates (links are bidirectional)

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before the relation table is built
"""

from resource_links.models.farm import Farm, farm_animals  # noqa: F401
from resource_links.models.animal import Animal  # noqa: F401
from resource_links.models.caretaker import Caretaker  # noqa: F401
