"""Association Mutator — adds a resolved child to the parent's in-memory collection.

Invariants:
    - Re-adding an existing member is DUPLICATE_IGNORED, never an error
    - Any other store failure escalates as PersistenceError
    - Never persists: saving is the orchestrator's next step
"""

from typing import Any

from resource_links.core.conflict_policy import classify_write
from resource_links.core.domain_types import ChildRef, MutationOutcome
from resource_links.core.errors import ErrorContext
from resource_links.core.store_protocols import EntityStore


class AssociationMutator:
    """Applies a link idempotently via EntityStore.add_member."""

    def __init__(self, store: EntityStore):
        self.store = store

    async def apply(
        self, parent: Any, relation: str, child: ChildRef,
        context: ErrorContext | None = None,
    ) -> MutationOutcome:
        result = await self.store.add_member(parent, relation, child.key)
        return classify_write(result, "add", context)
