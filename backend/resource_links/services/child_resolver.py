"""Child Resolver — turns a ChildDescriptor into the key of a persisted child.

Invariants:
    - Always goes through the store's find_or_create: the returned key is persisted
    - ByKey never creates a record when the key exists
    - Returns only the primary key (ChildRef); the full record is not kept
    - Store failures wrapped in ChildResolutionError, original kept as cause; no retries
"""

import logging

from resource_links.core.child_descriptor import find_or_create_args
from resource_links.core.domain_types import ChildDescriptor, ChildRef, TypeMetadata
from resource_links.core.errors import ChildResolutionError, ErrorContext, StoreError
from resource_links.core.store_protocols import EntityStore

logger = logging.getLogger(__name__)


class ChildResolver:
    """Resolves the child side of a link through the entity store."""

    def __init__(self, store: EntityStore):
        self.store = store

    async def resolve(
        self, target: TypeMetadata, descriptor: ChildDescriptor,
        context: ErrorContext | None = None,
    ) -> ChildRef:
        criteria, payload = find_or_create_args(descriptor, target)
        try:
            record = await self.store.find_or_create(
                target.identity, criteria, payload,
            )
        except StoreError as e:
            logger.warning(
                f"Child resolution failed for {target.identity}: {e.message}",
                extra={"model": target.identity, "error_code": e.code},
            )
            raise ChildResolutionError(e, context) from e
        return ChildRef(target.identity, self.store.primary_key_of(record))
