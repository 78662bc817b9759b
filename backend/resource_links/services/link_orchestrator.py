"""Link Orchestrator — idempotent "add child to parent's collection" flow.

Steps (strictly sequential, each awaits the previous one):
    1. LookupParent    find_one(parent); absent or relation not exposed -> ParentNotFoundError
    2. ResolveChild    ChildResolver (find-or-create) -> ChildRef
    3. Mutate          AssociationMutator -> APPLIED | DUPLICATE_IGNORED
    4. Persist         save(parent); DUPLICATE_CONFLICT at save time -> DUPLICATE_IGNORED
    5. Notify          only if steps 3 and 4 both APPLIED and a notifier is configured
    6. Reload          populate(parent, relation) -> LinkOutcome; vanished -> ReloadError

Invariants:
    - A duplicate link converges to the same success shape as a fresh link, minus notification
    - No retries, no local recovery: every error surfaces to the caller untouched
    - The mutated parent is dropped after step 4; the outcome is built from the reload
    - The subscribing channel is subscribed to the parent before the event is published

Design Decisions:
    - Notifier injected as an optional collaborator (None = pub/sub disabled)
    - Save always runs, also after DUPLICATE_IGNORED (a no-op write for the store)
"""

import logging
from typing import Any

from resource_links.core.conflict_policy import classify_write, link_status, should_notify
from resource_links.core.domain_types import (
    Association, ChildRef, LinkOutcome, LinkRequest, TypeMetadata,
)
from resource_links.core.errors import (
    ErrorContext, ParentNotFoundError, ReloadError, RequestInvalidError,
)
from resource_links.core.relation_resolver import RelationNotFound, RelationTable, coerce_key
from resource_links.core.store_protocols import EntityStore, Notifier
from resource_links.services.association_mutator import AssociationMutator
from resource_links.services.child_resolver import ChildResolver

logger = logging.getLogger(__name__)


class LinkOrchestrator:
    """Coordinates parent lookup, child resolution, mutation, save, notify, reload."""

    def __init__(
        self,
        store: EntityStore,
        relations: RelationTable,
        notifier: Notifier | None = None,
    ):
        self.store = store
        self.relations = relations
        self.notifier = notifier
        self.children = ChildResolver(store)
        self.mutator = AssociationMutator(store)

    async def link(self, request: LinkRequest) -> LinkOutcome:
        """Attach request.child to request.parent's relation. Idempotent."""
        model, relation = request.parent.type, request.relation
        ctx = ErrorContext(
            model=model, relation=relation, parent_key=request.parent.key,
        )
        if not relation:
            raise RequestInvalidError(
                "Missing relation name", field="relation", context=ctx,
            )

        meta = self._parent_type(model, request.parent.key)
        parent_key = self._parent_key(meta, request.parent.key)
        parent, association = await self._lookup_parent(meta, parent_key, relation)

        target = self.relations.type_of(association.target_type)
        child = await self.children.resolve(target, request.child, ctx)
        ctx.child_key = child.key

        mutation = await self.mutator.apply(parent, relation, child, ctx)
        persist = classify_write(await self.store.save(parent), "save", ctx)

        notified = False
        if should_notify(mutation, persist):
            notified = await self._notify(meta, parent_key, relation, child, request)
        else:
            logger.info(
                f"Duplicate link ignored: {model}#{parent_key}.{relation} <- {child.key}",
                extra=_log_extra(model, relation, parent_key, child.key),
            )

        reloaded = await self.store.populate(model, parent_key, relation)
        if reloaded is None or not self.store.has_relation(reloaded, relation):
            raise ReloadError(model, parent_key, ctx)
        return LinkOutcome(
            parent=self.store.to_dict(reloaded, relation),
            status=link_status(mutation, persist),
            child=child,
            notified=notified,
        )

    # ─── Steps ──────────────────────────────────────────────────

    def _parent_type(self, model: str, raw_key: Any) -> TypeMetadata:
        try:
            return self.relations.type_of(model)
        except RelationNotFound:
            raise ParentNotFoundError(model, raw_key) from None

    @staticmethod
    def _parent_key(meta: TypeMetadata, raw_key: Any) -> Any:
        # A key that cannot be coerced cannot match any record
        try:
            return coerce_key(meta, raw_key)
        except RequestInvalidError:
            raise ParentNotFoundError(meta.identity, raw_key) from None

    async def _lookup_parent(
        self, meta: TypeMetadata, parent_key: Any, relation: str,
    ) -> tuple[Any, Association]:
        parent = await self.store.find_one(meta.identity, parent_key)
        if parent is None:
            raise ParentNotFoundError(meta.identity, parent_key)
        try:
            association = self.relations.resolve(meta.identity, relation)
        except RelationNotFound:
            raise ParentNotFoundError(meta.identity, parent_key, relation) from None
        if not self.store.has_relation(parent, relation):
            raise ParentNotFoundError(meta.identity, parent_key, relation)
        return parent, association

    async def _notify(
        self, meta: TypeMetadata, parent_key: Any, relation: str,
        child: ChildRef, request: LinkRequest,
    ) -> bool:
        logger.info(
            f"Linked {meta.identity}#{parent_key}.{relation} <- {child.type}#{child.key}",
            extra=_log_extra(meta.identity, relation, parent_key, child.key),
        )
        if self.notifier is None:
            return False
        context = request.context
        if context.subscribable and context.channel_id:
            await self.notifier.subscribe(context.channel_id, meta.identity, parent_key)
        await self.notifier.notify_add(
            meta.identity, parent_key, relation, child, context,
        )
        return True


def _log_extra(model: str, relation: str, parent_key: Any, child_key: Any) -> dict:
    return {
        "model": model, "relation": relation,
        "parent_key": parent_key, "child_key": child_key,
    }
