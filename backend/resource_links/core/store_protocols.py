"""Boundary Protocols — contracts between the linking core and its collaborators.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Store writes (add_member, save) return WriteResult; conflicts are a status, not an exception
    - Store reads (find_one, find_or_create, populate) raise StoreError on failure
    - Notifier is optional: the orchestrator receives None when pub/sub is disabled

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async in Protocol: implementations do IO, the orchestrator awaits each call in order
"""

from typing import Any, Protocol

from resource_links.core.domain_types import (
    ChildRef, ModelIdentity, RecordKey, RequestContext, WriteResult,
)


class EntityStore(Protocol):
    """Contract for typed record persistence — implemented by infrastructure."""
    async def find_one(self, model: ModelIdentity, key: RecordKey) -> Any | None: ...
    async def find_or_create(
        self, model: ModelIdentity, criteria: dict[str, Any], payload: dict[str, Any],
    ) -> Any: ...
    async def add_member(
        self, record: Any, relation: str, child_key: RecordKey,
    ) -> WriteResult: ...
    async def save(self, record: Any) -> WriteResult: ...
    async def populate(
        self, model: ModelIdentity, key: RecordKey, relation: str,
    ) -> Any | None: ...
    def primary_key_of(self, record: Any) -> RecordKey: ...
    def has_relation(self, record: Any, relation: str) -> bool: ...
    def to_dict(self, record: Any, relation: str | None = None) -> dict[str, Any]: ...


class Notifier(Protocol):
    """Contract for relation-change broadcasting — implemented by infrastructure."""
    async def subscribe(
        self, channel_id: str, model: ModelIdentity, key: RecordKey,
    ) -> None: ...
    async def notify_add(
        self,
        model: ModelIdentity,
        parent_key: RecordKey,
        relation: str,
        child: ChildRef,
        context: RequestContext,
    ) -> None: ...
