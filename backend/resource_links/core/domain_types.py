"""Domain Types — rich types for link requests, store results, and outcomes.

Invariants:
    - ChildDescriptor is exactly one of ByKey | ByValue
    - ByValue.fields never contains a control field (see DEFAULT_VALUE_BLACKLIST)
    - WriteResult.error is set only when status is FAILED
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - Frozen dataclasses for request-scoped values: resolved fresh per request, never mutated
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, NewType

from resource_links.core.errors import StoreError


ModelIdentity = NewType("ModelIdentity", str)   # lowercase model name, e.g. "farm"
RecordKey = Hashable                             # primary-key value of any record

# Pagination/control parameters that never become child fields
DEFAULT_VALUE_BLACKLIST = ("limit", "skip", "sort", "id", "parentid")


# ─── Enums ───────────────────────────────────────────────────────

class Cardinality(str, Enum):
    """Shape of a collection association."""
    ONE_TO_MANY = "one_to_many"
    MANY_TO_MANY = "many_to_many"


class WriteStatus(str, Enum):
    """Store-agnostic result of an add or save."""
    OK = "ok"
    DUPLICATE_CONFLICT = "duplicate_conflict"
    FAILED = "failed"


class MutationOutcome(str, Enum):
    """What the mutate and persist steps did to the link."""
    APPLIED = "applied"
    DUPLICATE_IGNORED = "duplicate_ignored"


class LinkStatus(str, Enum):
    """Success variants reported to the caller."""
    LINKED = "linked"
    ALREADY_LINKED = "already_linked"


# ─── Type Metadata ───────────────────────────────────────────────

@dataclass(frozen=True)
class Association:
    """A declared collection attribute on a model."""
    alias: str
    target_type: ModelIdentity
    cardinality: Cardinality


@dataclass(frozen=True)
class TypeMetadata:
    """Declared shape of one model: identity, key, and associations by alias."""
    identity: ModelIdentity
    primary_key: str
    key_type: type = int
    associations: dict[str, Association] = field(default_factory=dict)


# ─── Request Values ──────────────────────────────────────────────

@dataclass(frozen=True)
class ParentRef:
    type: ModelIdentity
    key: RecordKey


@dataclass(frozen=True)
class ChildRef:
    type: ModelIdentity
    key: RecordKey


@dataclass(frozen=True)
class ByKey:
    """Child identified by an existing primary key."""
    key: RecordKey


@dataclass(frozen=True)
class ByValue:
    """Child described by field values (created unless one already matches)."""
    fields: dict[str, Any]


ChildDescriptor = ByKey | ByValue


@dataclass(frozen=True)
class RequestContext:
    """Where the link request came from, for the notifier.

    channel_id: pub/sub channel of the caller (None for plain HTTP)
    subscribable: the channel is open and can be subscribed to the parent
    mirror: echo the event back to the originating channel too
    """
    channel_id: str | None = None
    subscribable: bool = False
    mirror: bool = False


@dataclass(frozen=True)
class LinkRequest:
    parent: ParentRef
    relation: str
    child: ChildDescriptor
    context: RequestContext = RequestContext()


# ─── Results ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class WriteResult:
    """Typed result of EntityStore.add_member / EntityStore.save."""
    status: WriteStatus
    error: StoreError | None = None

    @classmethod
    def ok(cls) -> "WriteResult":
        return cls(WriteStatus.OK)

    @classmethod
    def conflict(cls) -> "WriteResult":
        return cls(WriteStatus.DUPLICATE_CONFLICT)

    @classmethod
    def failed(cls, error: StoreError) -> "WriteResult":
        return cls(WriteStatus.FAILED, error)


@dataclass(frozen=True)
class LinkOutcome:
    """Successful link: the reloaded parent with the relation populated."""
    parent: dict[str, Any]
    status: LinkStatus
    child: ChildRef
    notified: bool = False
