"""Conflict Policy — classifies store write results for the idempotent link flow.

Invariants:
    - All functions are PURE: no IO, no async, no side effects
    - DUPLICATE_CONFLICT is never an error: it becomes DUPLICATE_IGNORED
    - FAILED always escalates to PersistenceError (with the store error as cause)
    - Notification happens only when every step APPLIED
"""

from resource_links.core.domain_types import (
    LinkStatus, MutationOutcome, WriteResult, WriteStatus,
)
from resource_links.core.errors import ErrorContext, PersistenceError


def classify_write(
    result: WriteResult, step: str, context: ErrorContext | None = None,
) -> MutationOutcome:
    """Map a typed write result to a mutation outcome, or raise."""
    match result.status:
        case WriteStatus.OK:
            return MutationOutcome.APPLIED
        case WriteStatus.DUPLICATE_CONFLICT:
            return MutationOutcome.DUPLICATE_IGNORED
    raise PersistenceError(step, result.error, context)


def should_notify(*outcomes: MutationOutcome) -> bool:
    return all(o is MutationOutcome.APPLIED for o in outcomes)


def link_status(*outcomes: MutationOutcome) -> LinkStatus:
    if should_notify(*outcomes):
        return LinkStatus.LINKED
    return LinkStatus.ALREADY_LINKED
