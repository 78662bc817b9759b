"""Child Descriptor — decides how the child of a link request is identified.

Invariants:
    - A child key (path segment or "id" value) always wins over a value payload
    - Control fields are stripped from value payloads before anything else sees them
    - Neither a key nor a non-empty payload -> RequestInvalidError
    - find-or-create arguments: ByKey -> ({pk: key}, {pk: key});
      ByValue -> ({pk: None}, fields)
"""

from typing import Any, Iterable, Mapping

from resource_links.core.domain_types import (
    ByKey, ByValue, ChildDescriptor, DEFAULT_VALUE_BLACKLIST, TypeMetadata,
)
from resource_links.core.errors import RequestInvalidError
from resource_links.core.relation_resolver import coerce_key

MISSING_CHILD_MESSAGE = (
    "You must specify the record to add (either the primary key of an existing "
    "record to link, or a new object without a primary key which will be used "
    "to create a record then link it)."
)


def strip_control_fields(
    values: Mapping[str, Any],
    blacklist: Iterable[str] = DEFAULT_VALUE_BLACKLIST,
) -> dict[str, Any]:
    blocked = set(blacklist)
    return {k: v for k, v in values.items() if k not in blocked}


def parse_child_descriptor(
    child_key: Any,
    values: Mapping[str, Any] | None,
    blacklist: Iterable[str] = DEFAULT_VALUE_BLACKLIST,
) -> ChildDescriptor:
    """Build the descriptor from the child path key and the request values."""
    values = values or {}
    if child_key is None or child_key == "":
        child_key = values.get("id")
    if child_key is not None and child_key != "":
        return ByKey(child_key)

    fields = strip_control_fields(values, blacklist)
    if not fields:
        raise RequestInvalidError(MISSING_CHILD_MESSAGE, field="child")
    return ByValue(fields)


def find_or_create_args(
    descriptor: ChildDescriptor, target: TypeMetadata,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return (criteria, creation payload) for the store's find_or_create."""
    pk = target.primary_key
    match descriptor:
        case ByKey(key=key):
            key = coerce_key(target, key)
            return {pk: key}, {pk: key}
        case ByValue(fields=fields):
            return {pk: None}, dict(fields)
    raise TypeError(f"Unsupported child descriptor: {descriptor!r}")
