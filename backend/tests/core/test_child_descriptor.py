"""Child Descriptor — key vs value parsing and find-or-create arguments.

Tests:
    - Path key wins, "id" value is a key too
    - Control fields stripped from value payloads
    - Nothing usable -> RequestInvalidError
    - find_or_create_args shapes for ByKey / ByValue
"""

import pytest

from resource_links.core.child_descriptor import (
    find_or_create_args, parse_child_descriptor, strip_control_fields,
)
from resource_links.core.domain_types import ByKey, ByValue, ModelIdentity, TypeMetadata
from resource_links.core.errors import RequestInvalidError

ANIMAL = TypeMetadata(identity=ModelIdentity("animal"), primary_key="id")


def test_path_key_builds_by_key():
    assert parse_child_descriptor("5", {"name": "ignored"}) == ByKey("5")


def test_id_value_builds_by_key():
    assert parse_child_descriptor(None, {"id": 9, "name": "x"}) == ByKey(9)


def test_values_build_by_value_without_control_fields():
    descriptor = parse_child_descriptor(None, {
        "name": "Jimmy", "species": "horse",
        "limit": "10", "skip": "2", "sort": "name", "parentid": "1",
    })
    assert descriptor == ByValue({"name": "Jimmy", "species": "horse"})


def test_custom_blacklist_is_honoured():
    descriptor = parse_child_descriptor(
        None, {"name": "Jimmy", "token": "abc"}, blacklist=["token"],
    )
    assert descriptor == ByValue({"name": "Jimmy"})


@pytest.mark.parametrize("values", [None, {}, {"limit": 5, "sort": "name"}, {"id": ""}])
def test_missing_child_is_invalid(values):
    with pytest.raises(RequestInvalidError) as exc_info:
        parse_child_descriptor(None, values)
    assert exc_info.value.field == "child"


def test_strip_control_fields_keeps_everything_else():
    assert strip_control_fields({"id": 1, "age": 3}) == {"age": 3}


def test_by_key_args_seed_only_the_key():
    criteria, payload = find_or_create_args(ByKey("12"), ANIMAL)
    assert criteria == {"id": 12}
    assert payload == {"id": 12}


def test_by_value_args_use_null_key_criteria():
    fields = {"name": "Jimmy"}
    criteria, payload = find_or_create_args(ByValue(fields), ANIMAL)
    assert criteria == {"id": None}
    assert payload == fields
    assert payload is not fields
