"""Service test fixtures — relation table and in-memory store for orchestrator tests.

Invariants:
    - Orchestrator tests never touch SQLAlchemy: FakeEntityStore stands in
    - The notifier is an AsyncMock so call order and arguments can be asserted
"""

from unittest.mock import AsyncMock

import pytest

from resource_links.core.domain_types import (
    Association, Cardinality, ModelIdentity, TypeMetadata,
)
from resource_links.core.relation_resolver import RelationTable
from resource_links.services.link_orchestrator import LinkOrchestrator
from tests.services.fake_store import FakeEntityStore


def _association(alias: str, target: str, cardinality: Cardinality) -> Association:
    return Association(alias, ModelIdentity(target), cardinality)


@pytest.fixture
def relations():
    return RelationTable([
        TypeMetadata(
            identity=ModelIdentity("farm"), primary_key="id",
            associations={
                "animals": _association("animals", "animal", Cardinality.MANY_TO_MANY),
                "caretakers": _association(
                    "caretakers", "caretaker", Cardinality.ONE_TO_MANY,
                ),
            },
        ),
        TypeMetadata(
            identity=ModelIdentity("animal"), primary_key="id",
            associations={
                "farms": _association("farms", "farm", Cardinality.MANY_TO_MANY),
            },
        ),
        TypeMetadata(identity=ModelIdentity("caretaker"), primary_key="id"),
        TypeMetadata(
            identity=ModelIdentity("barn"), primary_key="id",
            associations={
                "scarecrows": _association("scarecrows", "scarecrow", Cardinality.ONE_TO_MANY),
            },
        ),
    ])


@pytest.fixture
def store(relations):
    fake = FakeEntityStore(relations)
    fake.insert("farm", {"id": 1, "name": "Old MacDonald's"})
    fake.insert("barn", {"id": 1})
    return fake


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest.fixture
def orchestrator(store, relations, notifier):
    return LinkOrchestrator(store, relations, notifier)
