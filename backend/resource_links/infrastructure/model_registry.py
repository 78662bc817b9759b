"""Model Registry — builds the relation table from SQLAlchemy mapper metadata, once.

Invariants:
    - Only mapped classes with a single-column primary key are linkable models
    - Only collection relationships (uselist, one-to-many or many-to-many) are associations
    - Built at startup (lru_cache); request handling never introspects mappers

Design Decisions:
    - Identity = lowercase class name, the same convention the routes use
"""

import logging
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.orm import DeclarativeBase, Mapper, RelationshipDirection

from resource_links.core.domain_types import (
    Association, Cardinality, ModelIdentity, TypeMetadata,
)
from resource_links.core.relation_resolver import RelationTable, identity_for
from resource_links.db.base import Base

logger = logging.getLogger(__name__)

_CARDINALITY = {
    RelationshipDirection.ONETOMANY: Cardinality.ONE_TO_MANY,
    RelationshipDirection.MANYTOMANY: Cardinality.MANY_TO_MANY,
}


@dataclass(frozen=True)
class ModelRegistry:
    """Mapped classes by identity plus the relation table built from them."""
    classes: dict[str, type]
    relations: RelationTable

    def class_for(self, model: ModelIdentity) -> type:
        return self.classes[model]


def describe_mapper(mapper: Mapper) -> TypeMetadata:
    pk_column = mapper.primary_key[0]
    try:
        key_type = pk_column.type.python_type
    except NotImplementedError:
        key_type = str
    associations = {}
    for rel in mapper.relationships:
        cardinality = _CARDINALITY.get(rel.direction)
        if cardinality is None or not rel.uselist:
            continue
        associations[rel.key] = Association(
            alias=rel.key,
            target_type=identity_for(rel.mapper.class_.__name__),
            cardinality=cardinality,
        )
    return TypeMetadata(
        identity=identity_for(mapper.class_.__name__),
        primary_key=mapper.get_property_by_column(pk_column).key,
        key_type=key_type,
        associations=associations,
    )


def build_registry(base: type[DeclarativeBase] = Base) -> ModelRegistry:
    """Walk every mapper registered on `base` and index it by identity."""
    classes: dict[str, type] = {}
    types: list[TypeMetadata] = []
    for mapper in base.registry.mappers:
        if len(mapper.primary_key) != 1:
            logger.warning(
                f"Skipping {mapper.class_.__name__}: composite primary key",
            )
            continue
        meta = describe_mapper(mapper)
        classes[meta.identity] = mapper.class_
        types.append(meta)
    registry = ModelRegistry(classes=classes, relations=RelationTable(types))
    logger.info(f"Relation table built for models: {registry.relations.identities}")
    return registry


@lru_cache
def get_model_registry() -> ModelRegistry:
    import resource_links.models  # noqa: F401  (populate Base.registry)
    return build_registry(Base)
