"""Relation Resolver — precomputed lookup of a model's declared associations.

Invariants:
    - Built once from TypeMetadata; lookups never introspect models at request time
    - resolve() is a pure lookup: no side effects, raises RelationNotFound on miss
    - An association whose target type is not registered is a RequestInvalidError,
      not a missing relation (the relation exists, its target is broken)
"""

from typing import Iterable

from resource_links.core.domain_types import Association, ModelIdentity, TypeMetadata
from resource_links.core.errors import RequestInvalidError


class RelationNotFound(LookupError):
    """Model or relation is not declared. Callers map this to ParentNotFoundError."""

    def __init__(self, model: str, relation: str | None = None):
        super().__init__(model, relation)
        self.model = model
        self.relation = relation


class RelationTable:
    """Type metadata indexed by model identity."""

    def __init__(self, types: Iterable[TypeMetadata]):
        self._types: dict[str, TypeMetadata] = {t.identity: t for t in types}

    def __contains__(self, model: str) -> bool:
        return model in self._types

    @property
    def identities(self) -> list[str]:
        return sorted(self._types)

    def type_of(self, model: str) -> TypeMetadata:
        try:
            return self._types[model]
        except KeyError:
            raise RelationNotFound(model) from None

    def resolve(self, parent_type: str, relation: str) -> Association:
        """Return the association named `relation` on `parent_type`."""
        association = self.type_of(parent_type).associations.get(relation)
        if association is None:
            raise RelationNotFound(parent_type, relation)
        if association.target_type not in self._types:
            raise RequestInvalidError(
                f"Relation '{relation}' on {parent_type} targets unknown "
                f"type '{association.target_type}'",
                field="relation",
            )
        return association

    def target_of(self, parent_type: str, relation: str) -> TypeMetadata:
        return self._types[self.resolve(parent_type, relation).target_type]


def coerce_key(meta: TypeMetadata, raw: object) -> object:
    """Convert a raw path/body key to the model's primary-key type."""
    if isinstance(raw, meta.key_type) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, (dict, list, bool)) or raw is None:
        raise RequestInvalidError(
            f"Invalid {meta.identity} key: {raw!r}", field=meta.primary_key,
        )
    try:
        return meta.key_type(raw)
    except (TypeError, ValueError):
        raise RequestInvalidError(
            f"Invalid {meta.identity} key: {raw!r}", field=meta.primary_key,
        ) from None


def identity_for(name: str) -> ModelIdentity:
    """Model identity convention: lowercase class name."""
    return ModelIdentity(name.lower())
