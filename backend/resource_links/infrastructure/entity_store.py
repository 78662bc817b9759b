"""SQL Entity Store — EntityStore Protocol over an AsyncSession and the model registry.

Invariants:
    - find_or_create commits the created record: the returned key is always persisted
    - Unkeyed find_or_create ({pk: None}) matches on the payload fields, else creates
    - add_member never writes: it appends in memory, or reports DUPLICATE_CONFLICT
    - save classifies IntegrityError by SQLSTATE / SQLite extended error name,
      never by message text; unique violations are DUPLICATE_CONFLICT
    - Values the database refuses to bind or store are VALIDATION, not UNAVAILABLE
    - StoreError messages are fixed strings; driver errors travel only as __cause__
    - Every failed write is rolled back before the result is returned

Design Decisions:
    - Bidirectionality delegated to relationship(back_populates=...): appending to
      Farm.animals also updates Animal.farms
    - populate() uses populate_existing so a stale identity-map copy never leaks
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import inspect, select
from sqlalchemy.exc import (
    DataError, IntegrityError, InterfaceError, ProgrammingError,
    SQLAlchemyError, StatementError,
)
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from resource_links.core.domain_types import ModelIdentity, RecordKey, WriteResult
from resource_links.core.errors import StoreError, StoreErrorKind
from resource_links.infrastructure.model_registry import ModelRegistry
from resource_links.core.relation_resolver import identity_for

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"
SQLITE_UNIQUE_ERRORS = frozenset({
    "SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY",
})

INVALID_VALUE_MESSAGE = "Invalid field value"
UNAVAILABLE_MESSAGE = "Database unavailable"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the driver error is a unique/primary-key violation."""
    seen = set()
    err: BaseException | None = exc.orig
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        sqlstate = getattr(err, "sqlstate", None) or getattr(err, "pgcode", None)
        if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
            return True
        if getattr(err, "sqlite_errorname", None) in SQLITE_UNIQUE_ERRORS:
            return True
        err = err.__cause__
    return False


def rejects_bound_value(exc: SQLAlchemyError) -> bool:
    """True when the database refused a user-supplied value rather than failing.

    DataError: the server rejected the value (bad cast, out of range).
    ProgrammingError / InterfaceError: the driver could not bind it (e.g. a dict).
    StatementError wrapping TypeError / ValueError: a column type's bind
    processor refused it before the driver saw it.
    """
    if isinstance(exc, (DataError, ProgrammingError, InterfaceError)):
        return True
    return isinstance(exc, StatementError) and isinstance(exc.orig, (TypeError, ValueError))


def _unavailable(operation: str, exc: SQLAlchemyError) -> StoreError:
    logger.error(f"Store {operation} failed: {exc}")
    return StoreError(UNAVAILABLE_MESSAGE, StoreErrorKind.UNAVAILABLE, operation)


class SqlEntityStore:
    """Entity store backed by one request-scoped AsyncSession."""

    def __init__(self, db: AsyncSession, registry: ModelRegistry):
        self.db = db
        self.registry = registry

    # ─── Reads ──────────────────────────────────────────────────

    async def find_one(self, model: ModelIdentity, key: RecordKey) -> Any | None:
        cls = self.registry.class_for(model)
        try:
            return await self.db.get(cls, key)
        except SQLAlchemyError as e:
            raise _unavailable("find_one", e) from e

    async def find_or_create(
        self, model: ModelIdentity, criteria: dict[str, Any], payload: dict[str, Any],
    ) -> Any:
        cls = self.registry.class_for(model)
        self._check_fields(model, criteria)
        self._check_fields(model, payload)

        existing = await self._find_match(model, criteria, payload)
        if existing is not None:
            return existing

        record = cls(**payload)
        self.db.add(record)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not is_unique_violation(e):
                raise StoreError(
                    "Integrity constraint violated", StoreErrorKind.VALIDATION,
                    "find_or_create",
                ) from e
            # Lost a create race: the winner's record satisfies the criteria
            existing = await self._find_match(model, criteria, payload)
            if existing is None:
                raise StoreError(
                    "Conflicting record not found after insert conflict",
                    StoreErrorKind.INSERT_CONFLICT, "find_or_create",
                ) from e
            return existing
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise self._find_or_create_error(e) from e
        logger.info(
            f"Created {model} record",
            extra={"model": model, "child_key": self.primary_key_of(record)},
        )
        return record

    async def populate(
        self, model: ModelIdentity, key: RecordKey, relation: str,
    ) -> Any | None:
        cls = self.registry.class_for(model)
        pk = self.registry.relations.type_of(model).primary_key
        stmt = (
            select(cls)
            .where(getattr(cls, pk) == key)
            .options(selectinload(getattr(cls, relation)))
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise _unavailable("populate", e) from e
        return result.scalar_one_or_none()

    # ─── Writes ─────────────────────────────────────────────────

    async def add_member(
        self, record: Any, relation: str, child_key: RecordKey,
    ) -> WriteResult:
        target_cls = inspect(type(record)).relationships[relation].mapper.class_
        try:
            collection = await getattr(record.awaitable_attrs, relation)
            child = await self.db.get(target_cls, child_key)
        except SQLAlchemyError as e:
            return WriteResult.failed(_unavailable("add", e))
        if child is None:
            return WriteResult.failed(StoreError(
                f"{target_cls.__name__} '{child_key}' no longer exists",
                StoreErrorKind.VALIDATION, "add",
            ))
        if child in collection:
            return WriteResult.conflict()
        collection.append(child)
        return WriteResult.ok()

    async def save(self, record: Any) -> WriteResult:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if is_unique_violation(e):
                return WriteResult.conflict()
            return WriteResult.failed(StoreError(
                "Integrity constraint violated", StoreErrorKind.VALIDATION, "save",
            ))
        except SQLAlchemyError as e:
            await self.db.rollback()
            return WriteResult.failed(_unavailable("save", e))
        return WriteResult.ok()

    # ─── Record helpers ─────────────────────────────────────────

    def primary_key_of(self, record: Any) -> RecordKey:
        meta = self.registry.relations.type_of(identity_for(type(record).__name__))
        return getattr(record, meta.primary_key)

    def has_relation(self, record: Any, relation: str) -> bool:
        return relation in inspect(type(record)).relationships.keys()

    def to_dict(self, record: Any, relation: str | None = None) -> dict[str, Any]:
        """Project column values (plus one populated relation) to plain data."""
        data = {
            attr.key: _plain(getattr(record, attr.key))
            for attr in inspect(type(record)).column_attrs
        }
        if relation:
            data[relation] = [self.to_dict(m) for m in getattr(record, relation)]
        return data

    # ─── Internals ──────────────────────────────────────────────

    def _check_fields(self, model: ModelIdentity, fields: dict[str, Any]) -> None:
        columns = inspect(self.registry.class_for(model)).column_attrs.keys()
        unknown = sorted(set(fields) - set(columns))
        if unknown:
            raise StoreError(
                f"Unknown {model} field(s): {', '.join(unknown)}",
                StoreErrorKind.VALIDATION, "find_or_create",
            )

    async def _find_match(
        self, model: ModelIdentity, criteria: dict[str, Any], payload: dict[str, Any],
    ) -> Any | None:
        cls = self.registry.class_for(model)
        pk = self.registry.relations.type_of(model).primary_key
        if criteria.get(pk) is not None:
            return await self.find_one(model, criteria[pk])

        filters = {k: v for k, v in criteria.items() if k != pk}
        filters.update(payload)
        if not filters:
            return None
        stmt = (
            select(cls).filter_by(**filters)
            .order_by(getattr(cls, pk)).limit(1)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise self._find_or_create_error(e) from e
        return result.scalars().first()

    @staticmethod
    def _find_or_create_error(exc: SQLAlchemyError) -> StoreError:
        if rejects_bound_value(exc):
            return StoreError(
                INVALID_VALUE_MESSAGE, StoreErrorKind.VALIDATION, "find_or_create",
            )
        return _unavailable("find_or_create", exc)


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    return value
