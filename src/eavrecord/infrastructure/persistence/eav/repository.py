"""Finders for records with dynamic attributes.

Every finder accepts ``eav`` (opt the returned records in) and ``eager``
(load their dynamic attribute values in one batched read). ``eager=None``
falls back to the ``eav_eager_loading`` setting.
"""

from typing import Any, Generic, Iterable, TypeVar

from sqlalchemy import Select, distinct, func, select, text
from sqlalchemy.orm import Session

from eavrecord.core.config import get_settings
from eavrecord.core.logging import get_logger
from eavrecord.infrastructure.persistence.eav.attribute_store import DynamicAttributeStore
from eavrecord.infrastructure.persistence.eav.loader import EavLoader
from eavrecord.infrastructure.persistence.eav.query import build_query_context
from eavrecord.infrastructure.persistence.eav.resolver import primary_key_column
from eavrecord.infrastructure.persistence.value_stores import ValueStoreRegistry, value_stores

logger = get_logger(__name__)

T = TypeVar("T")


class EavRecordRepository(Generic[T]):
    """Repository for host records with dynamic attributes."""

    def __init__(
        self,
        session: Session,
        model: type[T],
        registry: ValueStoreRegistry | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy session.
            model: Mapped class using ``EavMixin``.
            registry: Value store registry.
        """
        self.session = session
        self.model = model
        self.registry = registry or value_stores

    def _split_attributes(self, attributes: dict[str, Any]) -> tuple[list[Any], dict[str, Any]]:
        static: list[Any] = []
        dynamic: dict[str, Any] = {}
        columns = self.model.__mapper__.columns
        for name, value in attributes.items():
            if name in columns:
                static.append(getattr(self.model, name) == value)
            else:
                dynamic[name] = value
        return static, dynamic

    def _build(
        self,
        stmt: Select,
        condition: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> Select:
        context = build_query_context(
            self.session, self.model, condition, attributes=attributes, registry=self.registry
        )
        return context.apply(stmt)

    def _execute(self, stmt: Select, params: dict[str, Any] | None) -> list[T]:
        result = self.session.execute(stmt, params or {})
        return list(result.scalars().unique().all())

    def prepare(self, records: Iterable[T], eav: bool = True, eager: bool | None = None) -> list[T]:
        """Opt records in and optionally load their values eagerly.

        Records that already carry an attribute store keep it.
        """
        records = list(records)
        if not eav or not records:
            return records
        if eager is None:
            eager = get_settings().eav_eager_loading
        for record in records:
            DynamicAttributeStore.attach(record, session=self.session)
        if eager:
            EavLoader(self.session, self.registry).load(records)
        return records

    def _first(self, records: list[T], eav: bool, eager: bool | None) -> T | None:
        if not records:
            return None
        return self.prepare(records[:1], eav, eager)[0]

    def find(
        self,
        condition: str | None = None,
        params: dict[str, Any] | None = None,
        *,
        eav: bool = True,
        eager: bool | None = None,
    ) -> T | None:
        """Find the first record matching a condition."""
        stmt = self._build(select(self.model), condition).limit(1)
        return self._first(self._execute(stmt, params), eav, eager)

    def find_all(
        self,
        condition: str | None = None,
        params: dict[str, Any] | None = None,
        *,
        order_by: Any = None,
        limit: int | None = None,
        offset: int | None = None,
        eav: bool = True,
        eager: bool | None = None,
    ) -> list[T]:
        """Find every record matching a condition.

        Args:
            condition: SQL condition, optionally holding ``::name`` markers.
            params: Bind parameters for the condition.
            order_by: Column expression or SQL text to order by.
            limit: Maximum number of records.
            offset: Number of records to skip.
            eav: Opt the returned records in.
            eager: Load dynamic attribute values in one batched read.
        """
        stmt = self._build(select(self.model), condition)
        if order_by is None:
            stmt = stmt.order_by(primary_key_column(self.model))
        else:
            stmt = stmt.order_by(text(order_by) if isinstance(order_by, str) else order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset is not None:
            stmt = stmt.offset(offset)
        return self.prepare(self._execute(stmt, params), eav, eager)

    def find_by_pk(
        self,
        pk: Any,
        condition: str | None = None,
        params: dict[str, Any] | None = None,
        *,
        eav: bool = True,
        eager: bool | None = None,
    ) -> T | None:
        stmt = self._build(select(self.model).where(primary_key_column(self.model) == pk), condition)
        return self._first(self._execute(stmt, params), eav, eager)

    def find_all_by_pk(
        self,
        pks: Iterable[Any],
        condition: str | None = None,
        params: dict[str, Any] | None = None,
        *,
        eav: bool = True,
        eager: bool | None = None,
    ) -> list[T]:
        pk_column = primary_key_column(self.model)
        stmt = self._build(select(self.model).where(pk_column.in_(list(pks))), condition)
        return self.prepare(self._execute(stmt.order_by(pk_column), params), eav, eager)

    def find_by_attributes(
        self,
        attributes: dict[str, Any],
        condition: str | None = None,
        params: dict[str, Any] | None = None,
        *,
        eav: bool = True,
        eager: bool | None = None,
    ) -> T | None:
        """Find the first record whose static or dynamic attributes match exactly."""
        static, dynamic = self._split_attributes(attributes)
        stmt = self._build(select(self.model).where(*static), condition, dynamic).limit(1)
        return self._first(self._execute(stmt, params), eav, eager)

    def find_all_by_attributes(
        self,
        attributes: dict[str, Any],
        condition: str | None = None,
        params: dict[str, Any] | None = None,
        *,
        eav: bool = True,
        eager: bool | None = None,
    ) -> list[T]:
        """Find every record whose static or dynamic attributes match exactly."""
        static, dynamic = self._split_attributes(attributes)
        stmt = self._build(select(self.model).where(*static), condition, dynamic)
        stmt = stmt.order_by(primary_key_column(self.model))
        return self.prepare(self._execute(stmt, params), eav, eager)

    def find_by_sql(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        eav: bool = True,
        eager: bool | None = None,
    ) -> T | None:
        records = self.find_all_by_sql(sql, params, eav=False)
        return self._first(records, eav, eager)

    def find_all_by_sql(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        eav: bool = True,
        eager: bool | None = None,
    ) -> list[T]:
        """Load records from caller-supplied SQL selecting the record's columns."""
        stmt = select(self.model).from_statement(text(sql))
        result = self.session.execute(stmt, params or {})
        return self.prepare(result.scalars().unique().all(), eav, eager)

    def count(self, condition: str | None = None, params: dict[str, Any] | None = None) -> int:
        """Count distinct records matching a condition."""
        pk_column = primary_key_column(self.model)
        stmt = self._build(select(func.count(distinct(pk_column))).select_from(self.model), condition)
        return self.session.execute(stmt, params or {}).scalar_one()

    def exists(self, condition: str | None = None, params: dict[str, Any] | None = None) -> bool:
        """Check whether any record matches a condition."""
        pk_column = primary_key_column(self.model)
        stmt = self._build(select(pk_column).select_from(self.model), condition).limit(1)
        return self.session.execute(stmt, params or {}).first() is not None
