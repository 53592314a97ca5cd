"""Persistence of records together with their dynamic attribute values.

Insert, update and delete write the record's static row through the ORM
and its attribute values through the value stores inside one transaction.
When the caller has explicitly begun a transaction the coordinator takes
part in it; otherwise it commits or rolls back on its own.
"""

from contextlib import contextmanager
from typing import Any, Generator, Iterable

from sqlalchemy import delete, inspect
from sqlalchemy.orm import Session, SessionTransactionOrigin

from eavrecord.core.config import get_settings
from eavrecord.core.exceptions import EavNotEnabledError, EavRecordStateError
from eavrecord.core.logging import LoggingContext, get_logger
from eavrecord.infrastructure.persistence.eav.attribute_store import (
    SCENARIO_UPDATE,
    DynamicAttributeStore,
    values_equal,
)
from eavrecord.infrastructure.persistence.eav.resolver import (
    REFERENCE_ATTRIBUTE,
    primary_key_column,
)
from eavrecord.infrastructure.persistence.value_stores import ValueKey, ValueStoreRegistry, value_stores

logger = get_logger(__name__)

_MISSING = object()


class PersistenceCoordinator:
    """Writes records and their dynamic attributes transactionally."""

    def __init__(self, session: Session, registry: ValueStoreRegistry | None = None) -> None:
        self.session = session
        self.registry = registry or value_stores

    def _store(self, entity: Any, operation: str) -> DynamicAttributeStore:
        store = DynamicAttributeStore.of(entity)
        if store is None:
            raise EavNotEnabledError(operation, type(entity).__name__)
        if store.session is None:
            store.session = self.session
        return store

    @contextmanager
    def transaction(self, operation: str, entity_type: str) -> Generator[None, None, None]:
        """Run a block in the caller's transaction, or in one owned by this call."""
        session = self.session
        transaction = session.get_transaction()
        if session.in_nested_transaction() or (
            transaction is not None and transaction.origin is not SessionTransactionOrigin.AUTOBEGIN
        ):
            yield
            return

        with LoggingContext(operation=operation, entity_type=entity_type):
            try:
                yield
                session.commit()
            except Exception as e:
                session.rollback()
                logger.warning("Dynamic attribute write rolled back", error=str(e))
                raise

    def check_consistency(self, entity: Any) -> bool:
        """Check that the record's reference agrees with its resolved attribute set."""
        store = self._store(entity, "check_consistency")
        return self._is_consistent(store)

    def _is_consistent(self, store: DynamicAttributeStore) -> bool:
        store.sync()
        reference = store.reference
        resolved = store.attribute_set
        if reference is None and resolved is None:
            return True
        if reference is not None and resolved is not None and resolved.id == reference:
            return True
        logger.warning(
            "Attribute set reference is inconsistent",
            entity_type=store.entity_type,
            reference_id=reference,
            resolved_id=resolved.id if resolved is not None else None,
        )
        return False

    @staticmethod
    def _reference_changed(store: DynamicAttributeStore) -> bool:
        """Check whether the static write would store a new attribute set reference."""
        if store.is_new():
            return store.reference is not None
        return inspect(store.entity).attrs[REFERENCE_ATTRIBUTE].history.has_changes()

    def _selection(
        self, store: DynamicAttributeStore, names: Iterable[str] | None
    ) -> tuple[set[str] | None, bool]:
        if names is None:
            return None, True
        selected = set(names)
        # The flush writes a changed reference whether or not it was selected
        return selected, REFERENCE_ATTRIBUTE in selected or self._reference_changed(store)

    def insert(self, entity: Any, names: Iterable[str] | None = None) -> bool:
        """Insert a new record and write its dynamic attribute values.

        Args:
            entity: The record to insert.
            names: Optional attribute names. Dynamic values are only written
                for selected names, and only when the reference itself is
                selected, nothing is restricted, or the record carries a
                reference to store.

        Returns:
            False when the reference is inconsistent, True otherwise.

        Raises:
            EavRecordStateError: If the record is not new.
        """
        store = self._store(entity, "insert_with_dynamic_attributes")
        if not store.is_new():
            raise EavRecordStateError("The record cannot be inserted to database because it is not new.")
        selected, include_reference = self._selection(store, names)
        if include_reference and not self._is_consistent(store):
            return False

        store.sync()
        values: dict[str, Any] = {}
        if include_reference and store.reference is not None:
            values = {
                name: store.get(name)
                for name in store.attributes
                if selected is None or name in selected
            }

        with self.transaction("insert", store.entity_type):
            self.session.add(entity)
            self.session.flush()
            for name, value in values.items():
                definition = store.attributes[name]
                if definition.is_empty(value):
                    continue
                self.registry.for_definition(definition).write(
                    self.session, store.key_for(definition), definition, value, replace=False
                )
            self.session.flush()

        store.snapshot(values)
        # Nothing else is stored yet; unselected pending values stay pending
        for name, definition in store.attributes.items():
            store.old_attributes.setdefault(name, definition.default_value())
        store.mark_stored()
        store.scenario = SCENARIO_UPDATE
        logger.info(
            "Record inserted with dynamic attributes",
            entity_type=store.entity_type,
            entity_id=store.entity_id,
            attributes=sorted(values),
        )
        return True

    def update(self, entity: Any, names: Iterable[str] | None = None) -> bool:
        """Update a persisted record and rewrite changed dynamic attribute values.

        Rows of previously stored definitions that are no longer live are
        deleted. Only values that differ from the persisted value are
        rewritten.

        Returns:
            False when the reference is inconsistent, True otherwise.

        Raises:
            EavRecordStateError: If the record is new.
        """
        store = self._store(entity, "update_with_dynamic_attributes")
        if store.is_new():
            raise EavRecordStateError("The record cannot be updated because it is new.")
        selected, include_reference = self._selection(store, names)
        if include_reference and not self._is_consistent(store):
            return False

        written: dict[str, Any] = {}
        removed: list[str] = []
        with self.transaction("update", store.entity_type):
            self.session.add(entity)
            self.session.flush()
            if include_reference:
                store.sync()
                live_ids = {definition.id for definition in store.attributes.values()}
                for name, definition in store.stored_attributes.items():
                    if definition.id in live_ids:
                        continue
                    self.registry.for_definition(definition).delete(
                        self.session, store.key_for(definition), definition
                    )
                    removed.append(name)

                for name, definition in store.attributes.items():
                    if selected is not None and name not in selected:
                        continue
                    if name not in store.new_attributes:
                        continue
                    value = store.new_attributes[name]
                    old = store.old_attributes.get(name, _MISSING)
                    if old is not _MISSING and values_equal(definition, old, value):
                        continue
                    self.registry.for_definition(definition).write(
                        self.session, store.key_for(definition), definition, value
                    )
                    written[name] = value
                self.session.flush()

        store.snapshot(written)
        if include_reference:
            store.mark_stored()
        logger.info(
            "Record updated with dynamic attributes",
            entity_type=store.entity_type,
            entity_id=store.entity_id,
            written=sorted(written),
            removed=sorted(removed),
        )
        return True

    def delete(self, entity: Any) -> bool:
        """Delete a persisted record and, if its row was deleted, its attribute values.

        Returns:
            True when the static row was deleted.

        Raises:
            EavRecordStateError: If the record is new.
        """
        store = self._store(entity, "delete_with_dynamic_attributes")
        if store.is_new():
            raise EavRecordStateError("The record cannot be deleted because it is new.")

        model = type(entity)
        pk_column = primary_key_column(model)
        entity_id = store.entity_id
        store.sync()
        stored = dict(store.stored_attributes)

        with self.transaction("delete", store.entity_type):
            result = self.session.execute(
                delete(model).where(pk_column == entity_id),
                execution_options={"synchronize_session": "fetch"},
            )
            deleted = result.rowcount > 0
            if deleted:
                for definition in stored.values():
                    self.registry.for_definition(definition).delete(
                        self.session, ValueKey(definition.id, store.entity_type, entity_id), definition
                    )

        if deleted:
            store.clear_stored()
            logger.info(
                "Record deleted with dynamic attributes",
                entity_type=store.entity_type,
                entity_id=entity_id,
            )
        return deleted

    def save(
        self,
        entity: Any,
        validate: bool | None = None,
        names: Iterable[str] | None = None,
    ) -> bool:
        """Validate, then insert or update.

        Returns:
            False when validation or the consistency check fails.
        """
        store = self._store(entity, "save_with_dynamic_attributes")
        if validate is None:
            validate = get_settings().eav_validate_on_save
        selected = None if names is None else list(names)
        if validate and not store.validate(entity, selected):
            return False
        if store.is_new():
            return self.insert(entity, selected)
        return self.update(entity, selected)
