"""Per-record dynamic attribute state.

A record that opts in carries one ``DynamicAttributeStore``. The store keeps
the live attribute map resolved from the record's attribute set reference,
the values believed persisted (``old_attributes``) and the pending values
(``new_attributes``). Values are read from storage at most once per
attribute per record, either lazily on first access or in an eager batch.
"""

from collections import Counter
from copy import copy
from typing import Any, Iterable

from sqlalchemy.orm import Session, object_session

from eavrecord.core.exceptions import EavSessionError
from eavrecord.core.logging import get_logger
from eavrecord.domain.entities.attribute_set import AttributeDefinition, AttributeSet
from eavrecord.domain.services.attribute_rules import (
    AttributeRule,
    AttributeValidationError,
    create_rule,
)
from eavrecord.infrastructure.persistence.eav.resolver import (
    REFERENCE_ATTRIBUTE,
    AttributeResolver,
    entity_id_of,
    entity_type_of,
    is_new_record,
    persisted_reference,
)
from eavrecord.infrastructure.persistence.value_stores import (
    ValueKey,
    ValueStoreRegistry,
    value_stores,
)

logger = get_logger(__name__)

STORE_ATTRIBUTE = "_eav_store"

SCENARIO_INSERT = "insert"
SCENARIO_UPDATE = "update"


def _as_items(definition: AttributeDefinition, value: Any) -> list:
    if definition.is_empty(value):
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def values_equal(definition: AttributeDefinition, left: Any, right: Any) -> bool:
    """Compare two attribute values. Multi-valued values compare as multisets."""
    if definition.is_multivalued:
        left_items = _as_items(definition, left)
        right_items = _as_items(definition, right)
        try:
            return Counter(left_items) == Counter(right_items)
        except TypeError:
            # Unhashable elements
            return sorted(map(repr, left_items)) == sorted(map(repr, right_items))
    return left == right


class DynamicAttributeStore:
    """Dynamic attribute state of one record."""

    def __init__(
        self,
        entity: Any,
        session: Session | None = None,
        registry: ValueStoreRegistry | None = None,
    ) -> None:
        self.entity = entity
        self.session = session
        self.registry = registry or value_stores
        self.entity_type = entity_type_of(type(entity))

        # Live map, resolved from the current reference
        self.attribute_set: AttributeSet | None = None
        self.attributes: dict[str, AttributeDefinition] = {}
        self.resolved_reference: int | None = None
        self.is_resolved = False

        self.old_attributes: dict[str, Any] = {}
        self.new_attributes: dict[str, Any] = {}

        # Definitions whose rows may exist in storage for this record
        self.stored_reference: int | None = persisted_reference(entity)
        self.stored_attributes: dict[str, AttributeDefinition] = {}
        self._stored_resolved = self.stored_reference is None

        self.errors: dict[str, list[AttributeValidationError]] = {}
        self._scenario: str | None = None
        self._rules: dict[int, list[AttributeRule]] = {}

    @classmethod
    def of(cls, entity: Any) -> "DynamicAttributeStore | None":
        """The store attached to a record, if it opted in."""
        return entity.__dict__.get(STORE_ATTRIBUTE)

    @classmethod
    def attach(cls, entity: Any, session: Session | None = None) -> "DynamicAttributeStore":
        """Attach a store to a record, or return the one it already has."""
        store = cls.of(entity)
        if store is None:
            store = cls(entity, session=session)
            setattr(entity, STORE_ATTRIBUTE, store)
            logger.debug("Dynamic attributes enabled", entity_type=store.entity_type)
        elif session is not None:
            store.session = session
        return store

    # Session and identity

    def get_session(self) -> Session:
        session = self.session or object_session(self.entity)
        if session is None:
            raise EavSessionError(
                f"No session available for '{self.entity_type}' record; "
                "add it to a session or pass one to enable_dynamic_attributes()"
            )
        return session

    def is_new(self) -> bool:
        return is_new_record(self.entity)

    @property
    def entity_id(self) -> Any:
        return entity_id_of(self.entity)

    @property
    def reference(self) -> int | None:
        return getattr(self.entity, REFERENCE_ATTRIBUTE)

    def key_for(self, definition: AttributeDefinition) -> ValueKey:
        return ValueKey(definition.id, self.entity_type, self.entity_id)

    @property
    def scenario(self) -> str:
        if self._scenario is not None:
            return self._scenario
        return SCENARIO_INSERT if self.is_new() else SCENARIO_UPDATE

    @scenario.setter
    def scenario(self, value: str | None) -> None:
        self._scenario = value

    # Resolution

    def sync(self) -> None:
        """Bring the live map in step with the record's current reference."""
        reference = self.reference
        if not self._stored_resolved or not self.is_resolved or self.resolved_reference != reference:
            # A null reference resolves to an empty map without a catalog lookup
            needs_lookup = reference is not None or not self._stored_resolved
            resolver = AttributeResolver(self.get_session() if needs_lookup else None)
            if not self._stored_resolved:
                _, self.stored_attributes = resolver.resolve(self.entity, self.stored_reference)
                self._stored_resolved = True
            resolver.refresh(self, reference)

    def mark_stored(self) -> None:
        """Record the live map as the definitions persisted for this record."""
        self.stored_reference = self.resolved_reference
        self.stored_attributes = dict(self.attributes)
        self._stored_resolved = True

    def clear_stored(self) -> None:
        self.stored_reference = None
        self.stored_attributes = {}
        self._stored_resolved = True
        self.old_attributes = {}

    # Values

    def has(self, name: str) -> bool:
        self.sync()
        return name in self.attributes

    def names(self) -> list[str]:
        self.sync()
        return list(self.attributes)

    def definition(self, name: str) -> AttributeDefinition:
        self.sync()
        try:
            return self.attributes[name]
        except KeyError:
            raise KeyError(f"'{name}' is not a dynamic attribute of this '{self.entity_type}' record") from None

    def is_loaded(self, name: str) -> bool:
        return name in self.old_attributes

    def fetch(self, definition: AttributeDefinition) -> Any:
        """Read one attribute's value from storage."""
        store = self.registry.for_definition(definition)
        logger.debug(
            "Loading attribute value",
            attribute=definition.name,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
        )
        return store.read(self.get_session(), self.key_for(definition), definition)

    def get(self, name: str) -> Any:
        definition = self.definition(name)
        if name in self.new_attributes:
            return self.new_attributes[name]
        if self.is_new():
            value = definition.default_value()
        else:
            if name not in self.old_attributes:
                self.old_attributes[name] = self.fetch(definition)
            value = copy(self.old_attributes[name])
        self.new_attributes[name] = value
        return value

    def set(self, name: str, value: Any) -> bool:
        """Store a pending value. Returns False when the name is not live."""
        if not self.has(name):
            return False
        if not self.is_new() and name not in self.old_attributes:
            self.old_attributes[name] = self.fetch(self.attributes[name])
        self.new_attributes[name] = value
        return True

    def unset(self, name: str) -> bool:
        if not self.has(name):
            return False
        return self.set(name, self.attributes[name].default_value())

    def values(self, names: Iterable[str] | None = None) -> dict[str, Any]:
        selected = self.names() if names is None else list(names)
        return {name: self.get(name) for name in selected}

    def snapshot(self, values: dict[str, Any]) -> None:
        """Mark values as persisted."""
        for name, value in values.items():
            self.old_attributes[name] = copy(value)
            self.new_attributes[name] = value

    def is_changed(self, name: str) -> bool:
        """Check whether a pending value differs from the persisted one."""
        if name not in self.new_attributes:
            return False
        if name not in self.old_attributes:
            return True
        return not values_equal(self.attributes[name], self.old_attributes[name], self.new_attributes[name])

    # Metadata

    def rules_for(self, definition: AttributeDefinition) -> list[AttributeRule]:
        rules = self._rules.get(definition.id)
        if rules is None:
            rules = [create_rule(definition.name, spec) for spec in definition.rules]
            self._rules[definition.id] = rules
        return rules

    def active_rules(self, definition: AttributeDefinition) -> list[AttributeRule]:
        scenario = self.scenario
        return [rule for rule in self.rules_for(definition) if rule.applies_to(scenario)]

    def label(self, name: str) -> str:
        return self.definition(name).display_label()

    def is_multivalued(self, name: str) -> bool:
        return self.definition(name).is_multivalued

    def is_required(self, name: str) -> bool:
        return any(rule.kind == "required" for rule in self.active_rules(self.definition(name)))

    def safe_names(self) -> list[str]:
        safe: list[str] = []
        unsafe: set[str] = set()
        for name in self.names():
            for rule in self.active_rules(self.attributes[name]):
                if not rule.safe:
                    unsafe.add(name)
                elif name not in safe:
                    safe.append(name)
        return [name for name in safe if name not in unsafe]

    # Validation

    def add_error(self, error: AttributeValidationError) -> None:
        errors = self.errors.setdefault(error.field, [])
        if error not in errors:
            errors.append(error)

    def validate(self, subject: Any, names: Iterable[str] | None = None) -> bool:
        """Run the active rules of the live attributes against a record.

        Rules read values through ``subject.get_attribute``. A multi-valued
        attribute is checked one element at a time by substituting each
        element as the pending value, then restoring the collection.

        Returns:
            True when no errors were found.
        """
        self.errors = {}
        selected = self.names() if names is None else [name for name in names if self.has(name)]
        for name in selected:
            definition = self.attributes[name]
            rules = self.active_rules(definition)
            if not rules:
                continue
            value = self.get(name)
            if not definition.is_multivalued:
                self._run_rules(rules, subject)
                continue
            if definition.is_empty(value):
                elements = [None]
            elif not isinstance(value, (list, tuple)):
                self.add_error(
                    AttributeValidationError(
                        field=name,
                        message=f"{definition.display_label()} must be a list of values.",
                        code="invalid",
                    )
                )
                continue
            else:
                elements = list(value)
            try:
                for element in elements:
                    self.new_attributes[name] = element
                    self._run_rules(rules, subject)
            finally:
                self.new_attributes[name] = value

        if self.errors:
            logger.info(
                "Dynamic attribute validation failed",
                entity_type=self.entity_type,
                fields=sorted(self.errors),
            )
        return not self.errors

    def _run_rules(self, rules: list[AttributeRule], subject: Any) -> None:
        for rule in rules:
            error = rule.validate(subject)
            if error is not None:
                self.add_error(error)
