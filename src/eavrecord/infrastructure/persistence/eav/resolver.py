"""Attribute resolution for host records.

Resolves which dynamic attributes apply to a record from its attribute set
reference, and keeps a record's attribute store in step when the reference
changes.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from eavrecord.core.exceptions import UnsupportedPrimaryKeyError
from eavrecord.core.logging import get_logger
from eavrecord.domain.entities.attribute_set import AttributeDefinition, AttributeSet
from eavrecord.infrastructure.persistence.repositories import AttributeSetRepository

if TYPE_CHECKING:
    from eavrecord.infrastructure.persistence.eav.attribute_store import DynamicAttributeStore

logger = get_logger(__name__)

REFERENCE_ATTRIBUTE = "eav_set_id"


def entity_type_of(model: type) -> str:
    """Entity type identifier: ``__eav_entity__`` when declared, else the table name."""
    declared = getattr(model, "__eav_entity__", None)
    if declared:
        return declared
    return inspect(model).local_table.name


def primary_key_column(model: type) -> Any:
    """The single primary key column of a mapped class.

    Raises:
        UnsupportedPrimaryKeyError: If the class has a composite primary key.
    """
    columns = inspect(model).primary_key
    if len(columns) != 1:
        raise UnsupportedPrimaryKeyError(
            f"{model.__name__} has a composite primary key; dynamic attributes need a single key column"
        )
    return columns[0]


def entity_id_of(entity: Any) -> Any:
    """Primary key value of a record, or None when it has none yet."""
    model = type(entity)
    primary_key_column(model)
    identity = inspect(entity).identity
    if identity is not None:
        return identity[0]
    return inspect(model).primary_key_from_instance(entity)[0]


def is_new_record(entity: Any) -> bool:
    """A record is new until its row is flushed."""
    state = inspect(entity)
    return state.transient or state.pending


def persisted_reference(entity: Any) -> Any:
    """The attribute set reference as last loaded from (or flushed to) storage."""
    if is_new_record(entity):
        return None
    history = inspect(entity).attrs[REFERENCE_ATTRIBUTE].history
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return getattr(entity, REFERENCE_ATTRIBUTE)


def is_static_attribute(model: type, name: str) -> bool:
    """Check whether a name is taken by a column, relation or other class attribute."""
    if name in inspect(model).all_orm_descriptors.keys():
        return True
    return hasattr(model, name)


class AttributeResolver:
    """Resolves attribute sets into live attribute maps.

    Without a session only null references can be resolved.
    """

    def __init__(self, session: Session | None) -> None:
        self.session = session
        self.repository = AttributeSetRepository(session) if session is not None else None

    def resolve(
        self, entity: Any, reference_id: int | None
    ) -> tuple[AttributeSet | None, dict[str, AttributeDefinition]]:
        """Resolve a reference into the set and the record's live attribute map.

        Unknown or null references resolve to no set and an empty map.
        Definitions whose names collide with static attributes of the record
        class are left out of the map.
        """
        if reference_id is None:
            return None, {}
        attribute_set = self.repository.get_by_id(reference_id)
        if attribute_set is None:
            logger.debug("Attribute set not found", reference_id=reference_id)
            return None, {}

        model = type(entity)
        attributes: dict[str, AttributeDefinition] = {}
        for definition in attribute_set.attributes:
            if is_static_attribute(model, definition.name):
                logger.debug(
                    "Dynamic attribute shadowed by static attribute",
                    attribute=definition.name,
                    model=model.__name__,
                )
                continue
            attributes[definition.name] = definition
        return attribute_set, attributes

    def refresh(self, store: "DynamicAttributeStore", reference_id: int | None) -> None:
        """Re-resolve a store's live map after its reference changed.

        Values of names that are no longer live, or whose definition changed
        under the same name, are dropped from both value maps. Names that
        become live stay unset and default on first read.
        """
        if store.is_resolved and store.resolved_reference == reference_id:
            return

        previous = store.attributes
        attribute_set, attributes = self.resolve(store.entity, reference_id)
        for name, definition in previous.items():
            current = attributes.get(name)
            if current is None or current.id != definition.id:
                store.old_attributes.pop(name, None)
                store.new_attributes.pop(name, None)

        store.attribute_set = attribute_set
        store.attributes = attributes
        store.resolved_reference = reference_id
        store.is_resolved = True
        logger.debug(
            "Attribute set resolved",
            entity_type=store.entity_type,
            reference_id=reference_id,
            attributes=sorted(attributes),
        )
